"""Domain model for official reference labels."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Designation(str, Enum):
    """Certification regime of an official label."""

    DOP = "DOP"
    IGP = "IGP"
    BIOLOGICO = "biologico"
    UFFICIALE = "ufficiale"


class ReferenceLabel(BaseModel):
    """An official label entry of the reference corpus."""

    id: str = Field(..., description="Reference label identifier")
    name: str = Field(..., description="Display name of the product")
    producer: Optional[str] = Field(None, description="Producer or bottler")
    designation: Designation = Field(..., description="DOP/IGP/organic/official")
    region: str = Field(..., description="Production region")
    municipality: Optional[str] = Field(None, description="Production municipality")
    label_type: Optional[str] = Field(None, description="Label type (front, back, neck...)")
    image_url: Optional[str] = Field(None, description="Front image reference")
    back_image_url: Optional[str] = Field(None, description="Back image reference")
    is_active: bool = Field(default=True, description="Only active labels are matched")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        """Pydantic model configuration."""
        frozen = True
        json_schema_extra = {
            "example": {
                "id": "sabina-001",
                "name": "Olio DOP Sabina",
                "producer": "Oleificio Sabino",
                "designation": "DOP",
                "region": "Lazio",
                "municipality": "Fara in Sabina",
                "image_url": "https://labels.example.org/sabina-001.jpg",
                "is_active": True,
            }
        }

    def descriptor(self) -> str:
        """Describe the label fields compared against extracted text."""
        return (
            f"- Nome: {self.name}\n"
            f"- Produttore: {self.producer or 'N/A'}\n"
            f"- Denominazione: {self.designation.value}\n"
            f"- Regione: {self.region}\n"
            f"- Comune: {self.municipality or 'N/A'}\n"
            f"- Tipo: {self.label_type or 'N/A'}"
        )
