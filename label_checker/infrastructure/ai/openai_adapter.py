"""OpenAI implementation of the label analysis provider."""

import base64
import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel, Field

from ...domain.models.reference_label import ReferenceLabel
from ...domain.models.verification import (
    ConformityAnalysis,
    ConformityResult,
    TextualMatchResult,
    VisualMatchResult,
    VisualVerdict,
)
from ...domain.ports.label_analysis_provider import LabelAnalysisProvider

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Estrai tutto il testo visibile da questa etichetta di olio d'oliva. Concentrati su: "
    "nome prodotto, produttore, denominazione (DOP/IGP), zona geografica, volume, anno di "
    "raccolta, e qualsiasi altro testo presente. Fornisci solo il testo estratto, senza "
    "commenti aggiuntivi."
)

CONFORMITY_PROMPT = """Sei un esperto di normative DOP/IGP per oli d'oliva. Analizza il testo dell'etichetta e verifica la conformità alle seguenti regole:
1. La denominazione DOP o IGP deve essere presente e corretta
2. Non deve esserci uso improprio di simboli romani (SPQR, aquila, ecc.) senza autorizzazione
3. Le indicazioni geografiche devono essere precise
4. Le informazioni obbligatorie devono essere presenti (produttore, volume, denominazione)

Rispondi in JSON con questo formato:
{
  "risultato": "conforme" | "non_conforme" | "sospetto",
  "percentualeMatch": number (0-100, percentuale di conformità),
  "violazioni": ["lista di violazioni rilevate"],
  "note": "note aggiuntive sull'analisi"
}"""

TEXT_COMPARISON_PROMPT = """Sei un esperto di verifica etichette. Confronta il testo estratto con i dati dell'etichetta ufficiale e calcola una percentuale di match.

IMPORTANTE: Se il testo OCR contiene il nome del prodotto o elementi della denominazione, il matchScore deve essere almeno 30%. Solo se non trovi NESSUNA corrispondenza usa 0%.

Rispondi in JSON:
{
  "matchScore": number (0-100, percentuale di match testuale),
  "differences": ["lista delle differenze testuali rilevate"],
  "reasoning": "spiegazione dettagliata del confronto con esempi"
}"""

VISUAL_COMPARISON_PROMPT = """Confronta queste due etichette di olio d'oliva. La prima immagine è quella caricata dall'utente, la seconda è l'etichetta ufficiale di riferimento dal repository.

Analizza:
1. Design e layout generale
2. Logo e simboli grafici
3. Font e tipografia
4. Colori dominanti
5. Elementi distintivi
6. Segni di contraffazione o differenze sospette

Rispondi in JSON con questo formato:
{
  "similarity": number (0-100, percentuale di similarità visiva),
  "differences": ["lista delle differenze principali rilevate"],
  "verdict": "identica" | "simile" | "diversa" | "contraffatta",
  "explanation": "spiegazione dettagliata del confronto e del verdetto"
}"""

VERDICTS = {
    "identica": VisualVerdict.IDENTICAL,
    "identical": VisualVerdict.IDENTICAL,
    "simile": VisualVerdict.SIMILAR,
    "similar": VisualVerdict.SIMILAR,
    "diversa": VisualVerdict.DIFFERENT,
    "different": VisualVerdict.DIFFERENT,
    "contraffatta": VisualVerdict.COUNTERFEIT,
    "counterfeit": VisualVerdict.COUNTERFEIT,
}


class OpenAIConfig(BaseModel):
    """Configuration for the OpenAI adapter."""

    api_key: str = Field(..., description="OpenAI API key")
    model: str = Field(default="gpt-4o", description="Vision-capable chat model")
    timeout: float = Field(default=40.0, description="API timeout in seconds")
    max_retries: int = Field(default=2, description="Automatic retries per call")
    ocr_max_tokens: int = Field(default=1000, description="Maximum tokens for text extraction")
    conformity_max_tokens: int = Field(default=1500, description="Maximum tokens for conformity analysis")
    comparison_max_tokens: int = Field(default=1000, description="Maximum tokens for textual comparison")
    visual_max_tokens: int = Field(default=2048, description="Maximum tokens for visual comparison")


def _data_url(image: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"


def _as_score(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return max(0.0, min(100.0, float(value)))


def _as_list(value: Any) -> List[str]:
    return [str(item) for item in value] if isinstance(value, list) else []


class OpenAILabelAdapter(LabelAnalysisProvider):
    """OpenAI vision/chat implementation of the label analysis provider."""

    def __init__(
        self,
        config: Optional[OpenAIConfig] = None,
        provider_name: str = "OpenAI",
    ):
        """Initialize the adapter."""
        self._config = config or OpenAIConfig(api_key="")
        self._name = provider_name
        self._client: Optional[AsyncOpenAI] = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the OpenAI client."""
        if not self._config.api_key:
            raise ConnectionError("Failed to initialize OpenAI provider: missing API key")
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self._config.api_key,
                timeout=self._config.timeout,
                max_retries=self._config.max_retries,
            )
        self._initialized = True

    async def shutdown(self) -> None:
        """Close the OpenAI client."""
        if self._client is not None:
            await self._client.close()
            self._client = None
        self._initialized = False

    async def extract_text(self, image: bytes, mime_type: str) -> str:
        """Extract all visible text from a label image."""
        started = time.monotonic()
        try:
            content = await self._chat(
                [
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": OCR_PROMPT},
                            {"type": "image_url", "image_url": {"url": _data_url(image, mime_type)}},
                        ],
                    }
                ],
                max_tokens=self._config.ocr_max_tokens,
            )
        except Exception as e:
            raise RuntimeError(f"Failed to extract text from label: {e}") from e

        logger.info(f"✅ [OCR] {len(content)} characters in {time.monotonic() - started:.1f}s")
        return content

    async def analyze_conformity(self, text: str) -> ConformityAnalysis:
        """Check extracted text against DOP/IGP labelling rules."""
        try:
            content = await self._chat(
                [
                    {"role": "system", "content": CONFORMITY_PROMPT},
                    {"role": "user", "content": f"Analizza questa etichetta:\n\n{text}"},
                ],
                max_tokens=self._config.conformity_max_tokens,
                json_mode=True,
            )
        except Exception as e:
            raise RuntimeError(f"Failed to analyze conformity: {e}") from e

        result = self._parse_json(content)
        if result is None:
            return ConformityAnalysis(
                result=ConformityResult.SOSPETTO,
                match_percent=0,
                violations=["Errore parsing risposta AI"],
                note=f"Raw: {content[:200]}",
            )

        try:
            conformity = ConformityResult(result.get("risultato"))
        except ValueError:
            conformity = ConformityResult.SOSPETTO

        return ConformityAnalysis(
            result=conformity,
            match_percent=_as_score(result.get("percentualeMatch")),
            violations=_as_list(result.get("violazioni")),
            note=str(result.get("note") or ""),
        )

    async def compare_text(self, text: str, reference: ReferenceLabel) -> TextualMatchResult:
        """Score extracted text against one reference label's fields."""
        content = await self._chat(
            [
                {"role": "system", "content": TEXT_COMPARISON_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Testo estratto dall'etichetta:\n{text}\n\n"
                        f"Etichetta ufficiale di riferimento:\n{reference.descriptor()}\n\n"
                        "Confronta nome prodotto, produttore, denominazione, regione e comune. "
                        "Calcola il match score basandoti su quante informazioni corrispondono."
                    ),
                },
            ],
            max_tokens=self._config.comparison_max_tokens,
            json_mode=True,
        )

        result = self._parse_json(content)
        if result is None:
            score = re.search(r"matchScore[\"\s:]+(\d+)", content, re.IGNORECASE)
            return TextualMatchResult(
                reference_id=reference.id,
                match_score=float(score.group(1)) if score else 0.0,
                differences=["Impossibile parsare risposta AI"],
                reasoning=f"Raw response: {content[:200]}",
            )

        return TextualMatchResult(
            reference_id=reference.id,
            match_score=_as_score(result.get("matchScore")),
            differences=_as_list(result.get("differences")),
            reasoning=str(result.get("reasoning") or "No reasoning provided"),
        )

    async def compare_visually(
        self,
        image: bytes,
        mime_type: str,
        reference_image: bytes,
        reference_mime_type: str,
    ) -> VisualMatchResult:
        """Compare the candidate image with a reference image."""
        try:
            content = await self._chat(
                [
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": VISUAL_COMPARISON_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {"url": _data_url(image, mime_type), "detail": "high"},
                            },
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": _data_url(reference_image, reference_mime_type),
                                    "detail": "high",
                                },
                            },
                        ],
                    }
                ],
                max_tokens=self._config.visual_max_tokens,
                json_mode=True,
            )
            result = json.loads(content or "{}")
        except Exception as e:
            raise RuntimeError(f"Failed to compare labels visually: {e}") from e

        verdict = VERDICTS.get(str(result.get("verdict", "")).lower(), VisualVerdict.DIFFERENT)
        return VisualMatchResult(
            similarity=_as_score(result.get("similarity")),
            verdict=verdict,
            differences=_as_list(result.get("differences")),
            explanation=str(result.get("explanation") or ""),
        )

    async def _chat(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int,
        json_mode: bool = False,
    ) -> str:
        if not self._client:
            raise RuntimeError("Provider not initialized")

        kwargs: Dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "max_completion_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await self._client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""

    @staticmethod
    def _parse_json(content: str) -> Optional[Dict[str, Any]]:
        try:
            result = json.loads(content or "{}")
        except json.JSONDecodeError:
            logger.warning(f"⚠️ Could not parse JSON response: {content[:200]}")
            return None
        return result if isinstance(result, dict) else None

    @property
    def provider_name(self) -> str:
        """Get the provider name."""
        return self._name

    @property
    def is_available(self) -> bool:
        """Check if the provider is available and ready."""
        return self._initialized and self._client is not None

    @property
    def capabilities(self) -> Dict[str, bool]:
        """Get the provider's capabilities."""
        return {
            "text_extraction": True,
            "conformity_analysis": True,
            "text_comparison": True,
            "visual_comparison": True,
        }
