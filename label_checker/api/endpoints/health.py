"""Health check endpoints."""

from typing import Dict

from fastapi import APIRouter

from ...infrastructure.dependencies import get_service_container

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> Dict[str, Dict[str, bool]]:
    """Check the health of all service components.

    Returns:
        Availability of the label analysis providers
    """
    factory = get_service_container().get_provider_factory()
    provider_status = {}

    for provider_name, is_active in factory.available_providers.items():
        provider = factory.get_provider(provider_name)
        provider_status[provider_name] = bool(is_active and provider and provider.is_available)

    return {"analysis_providers": provider_status}
