"""Dependency injection configuration for hexagonal architecture."""

import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ..domain.services.image_acquisition import ImageAcquisitionService
from ..domain.services.label_verification_service import LabelVerificationService
from .ai.factory import LabelAnalysisProviderFactory
from .config import Settings
from .fetch.cached_fetcher import CachedImageFetcher
from .fetch.safe_fetcher import SafeImageFetcher
from .storage.memory_store import (
    InMemoryContentStore,
    InMemoryReferenceLabelStore,
    InMemoryVerificationStore,
)

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"


class ServiceContainer:
    """Service container for dependency injection."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize service container."""
        self._settings = settings or Settings.from_env()
        self._services: Dict[str, Any] = {}
        self._setup_services()

    def _setup_services(self):
        """Setup all services and their dependencies."""
        logger.info("🔧 Setting up service container...")
        settings = self._settings

        # Infrastructure adapters
        fetcher = SafeImageFetcher(max_bytes=settings.max_image_bytes, timeout=settings.fetch_timeout)
        reference_fetcher = CachedImageFetcher(
            fetcher,
            ttl=settings.reference_cache_ttl,
            maxsize=settings.reference_cache_maxsize,
        )

        if settings.reference_labels_file:
            reference_store = InMemoryReferenceLabelStore.from_json_file(settings.reference_labels_file)
        else:
            logger.warning("⚠️ No reference labels file configured - reference corpus is empty")
            reference_store = InMemoryReferenceLabelStore()

        # Register services; the verification service is created lazily with its provider
        self._services = {
            'settings': settings,
            'image_fetcher': fetcher,
            'reference_fetcher': reference_fetcher,
            'reference_store': reference_store,
            'content_store': InMemoryContentStore(),
            'verification_store': InMemoryVerificationStore(),
            'provider_factory': LabelAnalysisProviderFactory(settings),
            'label_verification_service': None,
        }

        logger.info("✅ Service container setup completed")

    async def _ensure_label_verification_service(self) -> LabelVerificationService:
        """Ensure the verification service is created with an initialized provider."""
        if self._services['label_verification_service'] is None:
            logger.info("🔧 Creating LabelVerificationService with providers...")
            settings = self._settings
            factory = self.get_provider_factory()
            provider = factory.get_provider(DEFAULT_PROVIDER)
            if provider is None:
                provider = await factory.create_provider(DEFAULT_PROVIDER)

            acquisition = ImageAcquisitionService(
                self.get('image_fetcher'),
                self.get('content_store'),
                max_bytes=settings.max_image_bytes,
            )
            self._services['label_verification_service'] = LabelVerificationService(
                analysis_provider=provider,
                reference_store=self.get('reference_store'),
                verification_store=self.get('verification_store'),
                image_acquisition=acquisition,
                reference_fetcher=self.get('reference_fetcher'),
                budget_limits=settings.budget,
                top_k=settings.top_k,
                text_concurrency=settings.text_concurrency,
            )
            logger.info("✅ LabelVerificationService created")

        return self._services['label_verification_service']

    def get(self, service_name: str) -> Any:
        """Get a service by name.

        Args:
            service_name: Name of the service

        Returns:
            Service instance

        Raises:
            KeyError: If service not found
        """
        if service_name not in self._services:
            raise KeyError(f"Service '{service_name}' not found")
        return self._services[service_name]

    @property
    def settings(self) -> Settings:
        """Get the service configuration."""
        return self._settings

    def get_provider_factory(self) -> LabelAnalysisProviderFactory:
        """Get the label analysis provider factory."""
        return self.get('provider_factory')

    async def get_label_verification_service(self) -> LabelVerificationService:
        """Get label verification service with providers."""
        return await self._ensure_label_verification_service()

    async def shutdown(self) -> None:
        """Release providers and HTTP clients."""
        await self.get_provider_factory().shutdown()
        await self.get('image_fetcher').shutdown()
        self._services['label_verification_service'] = None


# Global service container instance
@lru_cache()
def get_service_container() -> ServiceContainer:
    """Get global service container instance.

    Returns:
        Service container instance
    """
    return ServiceContainer()


async def get_label_verification_service() -> LabelVerificationService:
    """FastAPI dependency for the label verification service."""
    container = get_service_container()
    return await container.get_label_verification_service()
