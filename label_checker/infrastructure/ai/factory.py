"""Factory for creating and managing label analysis providers."""

from typing import Callable, Dict, Optional

from ...domain.ports.label_analysis_provider import LabelAnalysisProvider
from ..config import Settings
from .openai_adapter import OpenAIConfig, OpenAILabelAdapter

ProviderBuilder = Callable[..., LabelAnalysisProvider]


class LabelAnalysisProviderFactory:
    """Factory for creating and managing label analysis providers."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize the factory."""
        self._settings = settings or Settings.from_env()
        self._providers: Dict[str, ProviderBuilder] = {}
        self._instances: Dict[str, LabelAnalysisProvider] = {}

        # Register default providers
        self.register_provider("openai", OpenAILabelAdapter)

    def register_provider(self, name: str, provider_class: ProviderBuilder) -> None:
        """Register a new provider.

        Args:
            name: Provider name
            provider_class: Provider class or builder
        """
        self._providers[name] = provider_class

    async def create_provider(self, name: str, **kwargs) -> LabelAnalysisProvider:
        """Create and initialize a provider instance.

        Args:
            name: Provider name
            **kwargs: Provider-specific configuration

        Returns:
            Initialized provider instance

        Raises:
            ValueError: If provider not found
        """
        if name not in self._providers:
            raise ValueError(f"Provider '{name}' not found")

        if name not in self._instances:
            if name == "openai":
                config = OpenAIConfig(
                    api_key=self._settings.openai_api_key,
                    model=self._settings.model,
                    timeout=self._settings.ai_timeout,
                    max_retries=self._settings.ai_max_retries,
                    **kwargs,
                )
                provider = self._providers[name](config=config)
            else:
                provider = self._providers[name](**kwargs)

            await provider.initialize()
            self._instances[name] = provider

        return self._instances[name]

    def get_provider(self, name: str) -> Optional[LabelAnalysisProvider]:
        """Get an existing provider instance.

        Args:
            name: Provider name

        Returns:
            Provider instance if exists, None otherwise
        """
        return self._instances.get(name)

    @property
    def available_providers(self) -> Dict[str, bool]:
        """Get dictionary of registered providers and their availability."""
        return {
            name: name in self._instances
            for name in self._providers
        }

    async def shutdown(self) -> None:
        """Shutdown all provider instances."""
        for provider in self._instances.values():
            await provider.shutdown()
        self._instances.clear()
