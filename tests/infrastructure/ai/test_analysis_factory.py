"""Tests for the label analysis provider factory."""

import pytest

from label_checker.infrastructure.ai.factory import LabelAnalysisProviderFactory
from label_checker.infrastructure.ai.openai_adapter import OpenAILabelAdapter
from label_checker.infrastructure.config import Settings

from conftest import FakeAnalysisProvider


@pytest.fixture
def factory():
    """Create a factory with an API key configured."""
    return LabelAnalysisProviderFactory(Settings(openai_api_key="test-key", model="gpt-4o-mini"))


def test_default_providers(factory):
    """Test the OpenAI provider is registered but not created."""
    assert factory.available_providers == {"openai": False}
    assert factory.get_provider("openai") is None


@pytest.mark.asyncio
async def test_create_openai_provider(factory):
    """Test the OpenAI provider is created once from the settings."""
    provider = await factory.create_provider("openai")

    assert isinstance(provider, OpenAILabelAdapter)
    assert provider.is_available
    assert provider._config.model == "gpt-4o-mini"
    assert await factory.create_provider("openai") is provider
    assert factory.available_providers == {"openai": True}

    await factory.shutdown()
    assert factory.available_providers == {"openai": False}
    assert not provider.is_available


@pytest.mark.asyncio
async def test_create_provider_without_key():
    """Test a missing API key fails provider creation."""
    factory = LabelAnalysisProviderFactory(Settings())

    with pytest.raises(ConnectionError):
        await factory.create_provider("openai")
    assert factory.get_provider("openai") is None


@pytest.mark.asyncio
async def test_unknown_provider(factory):
    """Test unknown providers are rejected."""
    with pytest.raises(ValueError, match="not found"):
        await factory.create_provider("unknown")


@pytest.mark.asyncio
async def test_register_provider(factory):
    """Test custom providers can be registered."""
    factory.register_provider("fake", FakeAnalysisProvider)

    provider = await factory.create_provider("fake", text="OLIO")

    assert provider.text == "OLIO"
    assert factory.get_provider("fake") is provider
