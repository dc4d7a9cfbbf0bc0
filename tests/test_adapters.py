"""
Tests for the text-generation adapters.

This module contains tests for the OpenAI and Anthropic adapters, verifying
they build provider requests from a prompt, extract completion text, and
report failures as GatewayUnavailable.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from guidecircle.adapters.base.adapter import (
    AdapterConfig,
    AdapterFactory,
    GatewayUnavailable,
)
from guidecircle.adapters.anthropic.adapter import AnthropicAdapter
from guidecircle.adapters.openai.adapter import OpenAIAdapter


@pytest.fixture
def openai_config():
    """Fixture to provide an OpenAI adapter configuration."""
    return AdapterConfig(
        api_key="test-openai-key",
        model="gpt-4o-mini",
        timeout=20.0
    )


@pytest.fixture
def anthropic_config():
    """Fixture to provide an Anthropic adapter configuration."""
    return AdapterConfig(
        api_key="test-anthropic-key",
        timeout=20.0
    )


class TestOpenAIAdapter:
    """Tests for the OpenAI adapter."""

    @pytest.mark.asyncio
    @patch('guidecircle.adapters.openai.adapter.AsyncOpenAI')
    async def test_connect(self, mock_openai, openai_config):
        """Test connecting to the OpenAI API."""
        mock_client = MagicMock()
        mock_client.models.list = AsyncMock()
        mock_openai.return_value = mock_client

        adapter = OpenAIAdapter(openai_config)
        result = await adapter.connect()

        assert result is True
        assert adapter.connection_status.connected is True
        mock_client.models.list.assert_called_once()

    @pytest.mark.asyncio
    @patch('guidecircle.adapters.openai.adapter.AsyncOpenAI')
    async def test_connect_failure(self, mock_openai, openai_config):
        mock_client = MagicMock()
        mock_client.models.list = AsyncMock(side_effect=Exception("invalid api key"))
        mock_openai.return_value = mock_client

        adapter = OpenAIAdapter(openai_config)

        assert await adapter.connect() is False
        assert adapter.connection_status.last_error == "invalid api key"
        with pytest.raises(GatewayUnavailable):
            await adapter.generate("Hello")

    def test_build_request(self, openai_config):
        adapter = OpenAIAdapter(openai_config)

        request = adapter.build_request("Say hello")

        assert request["model"] == "gpt-4o-mini"
        assert request["messages"] == [{"role": "user", "content": "Say hello"}]
        assert request["temperature"] == 0.7
        assert request["max_tokens"] == 512

    def test_default_model(self):
        adapter = OpenAIAdapter(AdapterConfig(api_key="key"))
        assert adapter.model == OpenAIAdapter.default_model

    @pytest.mark.asyncio
    async def test_generate(self, openai_config):
        """Test generating text with OpenAI."""
        mock_client = MagicMock()
        mock_response = MagicMock(
            choices=[MagicMock(message=MagicMock(content='{ "status": "approved" }'))]
        )
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        adapter = OpenAIAdapter(openai_config)
        adapter.client = mock_client
        adapter._connection_status.connected = True

        text = await adapter.generate("Analyze this message")

        assert text == '{ "status": "approved" }'
        assert adapter.connection_status.latency_ms is not None
        mock_client.chat.completions.create.assert_called_once()

    @pytest.mark.asyncio
    async def test_generate_failure(self, openai_config):
        mock_client = MagicMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=Exception("Rate limit exceeded"))

        adapter = OpenAIAdapter(openai_config)
        adapter.client = mock_client
        adapter._connection_status.connected = True

        with pytest.raises(GatewayUnavailable):
            await adapter.generate("Hello")
        assert adapter.connection_status.rate_limited is True


class TestAnthropicAdapter:
    """Tests for the Anthropic adapter."""

    @pytest.mark.asyncio
    @patch('guidecircle.adapters.anthropic.adapter.anthropic.AsyncAnthropic')
    async def test_connect(self, mock_anthropic, anthropic_config):
        """Test connecting to the Anthropic API."""
        mock_client = MagicMock()
        mock_client.models.list = AsyncMock()
        mock_anthropic.return_value = mock_client

        adapter = AnthropicAdapter(anthropic_config)
        result = await adapter.connect()

        assert result is True
        assert adapter.connection_status.connected is True

    def test_build_request(self, anthropic_config):
        adapter = AnthropicAdapter(anthropic_config)

        request = adapter.build_request("Say hello")

        assert request["model"] == AnthropicAdapter.default_model
        assert request["max_tokens"] == 512
        assert request["messages"] == [{"role": "user", "content": "Say hello"}]

    @pytest.mark.asyncio
    async def test_generate(self, anthropic_config):
        """Test generating text with Anthropic."""
        mock_client = MagicMock()
        mock_response = MagicMock(
            content=[
                MagicMock(type="text", text="Thank you both. "),
                MagicMock(type="tool_use"),
                MagicMock(type="text", text="What shaped your view?"),
            ]
        )
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        adapter = AnthropicAdapter(anthropic_config)
        adapter.client = mock_client
        adapter._connection_status.connected = True

        text = await adapter.generate("Bridge the phases")

        assert text == "Thank you both. What shaped your view?"
        mock_client.messages.create.assert_called_once()

    @pytest.mark.asyncio
    async def test_generate_failure(self, anthropic_config):
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(side_effect=Exception("overloaded"))

        adapter = AnthropicAdapter(anthropic_config)
        adapter.client = mock_client
        adapter._connection_status.connected = True

        with pytest.raises(GatewayUnavailable):
            await adapter.generate("Hello")
        assert adapter.connection_status.last_error == "overloaded"


class TestAdapterFactory:
    """Tests for creating adapters by provider name."""

    @pytest.mark.asyncio
    async def test_unsupported_provider(self, openai_config):
        with pytest.raises(ValueError):
            await AdapterFactory.create_adapter("mistral", openai_config)

    @pytest.mark.asyncio
    @patch('guidecircle.adapters.openai.adapter.AsyncOpenAI')
    async def test_create_connects_adapter(self, mock_openai, openai_config):
        mock_client = MagicMock()
        mock_client.models.list = AsyncMock()
        mock_openai.return_value = mock_client

        adapter = await AdapterFactory.create_adapter("OpenAI", openai_config)

        assert isinstance(adapter, OpenAIAdapter)
        assert adapter.connection_status.connected is True
