"""
Base adapter interface for Guide Circle.

This module defines the text-generation capability the Guide relies on: given
a fully rendered prompt, asynchronously return natural-language text or fail.
Provider-specific adapters implement it for each AI model provider.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class GatewayUnavailable(Exception):
    """Raised when the text-generation backend cannot produce a completion."""
    pass


class AdapterConfig(BaseModel):
    """Configuration for a text-generation adapter."""

    api_key: str
    model: Optional[str] = None
    base_url: Optional[str] = None
    organization_id: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 2
    max_tokens: int = 512
    temperature: float = 0.7


class ConnectionStatus(BaseModel):
    """Status of a connection to an AI service provider."""

    connected: bool
    last_error: Optional[str] = None
    latency_ms: Optional[float] = None
    rate_limited: bool = False


class TextGenerationAdapter(ABC):
    """Base interface for text-generation adapters."""

    default_model: str = ""

    def __init__(self, config: AdapterConfig):
        self.config = config
        self._connection_status = ConnectionStatus(connected=False)

    @property
    def connection_status(self) -> ConnectionStatus:
        """Get the current connection status."""
        return self._connection_status

    @property
    def model(self) -> str:
        """Model used for completions."""
        return self.config.model or self.default_model

    @abstractmethod
    async def connect(self) -> bool:
        """Establish connection to the AI service provider."""
        pass

    @abstractmethod
    async def disconnect(self) -> bool:
        """Close connection to the AI service provider."""
        pass

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Send a single prompt to the model and return its text completion.

        Args:
            prompt: Fully rendered natural-language prompt

        Returns:
            The completion text

        Raises:
            GatewayUnavailable: On any transport or provider failure
        """
        pass

    def _record_failure(self, error: Exception) -> None:
        """Update connection status after a failed request."""
        self._connection_status.last_error = str(error)
        if "rate limit" in str(error).lower():
            self._connection_status.rate_limited = True


class AdapterFactory:
    """Factory for creating adapters."""

    @staticmethod
    async def create_adapter(provider: str, config: AdapterConfig) -> TextGenerationAdapter:
        """
        Create and initialize an adapter for the specified provider.

        Args:
            provider: The name of the provider (e.g., "openai", "anthropic")
            config: Configuration for the adapter

        Returns:
            An initialized TextGenerationAdapter instance

        Raises:
            ValueError: If the provider is not supported
        """
        if provider.lower() == "openai":
            # Dynamically import to avoid circular imports
            from guidecircle.adapters.openai.adapter import OpenAIAdapter
            adapter = OpenAIAdapter(config)
        elif provider.lower() == "anthropic":
            from guidecircle.adapters.anthropic.adapter import AnthropicAdapter
            adapter = AnthropicAdapter(config)
        else:
            raise ValueError(f"Unsupported provider: {provider}")

        # Initialize the connection
        await adapter.connect()

        return adapter
