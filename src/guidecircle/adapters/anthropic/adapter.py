"""
Anthropic adapter implementation for Guide Circle.

This module provides the text-generation capability on top of Anthropic's
Messages API.
"""

import time

import anthropic
from anthropic.types import Message as AnthropicMessage

from guidecircle.adapters.base.adapter import (
    AdapterConfig,
    ConnectionStatus,
    GatewayUnavailable,
    TextGenerationAdapter,
)


class AnthropicAdapter(TextGenerationAdapter):
    """Adapter for Anthropic Claude models."""

    default_model = "claude-3-5-haiku-latest"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.client = None

    async def connect(self) -> bool:
        """Establish connection to Anthropic API."""
        try:
            self.client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries
            )

            # Verify the API key works with a cheap authenticated call
            start_time = time.time()
            await self.client.models.list(limit=1)
            end_time = time.time()

            self._connection_status = ConnectionStatus(
                connected=True,
                latency_ms=(end_time - start_time) * 1000
            )
            return True
        except Exception as e:
            self._connection_status = ConnectionStatus(
                connected=False,
                last_error=str(e)
            )
            return False

    async def disconnect(self) -> bool:
        """Close connection to Anthropic API."""
        if self.client is not None:
            await self.client.close()
        self._connection_status = ConnectionStatus(connected=False)
        return True

    def build_request(self, prompt: str) -> dict:
        """Convert a prompt into a Messages API request."""
        return {
            "model": self.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

    @staticmethod
    def response_text(response: AnthropicMessage) -> str:
        """Concatenate the text blocks of a Messages API response."""
        content = ""
        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                content += block.text
        return content

    async def generate(self, prompt: str) -> str:
        """Send a prompt to an Anthropic model and return the completion text."""
        if not self.client or not self._connection_status.connected:
            await self.connect()

        if not self._connection_status.connected:
            raise GatewayUnavailable(
                f"Not connected to Anthropic API: {self._connection_status.last_error}"
            )

        try:
            start_time = time.time()
            response = await self.client.messages.create(**self.build_request(prompt))
            end_time = time.time()
        except Exception as e:
            self._record_failure(e)
            raise GatewayUnavailable(f"Anthropic request failed: {e}") from e

        self._connection_status.latency_ms = (end_time - start_time) * 1000
        return self.response_text(response)
