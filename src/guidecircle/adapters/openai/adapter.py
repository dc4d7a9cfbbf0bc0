"""
OpenAI adapter implementation for Guide Circle.

This module provides the text-generation capability on top of OpenAI's chat
completions API.
"""

import time

from openai import AsyncOpenAI
from openai.types.chat.chat_completion import ChatCompletion

from guidecircle.adapters.base.adapter import (
    AdapterConfig,
    ConnectionStatus,
    GatewayUnavailable,
    TextGenerationAdapter,
)


class OpenAIAdapter(TextGenerationAdapter):
    """Adapter for OpenAI models."""

    default_model = "gpt-4o-mini"

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.client = None

    async def connect(self) -> bool:
        """Establish connection to OpenAI API."""
        try:
            self.client = AsyncOpenAI(
                api_key=self.config.api_key,
                organization=self.config.organization_id,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries
            )

            # Test connection by listing models
            start_time = time.time()
            await self.client.models.list()
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
        """Close connection to OpenAI API."""
        if self.client is not None:
            await self.client.close()
        self._connection_status = ConnectionStatus(connected=False)
        return True

    def build_request(self, prompt: str) -> dict:
        """Convert a prompt into a chat completions request."""
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    @staticmethod
    def response_text(response: ChatCompletion) -> str:
        """Extract the completion text from a chat completions response."""
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def generate(self, prompt: str) -> str:
        """Send a prompt to an OpenAI model and return the completion text."""
        if not self.client or not self._connection_status.connected:
            await self.connect()

        if not self._connection_status.connected:
            raise GatewayUnavailable(
                f"Not connected to OpenAI API: {self._connection_status.last_error}"
            )

        try:
            start_time = time.time()
            response = await self.client.chat.completions.create(**self.build_request(prompt))
            end_time = time.time()
        except Exception as e:
            self._record_failure(e)
            raise GatewayUnavailable(f"OpenAI request failed: {e}") from e

        # Update connection status with latency
        self._connection_status.latency_ms = (end_time - start_time) * 1000
        return self.response_text(response)
