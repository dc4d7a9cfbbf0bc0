"""
Base adapter module for Guide Circle.

This module defines the base interfaces and abstract classes for adapter implementations
that connect the Guide to external text-generation providers.
"""

from guidecircle.adapters.base.adapter import (
    AdapterConfig,
    AdapterFactory,
    ConnectionStatus,
    GatewayUnavailable,
    TextGenerationAdapter,
)

__all__ = [
    "AdapterConfig",
    "AdapterFactory",
    "ConnectionStatus",
    "GatewayUnavailable",
    "TextGenerationAdapter",
]
