"""
Gateways for Guide Circle

This package wraps the text-generation capability in the two services the
orchestrator consumes: the moderation gateway and the Guide authoring gateway.
"""

from guidecircle.gateways.authoring import GuideAuthoringGateway
from guidecircle.gateways.moderation import ModerationGateway

__all__ = ["GuideAuthoringGateway", "ModerationGateway"]
