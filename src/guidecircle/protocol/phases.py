"""
Phase Catalog for Guide Circle.

This module defines the dialogue topics and the fixed, ordered script of six
phases the Guide walks both participants through.
"""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


class Topic(str, Enum):
    """Topics a dialogue can be held on."""

    IMMIGRATION_POLICY = "Immigration Policy"
    CLIMATE_CHANGE = "Climate Change"
    HEALTHCARE_ACCESS = "Healthcare Access"
    ECONOMIC_FAIRNESS = "Economic Fairness"


class PhaseDefinition(BaseModel):
    """A single stage of the facilitation script."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="1-based position in the script")
    title: str = Field(..., description="Internal label, never shown in Guide messages")
    goal: str = Field(..., description="What the phase tries to achieve")
    prompt_template: str = Field(..., description="Opening prompt, may reference {topic}")

    def opening_prompt(self, topic: Topic) -> str:
        """Render the phase's opening prompt for a topic."""
        return self.prompt_template.format(topic=Topic(topic).value)


PHASES: Tuple[PhaseDefinition, ...] = (
    PhaseDefinition(
        id=1,
        title="Curiosity Ignition",
        goal="Surface initial views and motivations without debate",
        prompt_template=(
            'To get us started, could you share a personal story? '
            'When did "{topic}" start to matter to you personally?'
        ),
    ),
    PhaseDefinition(
        id=2,
        title="Context Exchange",
        goal="Share lived context or formative experience",
        prompt_template=(
            "Can you describe an experience that shaped how YOU see this issue? "
            "What was happening in your life at the time?"
        ),
    ),
    PhaseDefinition(
        id=3,
        title="Perspective Mirror",
        goal="Reflect back what you heard (active listening check)",
        prompt_template=(
            "Before exploring differences, reflect back what you heard the other "
            "person say. Focus on their values."
        ),
    ),
    PhaseDefinition(
        id=4,
        title="Gentle Contrast",
        goal="Notice differences without arguing",
        prompt_template=(
            "Where do you think your perspectives diverge? "
            "Not what's 'right' or 'wrong', just where you differ."
        ),
    ),
    PhaseDefinition(
        id=5,
        title="Shared Insight",
        goal="Find overlap or human commonality",
        prompt_template="Despite your different perspectives, what do you hear in common?",
    ),
    PhaseDefinition(
        id=6,
        title="Reflection & Close",
        goal="Capture takeaway and update Civility Profile",
        prompt_template=(
            "What surprised you about the other perspective? "
            "What might you carry forward?"
        ),
    ),
)

FIRST_PHASE = PHASES[0].id
FINAL_PHASE = PHASES[-1].id


def get_phase(phase_id: int) -> PhaseDefinition:
    """
    Look up a phase by its 1-based id.

    Raises:
        KeyError: If no phase has the given id
    """
    if not FIRST_PHASE <= phase_id <= FINAL_PHASE:
        raise KeyError(f"Unknown phase id: {phase_id}")
    return PHASES[phase_id - 1]


def welcome_message(topic: Topic) -> str:
    """Text of the Guide's opening message for a new session."""
    topic = Topic(topic)
    return (
        f'Welcome. I am "Guide". I\'ll be facilitating your dialogue on '
        f'"{topic.value}". {PHASES[0].opening_prompt(topic)}'
    )
