"""
Prompt templates for the Guide.

Every call to the text-generation backend is a single, fully rendered prompt.
The templates below cover the three jobs the Guide performs: screening an
utterance, bridging two phases and answering a participant's question.
"""

from typing import Sequence

from guidecircle.protocol.message import Entry, speaker_label
from guidecircle.protocol.phases import PhaseDefinition, Topic

SAFETY_CHECK_TEMPLATE = """You are "Guide", a facilitator for a conflict resolution platform.
Analyze this message for hostility, insults, or dismissiveness.
Message: "{utterance}"
Return JSON: {{ "status": "approved" }} OR {{ "status": "rejected", "title": "Issue", "message": "Feedback" }}"""

TRANSITION_TEMPLATE = """You are "Guide", the facilitator of a structured dialogue about {topic}.
The previous goal was: "{from_goal}".
The NEXT goal is: "{to_goal}".

Transcript:
{transcript}

Task:
1. Briefly acknowledge the perspectives just shared (1 sentence).
2. Transition naturally to the next step.
3. Ask the specific question/prompt for the next phase based on the transcript.

Constraints:
- Do NOT say "Phase X" or "The next phase is...".
- Do NOT use labels like "{forbidden_labels}".
- Make the transition feel like a natural conversation flow.
- Keep it encouraging and concise."""

ANSWER_TEMPLATE = """You are "Guide", a neutral, helpful facilitator in a dialogue about {topic}.
Current Phase: {phase_title} ({phase_goal}).

The user just asked you: "{question}"

Context of conversation so far:
{transcript}

Task:
Answer the user's question or clarify the current task.
- If they are stuck, give a small hint.
- If they are confused, clarify the goal.
- Do NOT take sides on the topic.
- Be brief (max 2 sentences)."""


def format_transcript(history: Sequence[Entry]) -> str:
    """Render transcript entries as `Speaker: text` lines."""
    return "\n".join(f"{speaker_label(entry)}: {entry.text}" for entry in history)


def build_safety_prompt(utterance: str) -> str:
    return SAFETY_CHECK_TEMPLATE.format(utterance=utterance)


def build_transition_prompt(
    history: Sequence[Entry],
    from_phase: PhaseDefinition,
    to_phase: PhaseDefinition,
    topic: Topic
) -> str:
    """
    Build the prompt asking the Guide to bridge two phases.

    Phase titles are internal; the prompt names them only to forbid the
    model from repeating them.
    """
    return TRANSITION_TEMPLATE.format(
        topic=Topic(topic).value,
        from_goal=from_phase.goal,
        to_goal=to_phase.goal,
        transcript=format_transcript(history),
        forbidden_labels='", "'.join((from_phase.title, to_phase.title)),
    )


def build_answer_prompt(
    history: Sequence[Entry],
    question: str,
    topic: Topic,
    phase: PhaseDefinition
) -> str:
    """Build the prompt asking the Guide to answer a participant's question."""
    return ANSWER_TEMPLATE.format(
        topic=Topic(topic).value,
        phase_title=phase.title,
        phase_goal=phase.goal,
        question=question,
        transcript=format_transcript(history),
    )
