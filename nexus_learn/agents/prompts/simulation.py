"""Prompt and response schema for narrative simulation turns."""

from nexus_learn.models.common import ScenarioKind

START_ACTION = "Begin the simulation and describe the opening scene."

TURN_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "description": {"type": "STRING"},
        "options": {"type": "ARRAY", "items": {"type": "STRING"}},
        "isEnded": {"type": "BOOLEAN"},
        "shouldUpdateVisuals": {"type": "BOOLEAN"},
        "report": {
            "type": "OBJECT",
            "properties": {
                "score": {"type": "INTEGER"},
                "evaluation": {"type": "STRING"},
                "keyLearnings": {"type": "ARRAY", "items": {"type": "STRING"}},
                "suggestions": {"type": "STRING"},
            },
        },
    },
    "required": ["description", "isEnded", "shouldUpdateVisuals"],
}

_KIND_FOCUS: dict[ScenarioKind, str] = {
    ScenarioKind.HISTORY: "historical accuracy and cause and effect between events",
    ScenarioKind.CHEMISTRY: "laboratory procedure, reactions and safety",
    ScenarioKind.PHYSICS: "physical quantities, forces and observable motion",
    ScenarioKind.LITERATURE: "characters, themes and the author's style",
    ScenarioKind.CODING: "program design, debugging and reasoning about code",
    ScenarioKind.CUSTOM: "whatever the learner set out to explore",
}


def build_system_prompt(kind: ScenarioKind, context: str, language: str) -> str:
    """System instruction for one turn of an immersive educational simulation."""
    return (
        "You are an advanced immersive educational simulation engine.\n"
        f"Setting: {context or 'open-ended learning scenario'}.\n"
        f"Focus on {_KIND_FOCUS[kind]}.\n\n"
        "Your task:\n"
        "1. Advance the scene according to the user action.\n"
        "2. Reply with JSON only, no markdown or extra text.\n"
        "3. Decide whether the simulation should end (isEnded).\n"
        "4. If it has not ended, offer exactly 3 suggested actions (options).\n"
        "5. Set shouldUpdateVisuals to true only when the visible scene changes "
        "materially.\n"
        "6. When the simulation ends, include a report with a score from 0 to "
        "100, an evaluation, keyLearnings and suggestions.\n\n"
        f"Write in {language}."
    )


def build_user_turn(action: str) -> str:
    return f"User action: {action}"
