"""Prompt and response schema for procedural scene configuration."""

import json

from nexus_learn.models.simulation import SceneConfig

SCENE_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "objects": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "type": {
                        "type": "STRING",
                        "enum": ["BEAKER", "FLASK", "SPHERE", "CUBE", "PLANE", "CYLINDER"],
                    },
                    "position": {"type": "ARRAY", "items": {"type": "NUMBER"}},
                    "scale": {"type": "ARRAY", "items": {"type": "NUMBER"}},
                    "color": {"type": "STRING"},
                    "label": {"type": "STRING"},
                    "liquidColor": {"type": "STRING"},
                    "liquidLevel": {"type": "NUMBER"},
                },
                "required": ["id", "type", "position"],
            },
        },
        "lightingColor": {"type": "STRING"},
        "environment": {"type": "STRING", "enum": ["LAB", "SPACE", "DEFAULT"]},
    },
    "required": ["objects"],
}

SYSTEM_PROMPT = (
    "You design simple 3D scenes for an educational physics and chemistry "
    "visualizer. Use only the primitives BEAKER, FLASK, SPHERE, CUBE, PLANE "
    "and CYLINDER. Every object needs a unique id and a position [x, y, z]. "
    "Containers may carry liquidColor and a liquidLevel between 0 and 1. "
    "Always include a ground PLANE. Reply with JSON only."
)


def build_prompt(topic: str, description: str, previous: SceneConfig | None) -> str:
    """User prompt for a scene; the previous scene is the seed to evolve."""
    lines = [f"Topic: {topic}", f"Current situation: {description}"]
    if previous is None:
        lines.append("Create the complete baseline scene for this situation.")
    else:
        seed = json.dumps(previous.model_dump(mode="json", by_alias=True, exclude_none=True))
        lines.append(f"Current scene: {seed}")
        lines.append(
            "Update this scene to reflect the situation. Keep the ids of objects "
            "that persist, move or restyle them instead of recreating them, and "
            "add or remove objects only when the situation requires it."
        )
    return "\n".join(lines)
