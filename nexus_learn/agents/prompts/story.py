"""Prompts and response schemas for the interactive story mode."""

ROLE_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "role": {"type": "STRING"},
        "visualPrompt": {"type": "STRING"},
    },
    "required": ["role", "visualPrompt"],
}

SCENE_RESPONSE_SCHEMA: dict = {
    "type": "OBJECT",
    "properties": {
        "narrative": {"type": "STRING"},
        "visualPrompt": {"type": "STRING"},
        "interactables": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "label": {"type": "STRING"},
                    "type": {"type": "STRING", "enum": ["EXAMINE", "PICKUP", "TRANSITION"]},
                    "description": {"type": "STRING"},
                },
                "required": ["id", "label", "type", "description"],
            },
        },
    },
    "required": ["narrative", "visualPrompt", "interactables"],
}

START_ACTION = "Begin exploring."
CONTINUE_ACTION = "(continue the story / look around)"
HISTORY_WINDOW = 3


def build_role_prompt(theme: str, language: str) -> str:
    return (
        "You are an RPG character generator.\n"
        f'For the theme "{theme}", produce the player role and a portrait prompt.\n'
        "visualPrompt must be short, in English, describe facial features, "
        "style Digital Art.\n"
        f"Write the role in {language}. "
        'Output JSON: { "role": "string", "visualPrompt": "string" }'
    )


def build_scene_prompt(theme: str, role: str, language: str) -> str:
    return (
        f"You are a puzzle adventure engine. Theme: {theme}. Role: {role}.\n\n"
        "Task:\n"
        "1. Write the next short narrative beat from the history and the action.\n"
        "2. Write an image prompt (visualPrompt) for the environment: English, "
        "short and direct.\n"
        "3. Offer 1-3 interactables.\n\n"
        f"Write the narrative in {language}. Output JSON."
    )


def build_scene_contents(history: list[str], action: str) -> list[tuple[str, str]]:
    """Recent history as a recap, then the action, as (role, text) pairs."""
    turns: list[tuple[str, str]] = []
    if history:
        recap = "\n".join(history[-HISTORY_WINDOW:])
        turns.append(("user", f"Previously:\n{recap}"))
        turns.append(("model", "Understood, please continue."))
    turns.append(("user", f"Current action: {action}"))
    return turns
