"""Visualization mode gate, evaluated once per run at initialize."""

from nexus_learn.models.common import ScenarioKind, VisualStyle

SCIENTIFIC_KINDS = frozenset(
    {ScenarioKind.HISTORY, ScenarioKind.PHYSICS, ScenarioKind.CHEMISTRY}
)


def is_scientific(kind: ScenarioKind) -> bool:
    """Scientific kinds may choose the procedural-scene visualization."""
    return kind in SCIENTIFIC_KINDS


def initial_visual_style(kind: ScenarioKind) -> VisualStyle | None:
    """Style fixed at initialize, or None when the user must choose."""
    return None if is_scientific(kind) else VisualStyle.ARTISTIC
