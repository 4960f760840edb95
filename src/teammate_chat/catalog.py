"""Fixed catalogs of reasoning-depth modes and agent models.

Both tables are process-wide and immutable; everything else refers to an
entry by its ``id``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class ThinkingMode:
    """Reasoning depth the agent is asked to use for a message."""

    id: str
    name: str
    description: str
    phrase: str | None = None


@dataclass(frozen=True)
class ModelOption:
    """Agent model that can be selected from the composer."""

    id: str
    name: str
    description: str


THINKING_MODES: tuple[ThinkingMode, ...] = (
    ThinkingMode("auto", "Auto", "Let the agent decide how much to think"),
    ThinkingMode("think", "Think", "Basic reasoning", "think"),
    ThinkingMode("think_hard", "Think Hard", "Deeper analysis", "think hard"),
    ThinkingMode(
        "think_harder", "Think Harder", "Extensive reasoning", "think harder"
    ),
    ThinkingMode("ultrathink", "Ultrathink", "Maximum computation", "ultrathink"),
)

MODELS: tuple[ModelOption, ...] = (
    ModelOption("sonnet", "Sonnet", "Faster, efficient for most tasks"),
    ModelOption("opus", "Opus", "More capable, better for complex tasks"),
)

DEFAULT_THINKING_MODE = "auto"
DEFAULT_MODEL = "sonnet"

_THINKING_BY_ID = MappingProxyType({mode.id: mode for mode in THINKING_MODES})
_MODELS_BY_ID = MappingProxyType({model.id: model for model in MODELS})


def get_thinking_mode(mode_id: str) -> ThinkingMode:
    """Return the thinking mode for ``mode_id``.

    Raises:
        KeyError: If the id is not in the catalog
    """
    return _THINKING_BY_ID[mode_id]


def get_model(model_id: str) -> ModelOption:
    """Return the model for ``model_id``.

    Raises:
        KeyError: If the id is not in the catalog
    """
    return _MODELS_BY_ID[model_id]


def is_thinking_mode(mode_id: str) -> bool:
    return mode_id in _THINKING_BY_ID


def is_model(model_id: str) -> bool:
    return model_id in _MODELS_BY_ID


def depth_phrase(mode_id: str) -> str | None:
    """Return the phrase appended for ``mode_id``; None for the default mode."""
    return get_thinking_mode(mode_id).phrase


def apply_depth_phrase(text: str, mode_id: str) -> str:
    """Append the reasoning-depth phrase for a non-default mode."""
    phrase = depth_phrase(mode_id)
    if not phrase:
        return text
    return f"{text}.\n\n{phrase}."
