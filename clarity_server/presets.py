# clarity_server/presets.py
# ---------------------------------------------------------
# Quick-routine presets: one emotional / contextual mode each,
# with the fixed text shown in the app and fed to the model.
# ---------------------------------------------------------

from enum import Enum
from typing import NamedTuple, Optional


class PresetText(NamedTuple):
    title: str
    subtitle: str
    description: str


class Preset(Enum):
    OVERWHELMED = "overwhelmed"
    FIVE_MIN = "fiveMin"
    GUESTS = "guests"
    LOW_ENERGY = "lowEnergy"

    @property
    def text(self) -> PresetText:
        return PRESET_TEXT[self]

    @property
    def title(self) -> str:
        return self.text.title

    @property
    def subtitle(self) -> str:
        return self.text.subtitle

    @property
    def description(self) -> str:
        return self.text.description


PRESET_TEXT = {
    Preset.OVERWHELMED: PresetText(
        title="I feel overwhelmed",
        subtitle="A gentle reset when everything feels too much.",
        description=(
            "User feels overwhelmed. Needs very gentle, kind, tiny steps. "
            "Focus on calming + visible relief."
        ),
    ),
    Preset.FIVE_MIN: PresetText(
        title="5-minute reset",
        subtitle="A quick reset to regain clarity.",
        description=(
            "Exactly a 5-minute reset. Keep it tight. "
            "Prioritize visible wins in one small area."
        ),
    ),
    Preset.GUESTS: PresetText(
        title="Guests are coming",
        subtitle="Make your space presentable fast.",
        description=(
            "Guests are coming soon. Focus on areas guests see first: "
            "entryway, main surfaces, quick bathroom check."
        ),
    ),
    Preset.LOW_ENERGY: PresetText(
        title="Low-energy mode",
        subtitle="Very small steps for difficult days.",
        description=(
            "User is in very low energy. Steps must be extremely small, "
            "sit-friendly if possible, and permission to stop."
        ),
    ),
}

# used when the client sends a preset we don't know (kept for older app builds)
GENERIC_PRESET_TEXT = PresetText(
    title="Quick routine",
    subtitle="",
    description="Generic quick routine",
)


def lookup_preset(name: Optional[str]) -> Optional[Preset]:
    try:
        return Preset(name)
    except ValueError:
        return None


def preset_text(name: Optional[str]) -> PresetText:
    """Text for a preset name, falling back to the generic triple."""
    preset = lookup_preset(name)
    return preset.text if preset else GENERIC_PRESET_TEXT
