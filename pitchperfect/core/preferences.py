"""User preferences kept in device-local storage.

Each getter degrades to its default when storage is unavailable or the stored
value is invalid.
"""

from dataclasses import dataclass
from enum import Enum

from pitchperfect.core.local_storage import KeyValueStorage
from pitchperfect.core.logging import get_logger

logger = get_logger(__name__)

DURATION_KEY = "pitchperfect_preferred_duration"
THEME_KEY = "pitchperfect-theme"
SOUND_KEY = "pitchperfect_sound_enabled"

DEFAULT_DURATION = 3.0


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


@dataclass(frozen=True)
class DurationPreset:
    value: float
    label: str
    description: str


DURATION_PRESETS: tuple[DurationPreset, ...] = (
    DurationPreset(0.5, "30s", "Elevator Pitch"),
    DurationPreset(1, "1 min", "Quick Intro"),
    DurationPreset(2, "2 min", "Standard"),
    DurationPreset(3, "3 min", "Hackathon"),
    DurationPreset(5, "5 min", "Demo Day"),
    DurationPreset(10, "10 min", "Investor Meeting"),
)


def get_stored_duration(storage: KeyValueStorage) -> float:
    """Preferred pitch duration in minutes (default 3)."""
    stored = storage.get_item(DURATION_KEY)
    if stored:
        try:
            parsed = float(stored)
        except ValueError:
            logger.debug(f"Ignoring invalid stored duration: {stored!r}")
        else:
            if parsed > 0:
                return parsed
    return DEFAULT_DURATION


def save_duration(storage: KeyValueStorage, duration: float) -> None:
    if duration <= 0:
        raise ValueError("Duration must be positive")
    storage.set_item(DURATION_KEY, f"{duration:g}")


def format_duration_label(duration: float) -> str:
    if duration < 1:
        return f"{round(duration * 60)}s"
    return f"{duration:g} min"


def get_preset_info(duration: float) -> DurationPreset:
    for preset in DURATION_PRESETS:
        if preset.value == duration:
            return preset
    return DurationPreset(duration, format_duration_label(duration), "Custom")


def get_theme(storage: KeyValueStorage) -> Theme:
    stored = storage.get_item(THEME_KEY)
    try:
        return Theme(stored) if stored else Theme.SYSTEM
    except ValueError:
        return Theme.SYSTEM


def save_theme(storage: KeyValueStorage, theme: Theme) -> None:
    storage.set_item(THEME_KEY, Theme(theme).value)


def is_sound_enabled(storage: KeyValueStorage) -> bool:
    # Only an explicit "false" turns sound off
    return storage.get_item(SOUND_KEY) != "false"


def set_sound_enabled(storage: KeyValueStorage, enabled: bool) -> None:
    storage.set_item(SOUND_KEY, "true" if enabled else "false")
