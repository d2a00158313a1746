"""
Runtime Configuration Module

Holds the user-editable engine settings (history depth, autosave cadence).
Defaults come from config.py; an instance is created by the host and passed
to the services that need it.
"""
from dataclasses import dataclass, asdict

from config import (
    MAX_HISTORY_SIZE,
    AUTOSAVE_ENABLED,
    AUTOSAVE_INTERVAL_SECONDS,
    AUTOSAVE_MIN_INTERVAL_SECONDS,
    MAX_AUTOSAVES,
)


@dataclass
class RuntimeConfig:
    """
    Runtime configuration that can be modified from a settings screen.

    These settings are saved/loaded alongside user preferences, not inside
    the project snapshot.
    """
    # History
    max_history_size: int = MAX_HISTORY_SIZE

    # Autosave
    autosave_enabled: bool = AUTOSAVE_ENABLED
    autosave_interval: float = AUTOSAVE_INTERVAL_SECONDS  # Nominal tick
    autosave_min_interval: float = AUTOSAVE_MIN_INTERVAL_SECONDS
    max_autosaves: int = MAX_AUTOSAVES

    def to_dict(self) -> dict:
        """Convert to dictionary for preference save."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RuntimeConfig":
        """Create from dictionary for preference load."""
        # Filter only known fields to avoid errors with old/new config versions
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered_data)

    def reset_to_defaults(self):
        """Reset all settings to default values from config.py."""
        self.max_history_size = MAX_HISTORY_SIZE
        self.autosave_enabled = AUTOSAVE_ENABLED
        self.autosave_interval = AUTOSAVE_INTERVAL_SECONDS
        self.autosave_min_interval = AUTOSAVE_MIN_INTERVAL_SECONDS
        self.max_autosaves = MAX_AUTOSAVES
