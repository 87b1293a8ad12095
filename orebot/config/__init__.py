from .settings import (
    AdvancedConfig,
    Settings,
    TimingConfig,
    default_settings,
    load_settings,
    save_settings,
    settings_from_dict,
    settings_to_dict,
    validate_settings,
)

__all__ = [
    "AdvancedConfig",
    "Settings",
    "TimingConfig",
    "default_settings",
    "load_settings",
    "save_settings",
    "settings_from_dict",
    "settings_to_dict",
    "validate_settings",
]
