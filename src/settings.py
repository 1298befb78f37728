"""
Settings loader for settings.yaml.

Usage:
    from src.settings import settings

    level = settings.logging.level
    strict = settings.activation.raise_on_missing_required
"""

import yaml
from pathlib import Path
from typing import List, Any


# Path to the settings file
SETTINGS_FILE = Path(__file__).parent / "settings.yaml"

# Defaults (used when a key is missing from the YAML file)
DEFAULTS = {
    "logging": {
        "level": "INFO",
    },
    "activation": {
        "log_each_decision": False,
        "raise_on_missing_required": True,
        "cache_type_lookups": True,
        "default_precedence": 0,
    },
    "catalog": {
        "include_builtin": True,
    },
}


class DotDict(dict):
    """Dict with attribute access: d.key instead of d['key']"""

    def __getattr__(self, key: str) -> Any:
        try:
            value = self[key]
            if isinstance(value, dict):
                return DotDict(value)
            return value
        except KeyError:
            raise AttributeError(f"Setting '{key}' not found")

    def __setattr__(self, key: str, value: Any) -> None:
        self[key] = value

    def get_nested(self, path: str, default: Any = None) -> Any:
        """Get a value by dotted path: 'activation.log_each_decision'"""
        keys = path.split('.')
        value = self
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge of dicts (override wins over base)"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_settings(filepath: Path = None) -> DotDict:
    """
    Load settings from a YAML file.

    Priority order:
    1. Values from the YAML file (highest)
    2. DEFAULTS

    Args:
        filepath: Path to the settings file (settings.yaml by default)

    Returns:
        DotDict with settings
    """
    filepath = filepath or SETTINGS_FILE

    # Start from defaults
    config = _deep_merge({}, DEFAULTS)  # deep copy

    if filepath.exists():
        with open(filepath, "r", encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        config = _deep_merge(config, yaml_config)
    else:
        print(f"[settings] Settings file not found: {filepath}")
        print("[settings] Using defaults")

    return DotDict(config)


def validate_settings(settings: DotDict) -> List[str]:
    """
    Validate settings.

    Returns:
        List of errors (empty if everything is OK)
    """
    errors = []

    level = settings.logging.level
    if not isinstance(level, str) or level.upper() not in (
        "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
    ):
        errors.append(f"logging.level has unknown value {level!r}")

    for name in ("log_each_decision", "raise_on_missing_required", "cache_type_lookups"):
        if not isinstance(settings.activation.get(name), bool):
            errors.append(f"activation.{name} must be a boolean")

    precedence = settings.activation.get("default_precedence")
    if isinstance(precedence, bool) or not isinstance(precedence, int):
        errors.append("activation.default_precedence must be an integer")

    if not isinstance(settings.catalog.get("include_builtin"), bool):
        errors.append("catalog.include_builtin must be a boolean")

    return errors


# Global settings instance (lazy)
_settings = None


def get_settings() -> DotDict:
    """Get the global settings (singleton)"""
    global _settings
    if _settings is None:
        _settings = load_settings()
        errors = validate_settings(_settings)
        if errors:
            print("[settings] Invalid settings:")
            for err in errors:
                print(f"  - {err}")
    return _settings


def reload_settings() -> DotDict:
    """Reload settings from file"""
    global _settings
    _settings = None
    return get_settings()


# For convenient import: from src.settings import settings
settings = get_settings()


# =============================================================================
# CLI for inspecting settings
# =============================================================================

if __name__ == "__main__":
    import json

    print("=" * 60)
    print("CURRENT SETTINGS")
    print("=" * 60)

    s = load_settings()

    errors = validate_settings(s)
    if errors:
        print("\n[!] ERRORS:")
        for err in errors:
            print(f"  - {err}")
    else:
        print("\n[+] All settings are valid")

    print("\n" + "-" * 60)
    print(json.dumps(dict(s), indent=2, ensure_ascii=False))
