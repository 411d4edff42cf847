import json
import logging
from pathlib import Path
from typing import Dict, Any

from core.catalog import DEFAULT_CATALOG_URL
from core.domain import DEFAULT_SKIP_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("~/.podcue/settings.json").expanduser()

DEFAULT_SETTINGS: Dict[str, Any] = {
    "player_executable": "mpv",
    "storage_file": "~/.podcue/store.json",
    "catalog_url": DEFAULT_CATALOG_URL,
    "catalog_timeout": 10,
    "skip_seconds": DEFAULT_SKIP_SECONDS,
    "log_level": "INFO",
}


def load_settings(settings_path: Path = DEFAULT_SETTINGS_PATH) -> Dict[str, Any]:
    """Loads application settings from a JSON file, filling in defaults."""
    settings = dict(DEFAULT_SETTINGS)
    if not settings_path.exists():
        return settings

    try:
        with open(settings_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Could not read settings from %s, using defaults: %s", settings_path, e)
        return settings

    if not isinstance(raw, dict):
        return settings

    for key in DEFAULT_SETTINGS:
        if raw.get(key) is not None:
            settings[key] = raw[key]
    return settings


def save_settings(settings: Dict[str, Any], settings_path: Path = DEFAULT_SETTINGS_PATH) -> None:
    """Saves application settings to a JSON file."""
    payload = {key: settings.get(key, default) for key, default in DEFAULT_SETTINGS.items()}
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    with open(settings_path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=4)


def storage_path(settings: Dict[str, Any]) -> Path:
    return Path(settings.get("storage_file") or DEFAULT_SETTINGS["storage_file"]).expanduser()
