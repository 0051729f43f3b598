"""
Signage Player Configuration

Central configuration file for all constants and settings.
Environment variables provide the defaults, an optional YAML file and the
command line override them.
"""
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

# Upstream signage API
API_URL = os.getenv("SIGNAGE_API_URL", "http://localhost:3001")
DEVICE_KEY = os.getenv("SIGNAGE_DEVICE_KEY", "")
API_TOKEN = os.getenv("SIGNAGE_API_TOKEN", "")

# Request timeouts (seconds)
FETCH_TIMEOUT = float(os.getenv("SIGNAGE_FETCH_TIMEOUT", "10"))
HEARTBEAT_TIMEOUT = float(os.getenv("SIGNAGE_HEARTBEAT_TIMEOUT", "5"))

# Player loop timing (seconds)
POLL_INTERVAL = 30
HEARTBEAT_INTERVAL = 60
TRANSITION_DURATION = 0.5
DEFAULT_SLIDE_DURATION = 10

# Retry backoff for an unreachable API: min(BASE * FACTOR^n, CAP)
RETRY_BASE_DELAY = 5.0
RETRY_BACKOFF_FACTOR = 1.5
RETRY_MAX_DELAY = 30.0

# Server Configuration
DEFAULT_PORT = 8000
PRODUCTION_PORT = 80

# Kiosk browser
KIOSK_ENABLED = os.getenv("SIGNAGE_KIOSK", "0").strip().lower() in {"1", "true", "yes", "on"}
KIOSK_DISPLAY = os.getenv("SIGNAGE_KIOSK_DISPLAY", ":0")
KIOSK_BROWSER = os.getenv("SIGNAGE_KIOSK_BROWSER", "chromium-browser")
KIOSK_PROFILE_DIR = "/tmp/chromium-signage-player"

CONFIG_PATH = os.getenv(
    "SIGNAGE_CONFIG",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "player.yaml"),
)


@dataclass
class PlayerSettings:
    """Runtime settings for one player process (one physical display)."""

    device_key: str = DEVICE_KEY
    api_url: str = API_URL
    api_token: str = API_TOKEN

    fetch_timeout: float = FETCH_TIMEOUT
    heartbeat_timeout: float = HEARTBEAT_TIMEOUT

    poll_interval: float = POLL_INTERVAL
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    transition_duration: float = TRANSITION_DURATION
    default_slide_duration: float = DEFAULT_SLIDE_DURATION

    retry_base_delay: float = RETRY_BASE_DELAY
    retry_backoff_factor: float = RETRY_BACKOFF_FACTOR
    retry_max_delay: float = RETRY_MAX_DELAY

    port: int = DEFAULT_PORT
    kiosk_enabled: bool = KIOSK_ENABLED
    kiosk_display: str = KIOSK_DISPLAY
    kiosk_browser: str = KIOSK_BROWSER
    window_width: int = 1920
    window_height: int = 1080

    def __post_init__(self):
        self.api_url = (self.api_url or API_URL).strip().rstrip("/")
        self.device_key = (self.device_key or "").strip()

    def local_url(self) -> str:
        """URL of the kiosk page served by this process"""
        return f"http://localhost:{self.port}/"

    def apply(self, overrides: dict) -> None:
        """Apply known keys from a mapping, ignoring None values and unknown keys"""
        known = {f.name for f in fields(self)}
        for key, value in overrides.items():
            if value is None:
                continue
            if key not in known:
                logging.warning(f"Ignoring unknown player setting: {key}")
                continue
            setattr(self, key, value)
        self.__post_init__()


def load_settings(path: Optional[str] = None, **overrides) -> PlayerSettings:
    """
    Build player settings from environment defaults, the YAML file and overrides.

    Args:
        path: YAML file to read (defaults to CONFIG_PATH); a missing file is fine
        **overrides: Final values, typically from command line flags

    Returns:
        PlayerSettings instance
    """
    settings = PlayerSettings()
    config_path = Path(path or CONFIG_PATH)

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError("top level must be a mapping")
            settings.apply(data)
            logging.info(f"Loaded player config from {config_path}")
        except (OSError, ValueError, yaml.YAMLError) as e:
            logging.error(f"Failed to load player config {config_path}: {e}")
    elif path:
        logging.warning(f"Player config not found at {config_path}")

    settings.apply(overrides)
    return settings
