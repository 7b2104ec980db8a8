"""
Configuration settings for the Events Widget autotests
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Central configuration class"""

    # Target widget
    BASE_URL = os.getenv('WIDGET_BASE_URL', 'https://dev.3snet.info')
    WIDGET_PATH = os.getenv('WIDGET_PATH', '/eventswidget/')

    # Browser settings
    BROWSER_HEADLESS = _env_flag('BROWSER_HEADLESS', _env_flag('CI', True))
    VIEWPORT_WIDTH = 1280
    VIEWPORT_HEIGHT = 720
    NAVIGATION_TIMEOUT = 30000  # milliseconds
    ACTION_TIMEOUT = 10000  # milliseconds
    CLIPBOARD_PERMISSIONS = ['clipboard-read', 'clipboard-write']

    # Engine timing (milliseconds)
    STRATEGY_TIMEOUT_MS = int(os.getenv('STRATEGY_TIMEOUT_MS', '2000'))
    VERIFY_TIMEOUT_MS = int(os.getenv('VERIFY_TIMEOUT_MS', '3000'))
    OVERLAY_TIMEOUT_MS = int(os.getenv('OVERLAY_TIMEOUT_MS', '2000'))
    PREVIEW_TIMEOUT_MS = int(os.getenv('PREVIEW_TIMEOUT_MS', '5000'))
    POLL_INTERVAL_MS = 100

    # checkselect plugin markup
    OVERLAY_SELECTOR = '.checkselect-over'
    PANEL_SELECTOR = '.checkselect-popup'
    THEME_CHECKBOX_SIGNATURE = 'input[type="checkbox"][name="type"]'
    COUNTRY_CHECKBOX_SIGNATURE = 'input[type="checkbox"][name="country"]'

    # Output directories
    OUTPUT_DIR = Path(os.getenv('WIDGET_OUTPUT_DIR', 'widget_test_output'))

    @classmethod
    def widget_url(cls) -> str:
        return cls.BASE_URL.rstrip('/') + cls.WIDGET_PATH

    @classmethod
    def validate(cls):
        """Validate that the timing and target settings make sense"""
        if not cls.BASE_URL.startswith(('http://', 'https://')):
            raise ValueError(f"WIDGET_BASE_URL must be an http(s) URL, got {cls.BASE_URL!r}")
        for name in ('STRATEGY_TIMEOUT_MS', 'VERIFY_TIMEOUT_MS', 'OVERLAY_TIMEOUT_MS', 'PREVIEW_TIMEOUT_MS'):
            if getattr(cls, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if cls.POLL_INTERVAL_MS >= cls.VERIFY_TIMEOUT_MS:
            raise ValueError("POLL_INTERVAL_MS must be shorter than VERIFY_TIMEOUT_MS")
