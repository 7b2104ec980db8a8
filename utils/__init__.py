"""
Utils package - Helper utilities for the widget runner
"""
from .helpers import (
    save_screenshot,
    shorten
)

__all__ = [
    'save_screenshot',
    'shorten'
]
