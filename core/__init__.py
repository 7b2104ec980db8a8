"""
Core package - models, typed errors and session logging
"""
from .errors import (
    WidgetEngineError,
    NotFoundError,
    ActionUnreachableError,
    VerificationTimeoutError,
    ExternalUnavailableError
)
from .logger import EngineLogger

__all__ = [
    'WidgetEngineError',
    'NotFoundError',
    'ActionUnreachableError',
    'VerificationTimeoutError',
    'ExternalUnavailableError',
    'EngineLogger'
]
