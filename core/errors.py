"""
Typed failures raised by the interaction engine.

Every error carries the intent that failed (option name, control name) so a
test report says *what* could not be done, not only that something broke.
"""
from typing import List, Optional


class WidgetEngineError(Exception):
    """Base class for all engine failures"""

    def __init__(self, intent: str, message: str):
        self.intent = intent
        super().__init__(f"{intent}: {message}")


class NotFoundError(WidgetEngineError):
    """The semantic target resolved to zero elements across all strategies"""

    def __init__(self, intent: str, tried: Optional[List[str]] = None):
        self.tried = tried or []
        detail = f"no element matched (tried: {', '.join(self.tried)})" if self.tried else "no element matched"
        super().__init__(intent, detail)


class ActionUnreachableError(WidgetEngineError):
    """Elements were found but every dispatch strategy threw or timed out"""

    def __init__(self, intent: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        detail = "every strategy failed"
        if self.errors:
            detail += ": " + " | ".join(self.errors)
        super().__init__(intent, detail)


class VerificationTimeoutError(WidgetEngineError):
    """The action was dispatched but the expected post-state never appeared"""

    def __init__(self, intent: str, expected: str, observed, timeout_ms: int):
        self.expected = expected
        self.observed = observed
        self.timeout_ms = timeout_ms
        super().__init__(intent, f"expected {expected}, observed {observed!r} after {timeout_ms} ms")


class ExternalUnavailableError(WidgetEngineError):
    """An optional capability (clipboard, dialogs) is absent in this context"""

    def __init__(self, capability: str, reason: str = "unavailable"):
        self.capability = capability
        super().__init__(capability, reason)
