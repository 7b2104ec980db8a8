import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Pattern, List

from playwright.async_api import Locator

# Patterns are shipped to the browser as JS regexes; only escape what both dialects share
_REGEX_SPECIALS = re.compile(r'([.*+?^${}()|\[\]\\/])')


def escape_pattern(text: str) -> str:
    return _REGEX_SPECIALS.sub(r'\\\1', text)


class ElementKind(Enum):
    CHECKBOX = 'input[type="checkbox"]'
    RADIO = 'input[type="radio"]'
    TEXT_INPUT = 'input[type="text"], input[type="number"], input:not([type]), textarea'
    COMBOBOX = 'select, [role="combobox"]'
    LABEL = 'label'
    CHOICE = 'label, input[type="radio"]'

    @property
    def selector(self) -> str:
        return self.value


class Relationship(Enum):
    """How far above the label text the control may sit"""
    DESCENDANT = 0
    SIBLING = 1
    ANCESTOR = 2

    @property
    def max_hops(self) -> int:
        return self.value


@dataclass(frozen=True)
class SemanticTarget:
    """What to find: a label pattern, a relationship and a kind filter"""
    label: str
    kind: ElementKind
    relationship: Relationship = Relationship.ANCESTOR
    exact: bool = False
    signature: Optional[str] = None  # attribute selector used by the global scan

    def pattern(self) -> Pattern:
        text = escape_pattern(self.label.strip())
        if self.exact:
            text = f"^{text}$"
        return re.compile(text, re.IGNORECASE)

    def search_pattern(self) -> Pattern:
        return re.compile(escape_pattern(self.label.strip()), re.IGNORECASE)

    @property
    def scan_selector(self) -> str:
        return self.signature or self.kind.selector

    def describe(self) -> str:
        return f"{self.kind.name.lower()} near '{self.label}'"


class Scope(Enum):
    """Target refinement applied before an action"""
    TEXT = "text"                # the element holding the label text
    INSIDE = "inside"            # kind filter inside that element
    PARENT = "parent"            # kind filter inside its container
    GRANDPARENT = "grandparent"  # kind filter two hops up
    LABEL = "label"              # <label> elements containing the text
    SCAN = "scan"                # every kind/signature element, matched by surrounding text

    @property
    def hops(self) -> Optional[int]:
        return {Scope.INSIDE: 0, Scope.PARENT: 1, Scope.GRANDPARENT: 2}.get(self)


class Action(Enum):
    CHECK = "check"
    UNCHECK = "uncheck"
    CLICK = "click"
    FILL = "fill"
    SELECT = "select"


@dataclass(frozen=True)
class Strategy:
    """One way to resolve and act on a target"""
    action: Action
    target: SemanticTarget
    scope: Scope
    value: Optional[str] = None
    force: bool = True

    @property
    def name(self) -> str:
        return f"{self.action.value}@{self.scope.value}('{self.target.label}')"


class ActionOutcome(Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class StrategyAttempt:
    strategy: str
    outcome: ActionOutcome
    matches: int = 0
    error: Optional[str] = None


@dataclass
class ChainReport:
    intent: str
    outcome: ActionOutcome = ActionOutcome.FAILED
    winner: Optional[str] = None
    attempts: List[StrategyAttempt] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome == ActionOutcome.SUCCEEDED

    @property
    def all_skipped(self) -> bool:
        return all(a.outcome == ActionOutcome.SKIPPED for a in self.attempts)


class StateKind(Enum):
    CHECKED = "checked"
    UNCHECKED = "unchecked"
    VALUE = "value"
    VISIBLE = "visible"
    HIDDEN = "hidden"
    MATCHES = "matches"


@dataclass(frozen=True)
class VerifiedState:
    """Post-action expectation plus how long to wait for it"""
    kind: StateKind
    locator: Locator
    description: str
    expected: Optional[str] = None
    pattern: Optional[Pattern] = None
    timeout_ms: int = 3000

    def expectation(self) -> str:
        if self.kind == StateKind.VALUE:
            return f"value == {self.expected!r}"
        if self.kind == StateKind.MATCHES:
            return f"text matching /{self.pattern.pattern if self.pattern else ''}/"
        return self.kind.value


class VerifyOutcome(Enum):
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"


@dataclass
class VerifyResult:
    outcome: VerifyOutcome
    observed: object = None
    elapsed_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.outcome == VerifyOutcome.SUCCEEDED


@dataclass
class OverlaySession:
    """Lives for one option-selection call"""
    index: int
    opened_here: bool = False
    seen_open: bool = False  # panel was observed visible after the open click
    panel: Optional[Locator] = None
    surface: Optional[Locator] = None
    via_fallback: bool = False
