"""Data models for calendar formatting."""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Union


class Frequency(str, Enum):
    """Period between occurrences of a collapsed series."""
    DAILY = 'daily'
    WEEKLY = 'weekly'


class UidDerivation(str, Enum):
    """Strategies for deriving a new event UID."""
    DTSTART_MD5 = 'DTSTART_MD5'


class ComparisonType(str, Enum):
    """Comparison methods supported by event predicates."""
    EQUALS = 'equals'
    CONTAINS = 'contains'
    STARTS_WITH = 'startsWith'
    ENDS_WITH = 'endsWith'
    REGEX = 'regex'


class FixupStep(str, Enum):
    """The two points in the pipeline where UIDs may be fixed up."""
    FIRST = 'first'
    LAST = 'last'


@dataclass(frozen=True)
class ReplaceProdIdConfig:
    """Replacement for the calendar PRODID property."""
    replacement: str


@dataclass(frozen=True)
class RecurrenceCollapseConfig:
    """Settings for folding repeated single events into a series."""
    required_matching_keys: List[str]
    frequency: Frequency


@dataclass(frozen=True)
class RegexRewriter:
    """Rewrites a value with a regular expression substitution.

    A count of 0 replaces every match.
    """
    pattern: re.Pattern
    replacement: str
    count: int = 0


@dataclass(frozen=True)
class FunctionRewriter:
    """Rewrites a value with an arbitrary string function."""
    func: Callable[[str], str]


Rewriter = Union[RegexRewriter, FunctionRewriter]


@dataclass(frozen=True)
class RewritePattern:
    """One field rewrite applied to every event.

    The value read from ``source_key`` is passed through ``rewriter`` and
    stored in ``property_key``. When ``use_original_source_value`` is set the
    source value is the one the event held before any pattern ran.
    """
    property_key: str
    source_key: str
    rewriter: Rewriter
    use_original_source_value: bool = False


@dataclass(frozen=True)
class EventFieldRewriterConfig:
    """Ordered list of field rewrite patterns."""
    patterns: List[RewritePattern]


@dataclass(frozen=True)
class LiteralPrefix:
    """Fixed UID prefix."""
    value: str


@dataclass(frozen=True)
class RegexPrefix:
    """UID prefix derived from the original UID by regex substitution."""
    pattern: re.Pattern
    replacement: str


UidPrefix = Union[LiteralPrefix, RegexPrefix]


@dataclass(frozen=True)
class UidFixupConfig:
    """Settings for replacing event UIDs."""
    fixup_first: bool
    prefix: UidPrefix
    derivation: UidDerivation = UidDerivation.DTSTART_MD5


@dataclass(frozen=True)
class ComparisonMethod:
    """How a predicate compares a property value.

    ``ignore_case`` only applies to the literal comparison types.
    """
    type: ComparisonType
    value: str
    ignore_case: bool = False


@dataclass(frozen=True)
class EventPredicate:
    """Guard condition evaluated over the events of a calendar.

    ``match`` is 'any', 'all' or the number of events that must match.
    """
    match: Union[str, int]
    property_key: str
    method: ComparisonMethod


@dataclass(frozen=True)
class CustomEventTemplate:
    """Declarative event added to a calendar when its conditions hold."""
    dtstamp: str
    dtstart: str
    dtend: str
    tzid: Optional[str] = None
    properties: dict = field(default_factory=dict)
    conditions: List[EventPredicate] = field(default_factory=list)


@dataclass(frozen=True)
class ExtensionConfig:
    """Extension bundle loaded alongside a formatter."""
    custom_events: List[CustomEventTemplate] = field(default_factory=list)
    escape_special_characters: bool = False


@dataclass(frozen=True)
class FormatterConfig:
    """Sub-configurations of a formatter; each present one enables a stage."""
    replace_prodid: Optional[ReplaceProdIdConfig] = None
    recurrence_collapse: Optional[RecurrenceCollapseConfig] = None
    field_rewriter: Optional[EventFieldRewriterConfig] = None
    uid_fixup: Optional[UidFixupConfig] = None
    extensions: Optional[ExtensionConfig] = None


@dataclass(frozen=True)
class ExtractedDetails:
    """Facts read from the source calendar before it is modified."""
    subject: str
