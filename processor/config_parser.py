"""Parsing of JSON formatter profiles and extension bundles."""
import re
from typing import Any, Dict, List, Optional

from processor.errors import ConfigurationError
from processor.models import (
    ComparisonMethod,
    ComparisonType,
    CustomEventTemplate,
    EventFieldRewriterConfig,
    EventPredicate,
    ExtensionConfig,
    FormatterConfig,
    Frequency,
    LiteralPrefix,
    RecurrenceCollapseConfig,
    RegexPrefix,
    RegexRewriter,
    ReplaceProdIdConfig,
    RewritePattern,
    UidDerivation,
    UidFixupConfig,
)


def _require(data: Dict[str, Any], key: str, context: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigurationError(f"{context} must be an object")
    if key not in data:
        raise ConfigurationError(f"{context} is missing '{key}'")
    return data[key]


def _compile(pattern: str, context: str) -> re.Pattern:
    try:
        return re.compile(pattern)
    except (re.error, TypeError) as e:
        raise ConfigurationError(f"{context} has an invalid regex: {e}") from e


def _string_value(value: Any, context: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{context} must be a string")
    return value


def parse_predicate(data: Dict[str, Any], context: str = 'condition') -> EventPredicate:
    """
    Parse an event predicate.

    Args:
        data: Dict with 'match', 'propertyKey' and 'method'
        context: Description used in error messages

    Returns:
        EventPredicate

    Raises:
        ConfigurationError: If the predicate is malformed
    """
    match = _require(data, 'match', context)
    if isinstance(match, bool) or not (match in ('any', 'all') or isinstance(match, int)):
        raise ConfigurationError(f"{context} has invalid match '{match}'")
    if isinstance(match, int) and match < 0:
        raise ConfigurationError(f"{context} match count must not be negative")

    method = _require(data, 'method', context)
    method_type = _require(method, 'type', f"{context}.method")
    try:
        comparison = ComparisonType(method_type)
    except ValueError as e:
        raise ConfigurationError(f"{context} has unknown method '{method_type}'") from e

    value = _string_value(_require(method, 'value', f"{context}.method"), f"{context}.method.value")
    if comparison == ComparisonType.REGEX:
        _compile(value, context)

    return EventPredicate(
        match=match,
        property_key=_string_value(_require(data, 'propertyKey', context), f"{context}.propertyKey"),
        method=ComparisonMethod(
            type=comparison,
            value=value,
            ignore_case=bool(method.get('ignoreCase', False)),
        ),
    )


def parse_custom_event(data: Dict[str, Any], context: str = 'customEvent') -> CustomEventTemplate:
    """Parse a custom event template."""
    properties = data.get('properties', {}) if isinstance(data, dict) else None
    if not isinstance(properties, dict) or not all(
        isinstance(v, str) for v in properties.values()
    ):
        raise ConfigurationError(f"{context}.properties must map names to strings")

    conditions = data.get('conditions', [])
    if not isinstance(conditions, list):
        raise ConfigurationError(f"{context}.conditions must be a list")

    tzid = data.get('tzid')
    if tzid is not None:
        tzid = _string_value(tzid, f"{context}.tzid")

    return CustomEventTemplate(
        dtstamp=_string_value(_require(data, 'dtstamp', context), f"{context}.dtstamp"),
        dtstart=_string_value(_require(data, 'dtstart', context), f"{context}.dtstart"),
        dtend=_string_value(_require(data, 'dtend', context), f"{context}.dtend"),
        tzid=tzid,
        properties=dict(properties),
        conditions=[
            parse_predicate(c, f"{context}.conditions[{i}]")
            for i, c in enumerate(conditions)
        ],
    )


def parse_extensions(data: Dict[str, Any]) -> ExtensionConfig:
    """
    Parse an extension bundle.

    Args:
        data: Dict with optional 'customEvents' and 'escapeSpecialCharacters'

    Returns:
        ExtensionConfig

    Raises:
        ConfigurationError: If the bundle is malformed
    """
    if not isinstance(data, dict):
        raise ConfigurationError('Extension bundle must be an object')

    custom_events = data.get('customEvents', [])
    if not isinstance(custom_events, list):
        raise ConfigurationError('customEvents must be a list')

    return ExtensionConfig(
        custom_events=[
            parse_custom_event(e, f"customEvents[{i}]")
            for i, e in enumerate(custom_events)
        ],
        escape_special_characters=bool(data.get('escapeSpecialCharacters', False)),
    )


def _parse_rewriter_config(data: Dict[str, Any]) -> EventFieldRewriterConfig:
    patterns: List[RewritePattern] = []
    for i, pattern in enumerate(_require(data, 'patterns', 'eventFieldRewriter')):
        context = f"eventFieldRewriter.patterns[{i}]"
        rewriter = _require(pattern, 'rewriter', context)
        patterns.append(RewritePattern(
            property_key=_require(pattern, 'propertyKey', context),
            source_key=_require(pattern, 'sourceKey', context),
            use_original_source_value=bool(pattern.get('useOriginalSourceValue', False)),
            rewriter=RegexRewriter(
                pattern=_compile(_require(rewriter, 'regex', f"{context}.rewriter"), context),
                replacement=_require(rewriter, 'replacement', f"{context}.rewriter"),
                count=int(rewriter.get('count', 0)),
            ),
        ))
    return EventFieldRewriterConfig(patterns=patterns)


def _parse_uid_fixup(data: Dict[str, Any]) -> UidFixupConfig:
    prefix = _require(data, 'prefix', 'uidFixup')
    if isinstance(prefix, dict) and 'value' in prefix:
        parsed_prefix = LiteralPrefix(value=prefix['value'])
    else:
        parsed_prefix = RegexPrefix(
            pattern=_compile(_require(prefix, 'regex', 'uidFixup.prefix'), 'uidFixup.prefix'),
            replacement=_require(prefix, 'replacement', 'uidFixup.prefix'),
        )

    derivation = data.get('derivation', UidDerivation.DTSTART_MD5.value)
    try:
        parsed_derivation = UidDerivation(derivation)
    except ValueError as e:
        raise ConfigurationError(f"Unknown UID derivation '{derivation}'") from e

    return UidFixupConfig(
        fixup_first=bool(data.get('fixupFirst', False)),
        prefix=parsed_prefix,
        derivation=parsed_derivation,
    )


def parse_formatter_config(data: Dict[str, Any]) -> FormatterConfig:
    """
    Parse a formatter profile.

    Only regex rewriters can be expressed in JSON.

    Args:
        data: Profile dict; every top-level section is optional

    Returns:
        FormatterConfig

    Raises:
        ConfigurationError: If any section is malformed
    """
    if not isinstance(data, dict):
        raise ConfigurationError('Formatter profile must be an object')

    replace_prodid: Optional[ReplaceProdIdConfig] = None
    if 'replaceProdId' in data:
        replace_prodid = ReplaceProdIdConfig(
            replacement=_require(data['replaceProdId'], 'replacement', 'replaceProdId')
        )

    recurrence_collapse: Optional[RecurrenceCollapseConfig] = None
    if 'recurrenceCollapse' in data:
        section = data['recurrenceCollapse']
        keys = _require(section, 'requiredMatchingKeys', 'recurrenceCollapse')
        if not isinstance(keys, list):
            raise ConfigurationError('recurrenceCollapse.requiredMatchingKeys must be a list')
        frequency = _require(section, 'frequency', 'recurrenceCollapse')
        try:
            parsed_frequency = Frequency(frequency)
        except ValueError as e:
            raise ConfigurationError(f"Unknown frequency '{frequency}'") from e
        recurrence_collapse = RecurrenceCollapseConfig(
            required_matching_keys=list(keys),
            frequency=parsed_frequency,
        )

    return FormatterConfig(
        replace_prodid=replace_prodid,
        recurrence_collapse=recurrence_collapse,
        field_rewriter=(
            _parse_rewriter_config(data['eventFieldRewriter'])
            if 'eventFieldRewriter' in data else None
        ),
        uid_fixup=_parse_uid_fixup(data['uidFixup']) if 'uidFixup' in data else None,
        extensions=parse_extensions(data['extensions']) if 'extensions' in data else None,
    )
