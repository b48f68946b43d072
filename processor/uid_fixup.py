"""Derivation of replacement event UIDs."""
import hashlib
import logging
from datetime import date

from icalendar import Calendar

from processor.errors import FormatterError
from processor.models import (
    FixupStep,
    LiteralPrefix,
    RegexPrefix,
    UidDerivation,
    UidFixupConfig,
    UidPrefix,
)
from processor.properties import get_events, get_start, get_text, set_value, to_unix_time

logger = logging.getLogger(__name__)


def resolve_prefix(prefix: UidPrefix, original_uid: str) -> str:
    """Compute the UID prefix, either literal or derived from the original UID."""
    if isinstance(prefix, LiteralPrefix):
        return prefix.value
    if isinstance(prefix, RegexPrefix):
        return prefix.pattern.sub(prefix.replacement, original_uid, count=1)
    raise TypeError(f"Unsupported UID prefix: {type(prefix).__name__}")


def dtstart_md5(start: date) -> str:
    """MD5 hex digest of the start time as hexadecimal Unix seconds."""
    unix_time = to_unix_time(start)
    return hashlib.md5(format(unix_time, 'x').encode('utf-8')).hexdigest()


def derive_uid(
    original_uid: str,
    start: date,
    prefix: UidPrefix,
    derivation: UidDerivation = UidDerivation.DTSTART_MD5,
) -> str:
    """
    Derive a new UID for an event.

    Args:
        original_uid: UID the event currently has
        start: Event start (DTSTART)
        prefix: Prefix configuration
        derivation: Derivation strategy

    Returns:
        The new UID
    """
    actual_prefix = resolve_prefix(prefix, original_uid)

    if derivation == UidDerivation.DTSTART_MD5:
        return f"{actual_prefix}{dtstart_md5(start)}"

    raise FormatterError(f"Unsupported UID derivation: {derivation}")


def fixup_uids(root: Calendar, config: UidFixupConfig, step: FixupStep) -> Calendar:
    """
    Replace the UID of every event in the calendar.

    Only one of the two scheduled steps does any work, chosen by
    ``config.fixup_first``.

    Args:
        root: Calendar component to modify
        config: UID fixup settings
        step: The pipeline step this call belongs to

    Returns:
        The modified calendar

    Raises:
        FormatterError: If an event has no UID or no DTSTART
    """
    if (step == FixupStep.FIRST) != config.fixup_first:
        return root

    events = get_events(root)
    for event in events:
        original_uid = get_text(event, 'uid')
        if not original_uid:
            raise FormatterError('UID is required')

        start = get_start(event)
        if start is None:
            raise FormatterError(f"DTSTART is required for event '{original_uid}'")

        set_value(event, 'uid', derive_uid(original_uid, start, config.prefix, config.derivation))

    logger.info(f"Fixed up UIDs of {len(events)} events ({step.value} step)")
    return root
