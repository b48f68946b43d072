"""Registry of named formatter profiles."""
import json
import logging
import os
import re
from typing import Callable, Dict, Optional

from processor.config_parser import parse_formatter_config
from processor.errors import ConfigurationError
from processor.formatter import Formatter
from processor.models import (
    CustomEventTemplate,
    EventFieldRewriterConfig,
    ExtensionConfig,
    ExtractedDetails,
    FormatterConfig,
    Frequency,
    FunctionRewriter,
    RecurrenceCollapseConfig,
    ReplaceProdIdConfig,
    RewritePattern,
)

logger = logging.getLogger(__name__)

DEFAULT_FORMATTER = 'default'

SUMMARY_SEP_REGEX = re.compile(r'[\w\d]+:\s((?:\w+\s?)+)\s-\s[\w\s]+')
SUMMARY_APPLY_REGEX = re.compile(r'([\w\d]+):\s(?:\w+\s?)+\s-\s([\w\s]+)')
UID_REGEX = re.compile(r'^([\w\d]{6}).*')


def format_dur_summary(summary: str) -> str:
    """
    Shorten a timetable summary such as 'ABC123: Software Engineering - Lecture'
    into 'SE Lecture (ABC123)'.
    """
    topic_name = SUMMARY_SEP_REGEX.sub(r'\1', summary, count=1)
    topic = ''.join(word[:1] for word in topic_name.split(' '))
    return SUMMARY_APPLY_REGEX.sub(
        lambda m: f"{topic} {m.group(2)} ({m.group(1)})", summary, count=1
    )


class DurFormatter(Formatter):
    """Formatter for Durham University timetable exports."""

    subject_pattern = UID_REGEX

    def __init__(self):
        super().__init__('dur', FormatterConfig(
            replace_prodid=ReplaceProdIdConfig(
                replacement='-//CalendarProxy//NONSGML DurTimetable CalendarProxy v1.0//EN'
            ),
            recurrence_collapse=RecurrenceCollapseConfig(
                required_matching_keys=['summary', 'location', 'description'],
                frequency=Frequency.WEEKLY,
            ),
            field_rewriter=EventFieldRewriterConfig(patterns=[
                RewritePattern(
                    property_key='summary',
                    source_key='summary',
                    use_original_source_value=True,
                    rewriter=FunctionRewriter(format_dur_summary),
                ),
            ]),
        ))

    def get_custom_uid(self, template: CustomEventTemplate, details: ExtractedDetails) -> str:
        data = f"{template.dtstamp}{template.properties.get('summary', '')}"
        return f"{details.subject}_{self.hash_content(data).upper()}/CW"


BUILTIN_FORMATTERS: Dict[str, Callable[[], Formatter]] = {
    'dur': DurFormatter,
}


def load_profile(name: str, profiles_dir: str) -> Optional[Formatter]:
    """
    Load a formatter profile from '<profiles_dir>/<name>.json'.

    Returns:
        Formatter, or None if no such file exists

    Raises:
        ConfigurationError: If the file is not a valid profile
    """
    if not re.fullmatch(r'[\w-]+', name):
        return None

    path = os.path.join(profiles_dir, f"{name}.json")
    if not os.path.isfile(path):
        return None

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to read profile '{path}': {e}") from e

    logger.info(f"Loaded formatter profile '{name}' from {path}")
    return Formatter(name, parse_formatter_config(data))


def get_formatter(
    name: str,
    extensions: Optional[ExtensionConfig] = None,
    profiles_dir: Optional[str] = None,
) -> Optional[Formatter]:
    """
    Get a formatter by name.

    Built-in profiles take precedence over profiles loaded from disk.

    Args:
        name: Profile name
        extensions: Extension bundle to attach, if any
        profiles_dir: Directory of JSON profiles, if any

    Returns:
        Formatter, or None if the name is unknown
    """
    factory = BUILTIN_FORMATTERS.get(name)
    if factory is not None:
        formatter = factory()
    elif profiles_dir:
        formatter = load_profile(name, profiles_dir)
    else:
        formatter = None

    if formatter is None:
        return None
    return formatter.with_extensions(extensions)
