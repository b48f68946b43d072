"""Formatter pipeline applied to parsed calendars."""
import hashlib
import logging
import re
from dataclasses import replace
from typing import Optional

from icalendar import Calendar

from processor.custom_events import inject_custom_events
from processor.field_rewriter import rewrite_event_fields
from processor.models import (
    CustomEventTemplate,
    ExtensionConfig,
    ExtractedDetails,
    FixupStep,
    FormatterConfig,
)
from processor.properties import get_events, get_text, set_value
from processor.recurrence import collapse_recurrences
from processor.uid_fixup import fixup_uids

logger = logging.getLogger(__name__)

UNKNOWN_SUBJECT = 'Unknown'


class Formatter:
    """
    Applies the enabled stages of a formatter configuration to a calendar.

    Stages always run in the same order; a stage runs only when its
    sub-configuration is present. Subclasses customize the details extracted
    from the source calendar and the UIDs given to custom events.
    """

    # Optional substitution deriving the subject from the first event's UID
    subject_pattern: Optional[re.Pattern] = None
    subject_replacement: str = r'\1'

    def __init__(self, name: str, config: FormatterConfig):
        self.name = name
        self.config = config

    def with_extensions(self, extensions: Optional[ExtensionConfig]) -> 'Formatter':
        """Attach an extension bundle, replacing any configured one."""
        if extensions is not None:
            self.config = replace(self.config, extensions=extensions)
        return self

    def format(self, root: Calendar) -> Calendar:
        """
        Format the calendar in place.

        Args:
            root: Parsed VCALENDAR component

        Returns:
            The same component, modified

        Raises:
            FormatterError: If a stage finds an event missing a required field
        """
        config = self.config
        details = self.extract_details(root)
        logger.info(f"Applying formatter '{self.name}' (subject: {details.subject})")

        if config.replace_prodid is not None:
            set_value(root, 'prodid', config.replace_prodid.replacement)
        if config.uid_fixup is not None:
            root = fixup_uids(root, config.uid_fixup, FixupStep.FIRST)
        if config.recurrence_collapse is not None:
            root = collapse_recurrences(root, config.recurrence_collapse)
        if config.field_rewriter is not None:
            root = rewrite_event_fields(root, config.field_rewriter)
        if config.extensions is not None:
            root = inject_custom_events(root, config.extensions, details, self.get_custom_uid)
        if config.uid_fixup is not None:
            root = fixup_uids(root, config.uid_fixup, FixupStep.LAST)

        return root

    def extract_details(self, root: Calendar) -> ExtractedDetails:
        """
        Extract details from the source calendar before it is modified.

        Args:
            root: Parsed VCALENDAR component

        Returns:
            ExtractedDetails; the subject is 'Unknown' if it cannot be found
        """
        events = get_events(root)
        if not events:
            logger.warning('No events in original calendar')
            return ExtractedDetails(subject=UNKNOWN_SUBJECT)

        uid = get_text(events[0], 'uid')
        if not uid:
            logger.warning('Invalid UID format from original calendar')
            return ExtractedDetails(subject=UNKNOWN_SUBJECT)

        if self.subject_pattern is not None:
            uid = self.subject_pattern.sub(self.subject_replacement, uid, count=1)
        return ExtractedDetails(subject=uid)

    def get_custom_uid(self, template: CustomEventTemplate, details: ExtractedDetails) -> str:
        """UID for a custom event: 'custom_' and a hash of its stamp and summary."""
        data = f"{template.dtstamp}{template.properties.get('summary', '')}"
        return f"custom_{self.hash_content(data)}"

    @staticmethod
    def hash_content(data: str) -> str:
        return hashlib.md5(data.encode('utf-8')).hexdigest()
