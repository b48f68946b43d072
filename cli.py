"""Command-line entry point: format a local calendar file."""
import argparse
import json
import logging
import sys
from typing import List, Optional

from log_config import setup_logging
from processor.calendar import Calendar
from processor.config_parser import parse_extensions
from processor.errors import CalendarParseError, ConfigurationError, FormatterError
from processor.profiles import get_formatter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='calendar-proxy',
        description='Apply a formatter to an iCalendar file and print the result.'
    )
    parser.add_argument('file', help='Path to the iCalendar file')
    parser.add_argument('formatter', help='Name of the formatter to apply')
    parser.add_argument('--extensions', help='Path to an extension bundle (JSON)')
    parser.add_argument('--profiles-dir', help='Directory of JSON formatter profiles')
    parser.add_argument('--log-level', default='WARNING', help='Logging level')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, stream=sys.stderr)

    extensions = None
    if args.extensions:
        try:
            with open(args.extensions, 'r', encoding='utf-8') as f:
                extensions = parse_extensions(json.load(f))
        except (OSError, json.JSONDecodeError, ConfigurationError) as e:
            print(f"Invalid extensions: {e}", file=sys.stderr)
            return 1

    try:
        formatter = get_formatter(args.formatter, extensions, args.profiles_dir)
    except ConfigurationError as e:
        print(f"Invalid formatter: {e}", file=sys.stderr)
        return 1
    if formatter is None:
        print(f"Invalid formatter: {args.formatter}", file=sys.stderr)
        return 1

    try:
        with open(args.file, 'r', encoding='utf-8') as f:
            data = f.read()
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    try:
        calendar = Calendar(data, 0)
        calendar.apply_formatter(formatter)
    except Exception as e:
        if isinstance(e, (CalendarParseError, FormatterError)):
            logger.error(f"Failed to format {args.file}: {e}")
        else:
            logger.exception(f"Unexpected error formatting {args.file}")
        print(f"Error formatting calendar: {e}", file=sys.stderr)
        return 1

    sys.stdout.write(calendar.to_ical())
    return 0


if __name__ == '__main__':
    sys.exit(main())
