"""Unit tests for JSON profile and extension parsing."""
import json

import pytest

from processor.config_parser import parse_extensions, parse_formatter_config, parse_predicate
from processor.errors import ConfigurationError
from processor.models import (
    ComparisonType,
    Frequency,
    LiteralPrefix,
    RegexPrefix,
    RegexRewriter,
    UidDerivation,
)
from processor.profiles import get_formatter

EXTENSION = {
    'escapeSpecialCharacters': True,
    'customEvents': [
        {
            'dtstamp': '20240101T000000Z',
            'dtstart': '20240301T090000',
            'dtend': '20240301T100000',
            'tzid': 'Europe/London',
            'properties': {'summary': 'Exam', 'location': 'Hall'},
            'conditions': [
                {
                    'match': 'all',
                    'propertyKey': 'status',
                    'method': {'type': 'equals', 'value': 'confirmed', 'ignoreCase': True},
                },
                {'match': 2, 'propertyKey': 'summary', 'method': {'type': 'regex', 'value': '^Lab'}},
            ],
        }
    ],
}

PROFILE = {
    'replaceProdId': {'replacement': '-//Proxy//EN'},
    'recurrenceCollapse': {'requiredMatchingKeys': ['summary', 'location'], 'frequency': 'daily'},
    'eventFieldRewriter': {
        'patterns': [
            {
                'propertyKey': 'summary',
                'sourceKey': 'summary',
                'useOriginalSourceValue': True,
                'rewriter': {'regex': r'^(\w+):', 'replacement': r'[\1]'},
            }
        ]
    },
    'uidFixup': {
        'fixupFirst': True,
        'prefix': {'regex': r'^(\w{3}).*', 'replacement': r'\1-'},
        'derivation': 'DTSTART_MD5',
    },
    'extensions': EXTENSION,
}


class TestParseExtensions:
    """Test cases for extension bundle parsing."""

    def test_full_bundle(self):
        extensions = parse_extensions(EXTENSION)

        assert extensions.escape_special_characters is True
        template = extensions.custom_events[0]
        assert template.tzid == 'Europe/London'
        assert template.properties == {'summary': 'Exam', 'location': 'Hall'}
        assert template.conditions[0].match == 'all'
        assert template.conditions[0].method.type == ComparisonType.EQUALS
        assert template.conditions[0].method.ignore_case is True
        assert template.conditions[1].match == 2
        assert template.conditions[1].method.type == ComparisonType.REGEX

    def test_empty_bundle(self):
        extensions = parse_extensions({})

        assert extensions.custom_events == []
        assert extensions.escape_special_characters is False

    @pytest.mark.parametrize('data', [
        [],
        {'customEvents': {}},
        {'customEvents': [{'dtstart': 'x', 'dtend': 'y'}]},
        {'customEvents': [{'dtstamp': 'a', 'dtstart': 'b', 'dtend': 'c', 'properties': {'n': 1}}]},
    ])
    def test_malformed_bundle(self, data):
        with pytest.raises(ConfigurationError):
            parse_extensions(data)

    @pytest.mark.parametrize('data', [
        {'match': 'some', 'propertyKey': 'x', 'method': {'type': 'equals', 'value': 'y'}},
        {'match': True, 'propertyKey': 'x', 'method': {'type': 'equals', 'value': 'y'}},
        {'match': -1, 'propertyKey': 'x', 'method': {'type': 'equals', 'value': 'y'}},
        {'match': 'any', 'propertyKey': 'x', 'method': {'type': 'like', 'value': 'y'}},
        {'match': 'any', 'propertyKey': 'x', 'method': {'type': 'regex', 'value': '('}},
        {'match': 'any', 'method': {'type': 'equals', 'value': 'y'}},
    ])
    def test_malformed_predicate(self, data):
        with pytest.raises(ConfigurationError):
            parse_predicate(data)


class TestParseFormatterConfig:
    """Test cases for formatter profile parsing."""

    def test_full_profile(self):
        config = parse_formatter_config(PROFILE)

        assert config.replace_prodid.replacement == '-//Proxy//EN'
        assert config.recurrence_collapse.required_matching_keys == ['summary', 'location']
        assert config.recurrence_collapse.frequency == Frequency.DAILY
        pattern = config.field_rewriter.patterns[0]
        assert pattern.use_original_source_value is True
        assert isinstance(pattern.rewriter, RegexRewriter)
        assert pattern.rewriter.pattern.sub(pattern.rewriter.replacement, 'ABC: x') == '[ABC] x'
        assert config.uid_fixup.fixup_first is True
        assert isinstance(config.uid_fixup.prefix, RegexPrefix)
        assert config.uid_fixup.derivation == UidDerivation.DTSTART_MD5
        assert len(config.extensions.custom_events) == 1

    def test_literal_prefix(self):
        config = parse_formatter_config({'uidFixup': {'prefix': {'value': 'p_'}}})

        assert config.uid_fixup.prefix == LiteralPrefix('p_')
        assert config.uid_fixup.fixup_first is False

    def test_empty_profile(self):
        config = parse_formatter_config({})

        assert config.replace_prodid is None
        assert config.recurrence_collapse is None
        assert config.field_rewriter is None
        assert config.uid_fixup is None
        assert config.extensions is None

    @pytest.mark.parametrize('data', [
        {'recurrenceCollapse': {'requiredMatchingKeys': [], 'frequency': 'monthly'}},
        {'recurrenceCollapse': {'requiredMatchingKeys': 'summary', 'frequency': 'daily'}},
        {'uidFixup': {'prefix': {'value': 'p'}, 'derivation': 'SHA1'}},
        {'uidFixup': {'prefix': {'regex': '['}}},
        {'replaceProdId': {}},
    ])
    def test_malformed_profile(self, data):
        with pytest.raises(ConfigurationError):
            parse_formatter_config(data)


class TestProfilesDirectory:
    """Test cases for loading profiles from disk."""

    def test_load_profile(self, tmp_path):
        (tmp_path / 'custom.json').write_text(json.dumps(PROFILE))

        formatter = get_formatter('custom', profiles_dir=str(tmp_path))

        assert formatter.name == 'custom'
        assert formatter.config.replace_prodid.replacement == '-//Proxy//EN'

    def test_missing_profile(self, tmp_path):
        assert get_formatter('missing', profiles_dir=str(tmp_path)) is None

    def test_builtin_wins(self, tmp_path):
        (tmp_path / 'dur.json').write_text(json.dumps({}))

        formatter = get_formatter('dur', profiles_dir=str(tmp_path))

        assert formatter.config.recurrence_collapse is not None

    def test_invalid_json(self, tmp_path):
        (tmp_path / 'broken.json').write_text('{not json')

        with pytest.raises(ConfigurationError):
            get_formatter('broken', profiles_dir=str(tmp_path))

    def test_path_traversal_rejected(self, tmp_path):
        assert get_formatter('../etc', profiles_dir=str(tmp_path)) is None
