"""Tests for recovering JSON objects from chat message text."""

import time

import pytest

from booking_pulse.errors import JSONExtractionError
from booking_pulse.ingest.extraction import extract_json_object, find_balanced_object


class TestFindBalancedObject:
    """Tests for the brace scanner."""

    def test_object_surrounded_by_text(self) -> None:
        text = 'here\'s a booking: ```{"booking_id": "B2"}``` thanks'
        assert find_balanced_object(text) == '{"booking_id": "B2"}'

    def test_nested_objects(self) -> None:
        text = 'x {"a": {"b": {"c": 1}}} y'
        assert find_balanced_object(text) == '{"a": {"b": {"c": 1}}}'

    def test_braces_inside_strings_ignored(self) -> None:
        text = 'msg {"note": "use } and { freely", "n": 1} end'
        assert find_balanced_object(text) == '{"note": "use } and { freely", "n": 1}'

    def test_escaped_quote_inside_string(self) -> None:
        text = r'{"note": "say \"}\" loudly", "n": 2}'
        assert find_balanced_object(text) == text

    def test_no_braces(self) -> None:
        assert find_balanced_object("just words") is None

    def test_unbalanced_first_brace_falls_through(self) -> None:
        """An unclosed early brace does not hide a later complete object."""
        text = '{ oops {"ok": true}'
        assert find_balanced_object(text) == '{"ok": true}'

    def test_quotes_in_surrounding_prose(self) -> None:
        text = 'she said "ok" then pasted {"n": 1} and left"'
        assert find_balanced_object(text) == '{"n": 1}'

    def test_many_unclosed_braces_scanned_in_linear_time(self) -> None:
        """A flood of opening braces is rejected quickly."""
        text = "{" * 60_000
        started = time.perf_counter()
        assert find_balanced_object(text) is None
        assert time.perf_counter() - started < 1.0

    def test_unclosed_braces_before_object(self) -> None:
        text = "{" * 20_000 + '{"ok": true}'
        assert find_balanced_object(text) == '{"ok": true}'


class TestExtractJsonObject:
    """Tests for extract_json_object."""

    def test_code_fenced_payload(self) -> None:
        text = (
            'here\'s a booking: ```{"booking_id": "B2", "arrival": {"airport": "LHR"}, '
            '"date": "2026-10-18", "status": "confirmed"}``` thanks'
        )
        payload = extract_json_object(text)
        assert payload["booking_id"] == "B2"
        assert payload["arrival"] == {"airport": "LHR"}

    def test_html_entities_unescaped(self) -> None:
        text = '{&quot;booking_id&quot;: &quot;B&amp;1&quot;}'
        assert extract_json_object(text) == {"booking_id": "B&1"}

    def test_first_object_wins(self) -> None:
        assert extract_json_object('{"n": 1} and {"n": 2}') == {"n": 1}

    def test_invalid_span_and_body_raises(self) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json_object("{not json}")

    def test_plain_text_raises(self) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json_object("hello team, no bookings today")

    def test_empty_text_raises(self) -> None:
        with pytest.raises(JSONExtractionError):
            extract_json_object("")

    def test_non_object_json_raises(self) -> None:
        with pytest.raises(JSONExtractionError) as exc_info:
            extract_json_object("[1, 2, 3]")
        assert "list" in str(exc_info.value)

    def test_extraction_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            extract_json_object("nope")
