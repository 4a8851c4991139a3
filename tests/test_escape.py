import re

import pytest

from vcard_export.escape import escape_text, unescape_text


def test_reserved_characters_escaped():
    assert escape_text("a,b;c\\d") == "a\\,b\\;c\\\\d"


@pytest.mark.parametrize("newline", ["\r\n", "\r", "\n"])
def test_every_newline_form_becomes_literal_n(newline):
    out = escape_text(f"line one{newline}line two")
    assert out == "line one\\nline two"
    assert "\r" not in out and "\n" not in out


def test_backslash_escaped_before_separators():
    # a literal backslash-comma in the input must not collapse into "\,"
    assert escape_text("\\,") == "\\\\\\,"


def test_unicode_passes_through():
    assert escape_text("Zoë Ångström 東京") == "Zoë Ångström 東京"


def test_empty_and_none():
    assert escape_text("") == ""
    assert escape_text(None) == ""


def test_not_idempotent():
    once = escape_text("a,b")
    assert escape_text(once) != once


@pytest.mark.parametrize("raw", [
    "Lovelace, Ada",
    "a;b;c",
    "back\\slash",
    "multi\nline\nbio, with; everything\\",
    "\\n is not a newline",
    ",,;;\\\\",
])
def test_round_trip(raw):
    escaped = escape_text(raw)
    assert unescape_text(escaped) == raw
    # no separator is left without its backslash
    stripped = re.sub(r"\\.", "", escaped)
    assert not set(stripped) & {",", ";", "\\", "\n", "\r"}
