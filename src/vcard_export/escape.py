"""Text-value escaping for vCard 3.0 content lines.

`escape_text` must only ever see raw user input: it is not idempotent, so a
value escaped twice gains a second layer of backslashes.
"""
from __future__ import annotations

import re

_NEWLINES = re.compile(r"\r\n|\r|\n")
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)


def escape_text(value: str | None) -> str:
    if not value:
        return ""
    out = value.replace("\\", "\\\\").replace(",", "\\,").replace(";", "\\;")
    return _NEWLINES.sub(r"\\n", out)


def unescape_text(value: str) -> str:
    """Inverse of `escape_text`. Newlines come back as a bare LF."""
    def _sub(m: re.Match) -> str:
        ch = m.group(1)
        return "\n" if ch in "nN" else ch
    return _ESCAPED.sub(_sub, value)
