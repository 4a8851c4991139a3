from __future__ import annotations

import re

import phonenumbers
from phonenumbers import NumberParseException

from .model import Address, BusinessHour

# ── Phone formatting ───────────────────────────────────────────────────────────

_PHONE_JUNK = re.compile(r"[^\d+()\-\s]")


def clean_phone(raw: str, default_region: str | None = None) -> str:
    """Strip characters a dialler cannot use; optionally reformat internationally.

    With a region hint, numbers that parse and validate are rewritten as
    pretty international format (e.g. +44 7980 220220). Anything else is
    returned cleaned but otherwise unchanged.
    """
    cleaned = _PHONE_JUNK.sub("", raw).strip()
    if not cleaned or not default_region:
        return cleaned
    try:
        parsed = phonenumbers.parse(cleaned, default_region.upper())
    except NumberParseException:
        return cleaned
    if phonenumbers.is_possible_number(parsed) and phonenumbers.is_valid_number(parsed):
        return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.INTERNATIONAL)
    return cleaned


# ── Web ────────────────────────────────────────────────────────────────────────

def normalize_website(url: str) -> str:
    url = url.strip()
    return url if url.lower().startswith("http") else f"https://{url}"


# ── Address ────────────────────────────────────────────────────────────────────

def format_address_label(a: Address) -> str:
    """Postal label: street / "city, state postal" / country."""
    locality = ", ".join(p for p in (a.city, a.state) if p)
    if a.postal_code:
        locality = f"{locality} {a.postal_code}".strip()
    return "\n".join(p for p in (a.street, locality, a.country) if p)


# ── Business hours ─────────────────────────────────────────────────────────────

_DAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _day_rank(hour: BusinessHour) -> int:
    key = hour.day.strip().lower()
    return _DAYS.index(key) if key in _DAYS else len(_DAYS)


def format_business_hours(hours: list[BusinessHour]) -> str:
    lines: list[str] = []
    for h in sorted(hours, key=_day_rank):
        day = h.day.strip().capitalize()
        if not h.is_open:
            lines.append(f"{day}: Closed")
        elif h.open_time and h.close_time:
            lines.append(f"{day}: {h.open_time} - {h.close_time}")
        else:
            lines.append(f"{day}: Open")
    return "\n".join(lines)
