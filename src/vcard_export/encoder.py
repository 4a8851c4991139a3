"""vCard 3.0 encoder with three fidelity tiers.

The encoder is pure: everything that needs I/O (photo bytes, the revision
timestamp, configured URLs) is resolved by the caller into a `VCardData`
before `generate_vcard` runs.
"""
from __future__ import annotations

import base64
import re
from datetime import datetime, timezone

from .escape import escape_text
from .formatters import clean_phone, format_address_label, format_business_hours, normalize_website
from .model import KNOWN_PLATFORMS, EncodedCard, Photo, Profile, Tier, VCardData

CRLF = "\r\n"
FOLD_LIMIT = 75

_FILENAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_.-]")
_PARAM_UNSAFE = re.compile(r'["\x00-\x1f\x7f]')


# ── Line folding ───────────────────────────────────────────────────────────────

def fold_line(line: str, limit: int = FOLD_LIMIT) -> list[str]:
    """Split a content line into physical lines of at most `limit` octets.

    Continuation lines start with a single space, which counts towards the
    limit. Multi-byte UTF-8 characters are never split.
    """
    if len(line.encode("utf-8")) <= limit:
        return [line]

    if line.isascii():
        parts = [line[:limit]]
        parts.extend(line[i:i + limit - 1] for i in range(limit, len(line), limit - 1))
    else:
        parts = []
        chunk: list[str] = []
        size, budget = 0, limit
        for ch in line:
            n = len(ch.encode("utf-8"))
            if size + n > budget:
                parts.append("".join(chunk))
                chunk, size, budget = [], 0, limit - 1
            chunk.append(ch)
            size += n
        parts.append("".join(chunk))

    return [parts[0]] + [" " + p for p in parts[1:]]


def unfold(text: str) -> str:
    return text.replace(CRLF + " ", "")


# ── Helpers ────────────────────────────────────────────────────────────────────

def _param(value: str) -> str:
    v = _PARAM_UNSAFE.sub("", value).strip()
    if any(c in v for c in ":;,"):
        return f'"{v}"'
    return v


def _photo_line(photo: Photo) -> str:
    b64 = base64.b64encode(photo.data).decode("ascii")
    if photo.mime and "/" in photo.mime:
        subtype = photo.mime.split("/", 1)[1].split(";")[0].strip().upper()
        if subtype:
            return f"PHOTO;ENCODING=b;TYPE={subtype}:{b64}"
    return f"PHOTO;ENCODING=b:{b64}"


def _ordered_socials(links: dict[str, str]) -> list[tuple[str, str]]:
    known = [(k, links[k]) for k in KNOWN_PLATFORMS if links.get(k)]
    rest = [(k, v) for k, v in links.items() if k not in KNOWN_PLATFORMS and v]
    return known + rest


def card_filename(first_name: str, last_name: str) -> str:
    if not (first_name.strip() or last_name.strip()):
        return "contact.vcf"
    return _FILENAME_UNSAFE.sub("_", f"{first_name}_{last_name}.vcf")


# ── Profile → VCardData ────────────────────────────────────────────────────────

def profile_to_vcard_data(
    profile: Profile,
    *,
    photo: Photo | None = None,
    revision: datetime | None = None,
    public_base_url: str | None = None,
    phone_region: str | None = None,
) -> VCardData:
    pi = profile.personal_info
    ci = profile.contact_info

    note = pi.bio or ""
    if profile.show_hours and profile.business_hours:
        hours = format_business_hours(profile.business_hours)
        note = f"{note}\n\nBusiness Hours:\n{hours}" if note else f"Business Hours:\n{hours}"

    socials = _ordered_socials(profile.social_links)
    socials += [(link.label, link.url) for link in profile.custom_links if link.url.strip()]

    profile_url = None
    if public_base_url and profile.public_id:
        profile_url = f"{public_base_url.rstrip('/')}/p/{profile.public_id}"

    phone = clean_phone(ci.phone, phone_region) if ci.phone else None

    return VCardData(
        first_name=pi.first_name or "",
        last_name=pi.last_name or "",
        title=pi.title,
        company=pi.company,
        phone=phone or None,
        email=ci.email.strip() if ci.email else None,
        website=normalize_website(ci.website) if ci.website else None,
        address=None if ci.address.is_empty() else ci.address,
        social_links=tuple(socials),
        note=note or None,
        profile_url=profile_url,
        photo=photo,
        revision=revision,
    )


# ── VCardData → text ───────────────────────────────────────────────────────────

def _content_lines(data: VCardData, tier: Tier) -> list[str]:
    simple = tier in (Tier.SIMPLE, Tier.FULL)
    full = tier is Tier.FULL

    lines = [
        f"N:{escape_text(data.last_name)};{escape_text(data.first_name)};;;",
        f"FN:{escape_text(f'{data.first_name} {data.last_name}'.strip())}",
    ]

    if simple and data.company:
        lines.append(f"ORG:{escape_text(data.company)}")
    if simple and data.title:
        lines.append(f"TITLE:{escape_text(data.title)}")

    if data.phone:
        lines.append(f"TEL;TYPE=CELL:{escape_text(data.phone)}")
    if data.email:
        lines.append(f"EMAIL;TYPE=INTERNET:{escape_text(data.email)}")

    if simple and data.address:
        a = data.address
        parts = ["", "", a.street, a.city, a.state, a.postal_code, a.country]
        lines.append("ADR;TYPE=WORK:" + ";".join(escape_text(p) for p in parts))
        if full:
            lines.append(f"LABEL;TYPE=WORK:{escape_text(format_address_label(a))}")

    if simple and data.website:
        lines.append(f"URL:{escape_text(data.website)}")

    if full:
        if data.profile_url:
            lines.append(f"URL;TYPE=profile:{escape_text(data.profile_url)}")
        for name, url in data.social_links:
            if url and url.strip():
                kind = _param(name)
                prefix = f"URL;TYPE={kind}" if kind else "URL"
                lines.append(f"{prefix}:{escape_text(url.strip())}")
        if data.note:
            lines.append(f"NOTE:{escape_text(data.note)}")
        if data.photo and data.photo.data:
            lines.append(_photo_line(data.photo))
        if data.revision:
            rev = data.revision.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
            lines.append(f"REV:{rev}")

    return lines


def generate_vcard(data: VCardData, tier: Tier = Tier.FULL) -> str:
    """Render `data` as a vCard 3.0 record at the requested tier.

    Never raises for missing data: an all-empty record still carries the
    BEGIN/VERSION/N/FN/END skeleton. Lines end with CRLF; only the full tier
    folds long lines.
    """
    tier = Tier(tier)
    physical = ["BEGIN:VCARD", "VERSION:3.0"]
    for line in _content_lines(data, tier):
        physical.extend(fold_line(line) if tier is Tier.FULL else [line])
    physical.append("END:VCARD")
    return CRLF.join(physical) + CRLF


def encode_profile(
    profile: Profile,
    tier: Tier,
    *,
    photo: Photo | None = None,
    revision: datetime | None = None,
    public_base_url: str | None = None,
    phone_region: str | None = None,
) -> EncodedCard:
    data = profile_to_vcard_data(
        profile,
        photo=photo if Tier(tier) is Tier.FULL else None,
        revision=revision,
        public_base_url=public_base_url,
        phone_region=phone_region,
    )
    return EncodedCard(
        text=generate_vcard(data, tier),
        filename=card_filename(data.first_name, data.last_name),
        full_name=f"{data.first_name} {data.last_name}".strip(),
        profile_id=profile.public_id,
    )
