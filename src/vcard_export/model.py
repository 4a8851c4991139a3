from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

KNOWN_PLATFORMS = (
    "linkedin", "twitter", "facebook", "instagram",
    "youtube", "github", "tiktok", "whatsapp",
)

VCARD_MIME = "text/vcard"


class Tier(str, enum.Enum):
    MINIMAL = "minimal"
    SIMPLE = "simple"    # mobile
    FULL = "full"        # desktop


def _text(value: Any) -> str | None:
    if value is None:
        return None
    value = str(value)
    return value if value.strip() else None


# ── Profile (REST shape, read-only) ────────────────────────────────────────────

@dataclass(frozen=True)
class Address:
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None

    def is_empty(self) -> bool:
        return not any((self.street, self.city, self.state, self.postal_code, self.country))


@dataclass(frozen=True)
class CustomLink:
    label: str
    url: str


@dataclass
class BusinessHour:
    day: str
    is_open: bool = False
    open_time: str | None = None
    close_time: str | None = None


@dataclass
class PersonalInfo:
    first_name: str = ""
    last_name: str = ""
    title: str | None = None
    company: str | None = None
    bio: str | None = None
    profile_photo: str | None = None   # URL or data-URI
    cover_image: str | None = None


@dataclass
class ContactInfo:
    phone: str | None = None
    email: str | None = None
    whatsapp: str | None = None
    website: str | None = None
    address: Address = field(default_factory=Address)


@dataclass
class Profile:
    id: str | None = None
    slug: str | None = None
    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    contact_info: ContactInfo = field(default_factory=ContactInfo)
    social_links: dict[str, str] = field(default_factory=dict)
    custom_links: list[CustomLink] = field(default_factory=list)
    business_hours: list[BusinessHour] = field(default_factory=list)
    show_hours: bool = True
    is_active: bool = True

    @property
    def public_id(self) -> str | None:
        return self.slug or self.id

    @property
    def full_name(self) -> str:
        return f"{self.personal_info.first_name} {self.personal_info.last_name}".strip()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Profile:
        """Build a Profile from the REST JSON shape (camelCase keys).

        Missing sub-objects are treated as empty; unknown keys are ignored.
        """
        personal = data.get("personalInfo") or {}
        contact = data.get("contactInfo") or {}
        adr = contact.get("address") or {}
        social = data.get("socialLinks") or {}
        sections = data.get("sections") or {}

        links: dict[str, str] = {}
        custom: list[CustomLink] = []
        for key, value in social.items():
            if key == "custom":
                for item in value or []:
                    label = _text(item.get("label") or item.get("platform"))
                    url = _text(item.get("url"))
                    if label and url:
                        custom.append(CustomLink(label=label, url=url))
                continue
            url = _text(value)
            if url:
                links[key] = url

        hours = [
            BusinessHour(
                day=str(h.get("day", "")),
                is_open=bool(h.get("isOpen", True)),
                open_time=_text(h.get("openTime")),
                close_time=_text(h.get("closeTime")),
            )
            for h in (data.get("businessHours") or [])
            if h.get("day")
        ]

        ident = data.get("id") or data.get("_id")
        return cls(
            id=str(ident) if ident else None,
            slug=_text(data.get("slug")),
            personal_info=PersonalInfo(
                first_name=str(personal.get("firstName") or ""),
                last_name=str(personal.get("lastName") or ""),
                title=_text(personal.get("title")),
                company=_text(personal.get("company")),
                bio=_text(personal.get("bio")),
                profile_photo=_text(personal.get("profilePhoto")),
                cover_image=_text(personal.get("coverImage")),
            ),
            contact_info=ContactInfo(
                phone=_text(contact.get("phone")),
                email=_text(contact.get("email")),
                whatsapp=_text(contact.get("whatsapp")),
                website=_text(contact.get("website")),
                address=Address(
                    street=_text(adr.get("street")),
                    city=_text(adr.get("city")),
                    state=_text(adr.get("state")),
                    postal_code=_text(adr.get("postalCode")),
                    country=_text(adr.get("country")),
                ),
            ),
            social_links=links,
            custom_links=custom,
            business_hours=hours,
            show_hours=sections.get("showHours", True) is not False,
            is_active=data.get("isActive", True) is not False,
        )


# ── Derived, immutable records ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Photo:
    data: bytes
    mime: str | None = None


@dataclass(frozen=True)
class VCardData:
    """Flattened projection of a Profile; built once per export, never mutated."""
    first_name: str
    last_name: str
    title: str | None = None
    company: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    address: Address | None = None
    social_links: tuple[tuple[str, str], ...] = ()   # (platform or label, url)
    note: str | None = None
    profile_url: str | None = None
    photo: Photo | None = None
    revision: datetime | None = None


@dataclass(frozen=True)
class EncodedCard:
    text: str
    filename: str
    mime: str = VCARD_MIME
    full_name: str = ""
    profile_id: str | None = None

    @property
    def payload(self) -> bytes:
        return self.text.encode("utf-8")
