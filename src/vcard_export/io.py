from __future__ import annotations

import json
import logging
from pathlib import Path

import vobject

from .model import EncodedCard, Profile

logger = logging.getLogger(__name__)


# ── Profiles ───────────────────────────────────────────────────────────────────

def load_profile_dict(path: Path) -> dict:
    """Read one profile JSON file.

    Accepts both a bare profile object and the API envelope
    ``{"success": true, "data": {...}}``.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("data"), dict) and "personalInfo" not in data:
        data = data["data"]
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def load_profile(path: Path) -> Profile:
    return Profile.from_dict(load_profile_dict(path))


# ── Cards ──────────────────────────────────────────────────────────────────────

def write_card(card: EncodedCard, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CRLF line endings intact on every platform
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(card.text)
    return path


def read_vcards_from_files(
    paths: list[Path],
) -> list[tuple[vobject.base.Component, str]]:
    """Parse .vcf files and return (vobject_component, source_label) pairs."""
    results: list[tuple[vobject.base.Component, str]] = []
    for p in paths:
        label = p.name
        raw = p.read_text(encoding="utf-8", errors="replace")
        count = 0
        for vc in vobject.readComponents(raw, ignoreUnreadable=True):
            if vc.name.upper() == "VCARD":
                results.append((vc, label))
                count += 1
        logger.debug("%s: %d card(s)", label, count)
    return results
