from __future__ import annotations

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .backend import BackendClient
from .config import Settings
from .delivery import Attempt, Strategy, deliver
from .encoder import encode_profile
from .model import Profile, Tier
from .photo import resolve_photo
from .runtime import Runtime

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Unable to save contact. Please try again."

_B36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class ExportSession:
    """Per-app-run context threaded into every export call."""
    session_id: str

    @classmethod
    def start(cls) -> ExportSession:
        suffix = "".join(secrets.choice(_B36) for _ in range(9))
        return cls(session_id=f"session_{int(time.time() * 1000)}_{suffix}")


class Acknowledgement:
    """The transient "contact saved" flag shown after a successful export."""

    def __init__(self) -> None:
        self._visible = False
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def visible(self) -> bool:
        return self._visible

    def show(self, runtime: Runtime, duration: float) -> None:
        with self._lock:
            self._visible = True
            self._generation += 1
            gen = self._generation
        runtime.schedule(duration, lambda: self._clear(gen))

    def _clear(self, gen: int) -> None:
        # a later export re-arms the flag; only its own timer may clear it
        with self._lock:
            if gen == self._generation:
                self._visible = False


@dataclass
class ExportResult:
    ok: bool
    tier: Tier
    filename: str
    strategy: Strategy | None = None
    attempts: list[Attempt] = field(default_factory=list)
    error: str | None = None


def download_event(profile: Profile, session: ExportSession, now: datetime) -> dict:
    return {
        "eventType": "download",
        "eventData": {"downloadType": "vcard"},
        "profileId": profile.public_id,
        "sessionId": session.session_id,
        "timestamp": now.isoformat(),
    }


def _notify_analytics(backend: BackendClient | None, payload: dict) -> None:
    if backend is None:
        return
    try:
        backend.record_event(payload)
    except Exception as exc:
        logger.warning("Analytics tracking failed: %s", exc)


def export_contact(
    profile: Profile,
    tier: Tier,
    *,
    runtime: Runtime,
    session: ExportSession,
    backend: BackendClient | None = None,
    settings: Settings | None = None,
    acknowledgement: Acknowledgement | None = None,
    now: datetime | None = None,
) -> ExportResult:
    """Encode `profile` at `tier` and deliver it through `runtime`.

    Exactly one user-visible effect results: a share sheet, a saved file, or
    a single failure alert. Analytics failures never change the result.
    """
    settings = settings or Settings()
    tier = Tier(tier)
    now = now or datetime.now(timezone.utc)

    photo = None
    if tier is Tier.FULL and profile.personal_info.profile_photo:
        photo = resolve_photo(
            profile.personal_info.profile_photo,
            max_bytes=settings.max_photo_bytes,
            timeout=settings.photo_timeout,
            http=backend.http if backend is not None else None,
        )

    card = encode_profile(
        profile,
        tier,
        photo=photo,
        revision=now,
        public_base_url=settings.public_base_url or None,
        phone_region=settings.phone_region or None,
    )

    outcome = deliver(card, runtime, backend=backend, revoke_delay=settings.revoke_delay)

    if not outcome.ok:
        runtime.alert(FAILURE_MESSAGE)
        return ExportResult(
            ok=False,
            tier=tier,
            filename=card.filename,
            attempts=outcome.attempts,
            error=FAILURE_MESSAGE,
        )

    if acknowledgement is not None:
        acknowledgement.show(runtime, settings.ack_duration)
    _notify_analytics(backend, download_event(profile, session, now))

    return ExportResult(
        ok=True,
        tier=tier,
        filename=card.filename,
        strategy=outcome.strategy,
        attempts=outcome.attempts,
    )
