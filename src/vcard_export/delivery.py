"""Getting an encoded card onto the user's device.

Three strategies, tried in a fixed order:

    NATIVE_SHARE     share sheet with the file attached (only if the runtime
                     says it can share a file of this MIME type)
    DIRECT_DOWNLOAD  object URL + anchor click (or opening the URL directly
                     where anchor downloads are unsupported)
    SERVER_FALLBACK  fetch the pre-rendered card from the backend and run the
                     download step again with those bytes

A cancelled or failed share falls through to the download; a failed
download falls through to the server. Only when every strategy has failed is
the delivery reported as failed.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable

from .backend import BackendClient
from .errors import FallbackError, ShareCancelled
from .model import EncodedCard
from .runtime import Runtime, SharedFile

logger = logging.getLogger(__name__)

SHARE_TEXT = "Contact Card"
DEFAULT_REVOKE_DELAY = 0.1


class Strategy(str, enum.Enum):
    NATIVE_SHARE = "native_share"
    DIRECT_DOWNLOAD = "direct_download"
    SERVER_FALLBACK = "server_fallback"


@dataclass(frozen=True)
class Capabilities:
    can_share_files: bool = False
    anchor_download: bool = True


@dataclass
class Attempt:
    strategy: Strategy
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DeliveryOutcome:
    strategy: Strategy | None
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.strategy is not None


# ── Decision ───────────────────────────────────────────────────────────────────

def probe(runtime: Runtime, card: EncodedCard) -> Capabilities:
    try:
        can_share = bool(runtime.can_share_files(card.filename, card.mime))
    except Exception as exc:
        logger.debug("Share capability probe failed: %s", exc)
        can_share = False
    return Capabilities(can_share_files=can_share, anchor_download=runtime.supports_anchor_download)


def choose_strategy(caps: Capabilities, attempted: frozenset[Strategy]) -> Strategy | None:
    """Next strategy to try given what has already been tried, or None when exhausted."""
    if caps.can_share_files and not attempted:
        return Strategy.NATIVE_SHARE
    if Strategy.DIRECT_DOWNLOAD not in attempted:
        return Strategy.DIRECT_DOWNLOAD
    if Strategy.SERVER_FALLBACK not in attempted:
        return Strategy.SERVER_FALLBACK
    return None


# ── Handlers ───────────────────────────────────────────────────────────────────

def share_native(card: EncodedCard, runtime: Runtime) -> None:
    shared = SharedFile(name=card.filename, data=card.payload, mime=card.mime)
    runtime.share(shared, title=card.full_name or card.filename, text=SHARE_TEXT)


def download_bytes(
    data: bytes,
    filename: str,
    mime: str,
    runtime: Runtime,
    revoke_delay: float = DEFAULT_REVOKE_DELAY,
) -> None:
    """Save `data` through a temporary object URL.

    The URL is scheduled for revocation whether or not the click succeeds.
    """
    url = runtime.create_object_url(data, mime)
    try:
        if runtime.supports_anchor_download:
            runtime.click_download(url, filename)
        else:
            runtime.open_url(url, filename)
    finally:
        runtime.schedule(revoke_delay, lambda: runtime.revoke_object_url(url))


def download_direct(card: EncodedCard, runtime: Runtime, revoke_delay: float = DEFAULT_REVOKE_DELAY) -> None:
    download_bytes(card.payload, card.filename, card.mime, runtime, revoke_delay)


def download_from_server(
    card: EncodedCard,
    runtime: Runtime,
    backend: BackendClient | None,
    revoke_delay: float = DEFAULT_REVOKE_DELAY,
) -> None:
    if backend is None:
        raise FallbackError("no backend configured")
    if not card.profile_id:
        raise FallbackError("profile has no identifier to request a vCard for")
    data = backend.fetch_vcard(card.profile_id)
    try:
        download_bytes(data, card.filename, card.mime, runtime, revoke_delay)
    except Exception as exc:
        raise FallbackError(f"could not save server vCard: {exc}") from exc


# ── Driver ─────────────────────────────────────────────────────────────────────

def deliver(
    card: EncodedCard,
    runtime: Runtime,
    *,
    backend: BackendClient | None = None,
    revoke_delay: float = DEFAULT_REVOKE_DELAY,
) -> DeliveryOutcome:
    caps = probe(runtime, card)
    handlers: dict[Strategy, Callable[[], None]] = {
        Strategy.NATIVE_SHARE: lambda: share_native(card, runtime),
        Strategy.DIRECT_DOWNLOAD: lambda: download_direct(card, runtime, revoke_delay),
        Strategy.SERVER_FALLBACK: lambda: download_from_server(card, runtime, backend, revoke_delay),
    }

    attempts: list[Attempt] = []
    while (strategy := choose_strategy(caps, frozenset(a.strategy for a in attempts))) is not None:
        try:
            handlers[strategy]()
        except ShareCancelled:
            logger.info("Share sheet dismissed for %s; falling back to download", card.filename)
            attempts.append(Attempt(strategy, "cancelled"))
            continue
        except Exception as exc:
            if strategy is Strategy.NATIVE_SHARE:
                logger.info("Native share failed for %s: %s", card.filename, exc)
            elif strategy is Strategy.DIRECT_DOWNLOAD:
                logger.warning("Direct download of %s failed, trying server copy: %s", card.filename, exc)
            else:
                logger.error("Server fallback for %s failed: %s", card.filename, exc)
            attempts.append(Attempt(strategy, str(exc) or type(exc).__name__))
            continue
        attempts.append(Attempt(strategy))
        if strategy is Strategy.SERVER_FALLBACK:
            logger.warning("Delivered %s from server copy", card.filename)
        return DeliveryOutcome(strategy=strategy, attempts=attempts)

    return DeliveryOutcome(strategy=None, attempts=attempts)
