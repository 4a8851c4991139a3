"""Delivery strategy selection and the share → download → server chain."""
from __future__ import annotations

from vcard_export.delivery import (
    Capabilities,
    Strategy,
    choose_strategy,
    deliver,
    probe,
)
from vcard_export.encoder import encode_profile
from vcard_export.errors import ShareCancelled
from vcard_export.model import Profile, Tier

from conftest import FakeBackend, FakeRuntime


def _card(profile: Profile):
    return encode_profile(profile, Tier.SIMPLE)


# ── decision function ──────────────────────────────────────────────────────────

def test_choose_share_first_when_capable():
    caps = Capabilities(can_share_files=True)
    assert choose_strategy(caps, frozenset()) is Strategy.NATIVE_SHARE
    assert choose_strategy(caps, frozenset({Strategy.NATIVE_SHARE})) is Strategy.DIRECT_DOWNLOAD


def test_choose_download_when_not_capable():
    caps = Capabilities(can_share_files=False)
    assert choose_strategy(caps, frozenset()) is Strategy.DIRECT_DOWNLOAD


def test_choose_fallback_then_exhausted():
    caps = Capabilities()
    tried = frozenset({Strategy.DIRECT_DOWNLOAD})
    assert choose_strategy(caps, tried) is Strategy.SERVER_FALLBACK
    assert choose_strategy(caps, tried | {Strategy.SERVER_FALLBACK}) is None


def test_probe_failure_means_no_share(ada):
    class Broken(FakeRuntime):
        def can_share_files(self, filename, mime):
            raise TypeError("navigator.canShare is not a function")

    assert probe(Broken(), _card(ada)) == Capabilities(can_share_files=False, anchor_download=True)


# ── native share ───────────────────────────────────────────────────────────────

def test_share_success(ada):
    rt = FakeRuntime(can_share=True)
    outcome = deliver(_card(ada), rt)
    assert outcome.ok and outcome.strategy is Strategy.NATIVE_SHARE
    shared, title, text = rt.shared[0]
    assert shared.name == "Ada_Lovelace.vcf"
    assert shared.mime == "text/vcard"
    assert shared.data.startswith(b"BEGIN:VCARD\r\n")
    assert title == "Ada Lovelace"
    assert text == "Contact Card"
    assert "blob" not in rt.calls
    assert rt.saved == []


def test_share_cancelled_falls_back_to_download(ada):
    rt = FakeRuntime(can_share=True, share_error=ShareCancelled("AbortError"))
    outcome = deliver(_card(ada), rt)
    assert outcome.strategy is Strategy.DIRECT_DOWNLOAD
    assert rt.calls == ["probe", "share", "blob", "click"]
    assert [a.error for a in outcome.attempts] == ["cancelled", None]


def test_share_failure_falls_back_to_download(ada):
    rt = FakeRuntime(can_share=True, share_error=RuntimeError("NotAllowedError"))
    outcome = deliver(_card(ada), rt)
    assert outcome.strategy is Strategy.DIRECT_DOWNLOAD
    assert len(rt.saved) == 1


def test_no_share_capability_never_calls_share(ada):
    rt = FakeRuntime(can_share=False)
    outcome = deliver(_card(ada), rt)
    assert outcome.strategy is Strategy.DIRECT_DOWNLOAD
    assert "share" not in rt.calls
    assert rt.calls == ["probe", "blob", "click"]


# ── direct download ────────────────────────────────────────────────────────────

def test_download_saves_encoded_bytes_and_revokes(ada):
    rt = FakeRuntime()
    card = _card(ada)
    deliver(card, rt, revoke_delay=0.1)
    assert rt.saved == [("Ada_Lovelace.vcf", card.payload)]
    assert [d for d, _ in rt.timers] == [0.1]
    assert rt.revoked == []
    rt.run_timers()
    assert rt.revoked == ["blob:test/0"]


def test_no_anchor_support_opens_url(ada):
    rt = FakeRuntime(anchor=False)
    outcome = deliver(_card(ada), rt)
    assert outcome.strategy is Strategy.DIRECT_DOWNLOAD
    assert "open" in rt.calls and "click" not in rt.calls


def test_click_failure_still_revokes(ada):
    rt = FakeRuntime(click_error=RuntimeError("click blocked"))
    backend = FakeBackend(fetch_error=RuntimeError("offline"))
    deliver(_card(ada), rt, backend=backend)
    rt.run_timers()
    assert rt.revoked == ["blob:test/0"]


# ── server fallback ────────────────────────────────────────────────────────────

def test_blob_failure_uses_server_once(ada):
    rt = FakeRuntime(blob_failures=1)
    backend = FakeBackend(vcard=b"BEGIN:VCARD\r\nFN:From server\r\nEND:VCARD\r\n")
    outcome = deliver(_card(ada), rt, backend=backend)
    assert outcome.ok and outcome.strategy is Strategy.SERVER_FALLBACK
    assert backend.fetched == ["ada-lovelace"]
    assert rt.saved == [("Ada_Lovelace.vcf", backend.vcard)]
    rt.run_timers()
    assert rt.revoked == ["blob:test/0"]


def test_fallback_failure_is_fatal(ada, unreachable_backend):
    rt = FakeRuntime(blob_failures=1)
    outcome = deliver(_card(ada), rt, backend=unreachable_backend)
    assert not outcome.ok
    assert outcome.strategy is None
    assert [a.strategy for a in outcome.attempts] == [Strategy.DIRECT_DOWNLOAD, Strategy.SERVER_FALLBACK]
    assert unreachable_backend.fetched == ["ada-lovelace"]


def test_fallback_without_identifier_is_fatal():
    p = Profile.from_dict({"personalInfo": {"firstName": "No", "lastName": "Id"}})
    rt = FakeRuntime(blob_failures=1)
    backend = FakeBackend()
    outcome = deliver(_card(p), rt, backend=backend)
    assert not outcome.ok
    assert backend.fetched == []
    assert "identifier" in outcome.attempts[-1].error


def test_fallback_without_backend_is_fatal(ada):
    outcome = deliver(_card(ada), FakeRuntime(blob_failures=1), backend=None)
    assert not outcome.ok


def test_fallback_download_failure_is_fatal(ada):
    rt = FakeRuntime(blob_failures=2)
    backend = FakeBackend()
    outcome = deliver(_card(ada), rt, backend=backend)
    assert not outcome.ok
    assert backend.fetched == ["ada-lovelace"]
