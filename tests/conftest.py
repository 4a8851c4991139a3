from __future__ import annotations

import pytest

from vcard_export.errors import FallbackError
from vcard_export.model import Profile
from vcard_export.runtime import Runtime


class FakeRuntime(Runtime):
    """Scripted runtime: records every call, timers fire only on `run_timers()`."""

    def __init__(
        self,
        *,
        can_share: bool = False,
        share_error: Exception | None = None,
        anchor: bool = True,
        blob_failures: int = 0,
        click_error: Exception | None = None,
    ):
        self.can_share = can_share
        self.share_error = share_error
        self.anchor = anchor
        self.blob_failures = blob_failures
        self.click_error = click_error
        self.calls: list[str] = []
        self.urls: dict[str, bytes] = {}
        self.revoked: list[str] = []
        self.timers: list[tuple[float, object]] = []
        self.saved: list[tuple[str, bytes]] = []
        self.shared: list[tuple[object, str, str]] = []
        self.alerts: list[str] = []

    @property
    def supports_anchor_download(self) -> bool:
        return self.anchor

    def can_share_files(self, filename, mime):
        self.calls.append("probe")
        return self.can_share

    def share(self, shared, title, text):
        self.calls.append("share")
        if self.share_error is not None:
            raise self.share_error
        self.shared.append((shared, title, text))

    def create_object_url(self, data, mime):
        self.calls.append("blob")
        if self.blob_failures:
            self.blob_failures -= 1
            raise RuntimeError("Blob construction failed")
        url = f"blob:test/{len(self.urls)}"
        self.urls[url] = data
        return url

    def revoke_object_url(self, url):
        self.revoked.append(url)

    def click_download(self, url, filename):
        self.calls.append("click")
        if self.click_error is not None:
            raise self.click_error
        self.saved.append((filename, self.urls[url]))

    def open_url(self, url, filename):
        self.calls.append("open")
        self.saved.append((filename, self.urls[url]))

    def schedule(self, delay, callback):
        self.timers.append((delay, callback))

    def run_timers(self):
        pending, self.timers = self.timers, []
        for _, cb in pending:
            cb()

    def alert(self, message):
        self.alerts.append(message)


class FakeBackend:
    http = None

    def __init__(self, vcard: bytes = b"BEGIN:VCARD\r\nVERSION:3.0\r\nEND:VCARD\r\n",
                 fetch_error: Exception | None = None,
                 event_error: Exception | None = None):
        self.vcard = vcard
        self.fetch_error = fetch_error
        self.event_error = event_error
        self.fetched: list[str] = []
        self.events: list[dict] = []

    def fetch_vcard(self, profile_id):
        self.fetched.append(profile_id)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.vcard

    def record_event(self, payload):
        self.events.append(payload)
        if self.event_error is not None:
            raise self.event_error


def profile_dict(**overrides) -> dict:
    data = {
        "id": "64f0c0ffee",
        "slug": "ada-lovelace",
        "personalInfo": {"firstName": "Ada", "lastName": "Lovelace"},
        "contactInfo": {"email": "ada@example.com"},
    }
    data.update(overrides)
    return data


@pytest.fixture
def ada() -> Profile:
    return Profile.from_dict(profile_dict())


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def unreachable_backend() -> FakeBackend:
    return FakeBackend(fetch_error=FallbackError("connection refused"))
