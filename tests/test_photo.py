import base64

import requests

from vcard_export.photo import resolve_photo


class _Resp:
    def __init__(self, body: bytes, content_type: str | None = "image/jpeg", status: int = 200,
                 length: bool = True):
        self.body = body
        self.status = status
        self.headers = {}
        if content_type:
            self.headers["Content-Type"] = content_type
        if length:
            self.headers["Content-Length"] = str(len(body))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i:i + chunk_size]


class _Session:
    def __init__(self, resp=None, error=None):
        self.resp = resp
        self.error = error
        self.requested: list[tuple[str, float]] = []

    def get(self, url, timeout=None, stream=False):
        self.requested.append((url, timeout))
        if self.error is not None:
            raise self.error
        return self.resp


def _data_uri(data: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


# ── data URIs ──────────────────────────────────────────────────────────────────

def test_data_uri_decoded():
    photo = resolve_photo(_data_uri(b"\x89PNG fake"))
    assert photo is not None
    assert photo.data == b"\x89PNG fake"
    assert photo.mime == "image/png"


def test_data_uri_too_large_skipped():
    assert resolve_photo(_data_uri(b"x" * 2048), max_bytes=1024) is None


def test_non_image_data_uri_skipped():
    assert resolve_photo(_data_uri(b"hello", mime="text/plain")) is None


def test_missing_or_unsupported():
    assert resolve_photo(None) is None
    assert resolve_photo("") is None
    assert resolve_photo("/uploads/photo.jpg") is None


# ── remote URLs ────────────────────────────────────────────────────────────────

def test_url_fetched_with_timeout():
    http = _Session(_Resp(b"jpegbytes"))
    photo = resolve_photo("https://cdn.example/p.jpg", timeout=2.5, http=http)
    assert photo is not None
    assert photo.data == b"jpegbytes"
    assert photo.mime == "image/jpeg"
    assert http.requested == [("https://cdn.example/p.jpg", 2.5)]


def test_url_mime_guessed_from_suffix():
    http = _Session(_Resp(b"gif", content_type="application/octet-stream"))
    photo = resolve_photo("https://cdn.example/a.gif", http=http)
    assert photo is not None and photo.mime == "image/gif"


def test_url_not_an_image():
    http = _Session(_Resp(b"<html>", content_type="text/html"))
    assert resolve_photo("https://cdn.example/page", http=http) is None


def test_url_oversized_by_header():
    http = _Session(_Resp(b"x" * 300))
    assert resolve_photo("https://cdn.example/big.jpg", max_bytes=100, http=http) is None


def test_url_oversized_without_length_header():
    http = _Session(_Resp(b"x" * 300, length=False))
    assert resolve_photo("https://cdn.example/big.jpg", max_bytes=100, http=http) is None


def test_malformed_url_is_skipped():
    http = _Session(_Resp(b"jpegbytes"))
    assert resolve_photo("http://[cdn.example/p.jpg", http=http) is None
    assert http.requested == []


def test_url_unreachable_is_not_fatal():
    http = _Session(error=requests.ConnectionError("refused"))
    assert resolve_photo("https://cdn.example/p.jpg", http=http) is None


def test_url_http_error():
    http = _Session(_Resp(b"", status=404))
    assert resolve_photo("https://cdn.example/p.jpg", http=http) is None
