from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
from urllib.parse import urlparse

import requests

from .model import Photo

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 200 * 1024


def _from_data_uri(uri: str, max_bytes: int) -> Photo | None:
    # data:image/jpeg;base64,....
    header, sep, payload = uri.partition(",")
    if not sep or not header.lower().startswith("data:image"):
        logger.debug("Not an image data URI: %.40s", uri)
        return None
    mime = header[5:].split(";")[0] or None
    if ";base64" not in header.lower():
        logger.debug("Skipping non-base64 data URI photo")
        return None
    try:
        data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        logger.warning("Undecodable photo data URI: %s", exc)
        return None
    if len(data) > max_bytes:
        logger.debug("Photo skipped: %d bytes > %d", len(data), max_bytes)
        return None
    return Photo(data=data, mime=mime)


def _from_url(
    url: str,
    max_bytes: int,
    timeout: float,
    http: requests.Session | None,
) -> Photo | None:
    getter = http.get if http is not None else requests.get
    try:
        with getter(url, timeout=timeout, stream=True) as resp:
            resp.raise_for_status()
            ctype = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
            if not ctype or ctype == "application/octet-stream":
                ctype = mimetypes.guess_type(urlparse(url).path)[0] or ""
            if not ctype.startswith("image/"):
                logger.debug("Photo skipped: %s is %r, not an image", url, ctype)
                return None
            length = resp.headers.get("Content-Length")
            if length and length.isdigit() and int(length) > max_bytes:
                logger.debug("Photo skipped: Content-Length %s > %d", length, max_bytes)
                return None
            buf = bytearray()
            for chunk in resp.iter_content(chunk_size=16 * 1024):
                buf.extend(chunk)
                if len(buf) > max_bytes:
                    logger.debug("Photo skipped: body exceeds %d bytes", max_bytes)
                    return None
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Photo unreachable (%s): %s", url, exc)
        return None
    if not buf:
        return None
    return Photo(data=bytes(buf), mime=ctype)


def resolve_photo(
    source: str | None,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    timeout: float = 5.0,
    http: requests.Session | None = None,
) -> Photo | None:
    """Turn a profilePhoto value into embeddable bytes, or None.

    Accepts image data-URIs and http(s) URLs. Oversized, non-image or
    unreachable photos are skipped; this never raises.
    """
    if not source:
        return None
    source = source.strip()
    if source.lower().startswith("data:"):
        return _from_data_uri(source, max_bytes)
    try:
        scheme = urlparse(source).scheme
    except ValueError as exc:
        logger.debug("Malformed photo URL %.60s: %s", source, exc)
        return None
    if scheme in ("http", "https"):
        return _from_url(source, max_bytes, timeout, http)
    logger.debug("Unsupported photo reference: %.60s", source)
    return None
