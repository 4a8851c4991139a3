"""Host runtime seen by the delivery layer.

`Runtime` is the seam between delivery logic and whatever actually puts a
file in front of the user: a browser bridge, a desktop shell, or a test
double. `LocalRuntime` is the desktop flavour: object URLs live in an
in-memory table and a "download" lands in a directory on disk.
"""
from __future__ import annotations

import logging
import re
import threading
import uuid
import webbrowser
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from rich.console import Console

logger = logging.getLogger(__name__)

_MOBILE_UA = re.compile(r"iPhone|iPad|iPod|Android", re.IGNORECASE)
_IOS_UA = re.compile(r"iPad|iPhone|iPod")


@dataclass(frozen=True)
class UserAgent:
    raw: str = ""

    @property
    def is_mobile(self) -> bool:
        return bool(_MOBILE_UA.search(self.raw))

    @property
    def is_ios(self) -> bool:
        return bool(_IOS_UA.search(self.raw))


@dataclass(frozen=True)
class SharedFile:
    name: str
    data: bytes
    mime: str


class Runtime(ABC):
    """Capabilities the delivery layer may use. Native share is off unless a subclass opts in."""

    supports_anchor_download: bool = True

    def can_share_files(self, filename: str, mime: str) -> bool:
        return False

    def share(self, shared: SharedFile, title: str, text: str) -> None:
        raise NotImplementedError("native share is not available")

    @abstractmethod
    def create_object_url(self, data: bytes, mime: str) -> str:
        """Register `data` and return a URL that stays live until revoked."""

    @abstractmethod
    def revoke_object_url(self, url: str) -> None:
        pass

    @abstractmethod
    def click_download(self, url: str, filename: str) -> None:
        pass

    @abstractmethod
    def open_url(self, url: str, filename: str) -> None:
        """Used where anchor downloads are unsupported."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        """Run `callback` once after `delay` seconds."""

    @abstractmethod
    def alert(self, message: str) -> None:
        pass


class LocalRuntime(Runtime):
    def __init__(
        self,
        downloads_dir: Path,
        user_agent: UserAgent | None = None,
        *,
        launch: bool = False,
        console: Console | None = None,
    ):
        self.downloads_dir = Path(downloads_dir)
        self.user_agent = user_agent or UserAgent()
        self.launch = launch
        self.console = console or Console()
        self.saved: list[Path] = []
        self._urls: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    @property
    def supports_anchor_download(self) -> bool:  # type: ignore[override]
        return not self.user_agent.is_ios

    # ── object URL table ───────────────────────────────────────────────────

    def create_object_url(self, data: bytes, mime: str) -> str:
        url = f"blob:local/{uuid.uuid4()}"
        with self._lock:
            self._urls[url] = (bytes(data), mime)
        return url

    def revoke_object_url(self, url: str) -> None:
        with self._lock:
            self._urls.pop(url, None)

    @property
    def live_urls(self) -> int:
        with self._lock:
            return len(self._urls)

    # ── saving ─────────────────────────────────────────────────────────────

    def _target(self, filename: str) -> Path:
        candidate = self.downloads_dir / filename
        stem, suffix = candidate.stem, candidate.suffix
        n = 1
        while candidate.exists():
            candidate = self.downloads_dir / f"{stem} ({n}){suffix}"
            n += 1
        return candidate

    def _save(self, url: str, filename: str) -> Path:
        with self._lock:
            entry = self._urls.get(url)
        if entry is None:
            raise LookupError(f"object URL {url} is not live")
        self.downloads_dir.mkdir(parents=True, exist_ok=True)
        path = self._target(filename)
        path.write_bytes(entry[0])
        self.saved.append(path)
        logger.debug("Saved %s", path)
        return path

    def click_download(self, url: str, filename: str) -> None:
        self._save(url, filename)

    def open_url(self, url: str, filename: str) -> None:
        path = self._save(url, filename)
        if self.launch:
            webbrowser.open(path.resolve().as_uri())

    # ── timers / UI ────────────────────────────────────────────────────────

    def schedule(self, delay: float, callback: Callable[[], None]) -> None:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()

    def alert(self, message: str) -> None:
        self.console.print(f"[bold red]{message}[/bold red]")
