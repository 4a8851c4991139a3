"""server.py — local stand-in for the public profile REST endpoints.

Uses only Python stdlib (http.server, json). Serves profiles from a folder
of JSON files (one profile per file, looked up by id, `_id` or slug):

    GET  /api/public/profiles/<id>         profile JSON
    GET  /api/public/profiles/<id>/vcard   server-rendered card (full tier)
    POST /api/analytics                    appended to var/analytics.jsonl
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from urllib.parse import unquote, urlparse

from .encoder import encode_profile
from .io import load_profile_dict
from .model import Profile, Tier

logger = logging.getLogger(__name__)

PORT = 8421
_PREFIX = "/api/public/profiles/"


class ProfileStore:
    def __init__(self, profiles_dir: Path):
        self.profiles_dir = Path(profiles_dir)

    def find(self, key: str) -> dict | None:
        if not self.profiles_dir.is_dir():
            return None
        for path in sorted(self.profiles_dir.glob("*.json")):
            try:
                data = load_profile_dict(path)
            except (OSError, ValueError) as exc:
                logger.warning("Skipping unreadable profile %s: %s", path.name, exc)
                continue
            ids = {str(data.get(k)) for k in ("id", "_id", "slug") if data.get(k)}
            if key in ids or path.stem == key:
                return data
        return None


class ProfileServer(HTTPServer):
    allow_reuse_address = True

    def __init__(self, address, store: ProfileStore, var_dir: Path):
        super().__init__(address, ProfileHandler)
        self.store = store
        self.var_dir = Path(var_dir)
        self._analytics_lock = threading.Lock()

    def append_event(self, event: dict) -> None:
        self.var_dir.mkdir(parents=True, exist_ok=True)
        line = json.dumps(event, ensure_ascii=False)
        with self._analytics_lock, (self.var_dir / "analytics.jsonl").open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")


class ProfileHandler(BaseHTTPRequestHandler):
    server: ProfileServer

    def log_message(self, fmt, *args):
        logger.debug("%s - %s", self.address_string(), fmt % args)

    def _send_json(self, data: dict, status: int = 200):
        body = json.dumps(data).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def _not_found(self, error: str = "Not found"):
        self._send_json({"success": False, "error": error}, 404)

    def _send_vcard(self, data: dict):
        profile = Profile.from_dict(data)
        card = encode_profile(profile, Tier.FULL, revision=datetime.now(timezone.utc))
        body = card.payload
        self.send_response(200)
        self.send_header("Content-Type", card.mime)
        self.send_header("Content-Disposition", f'attachment; filename="{card.filename}"')
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(body)

    def do_OPTIONS(self):
        self.send_response(200)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def do_GET(self):
        path = urlparse(self.path).path
        if not path.startswith(_PREFIX):
            return self._not_found()

        parts = [unquote(p) for p in path[len(_PREFIX):].split("/") if p]
        if not parts or len(parts) > 2 or (len(parts) == 2 and parts[1] != "vcard"):
            return self._not_found()

        data = self.server.store.find(parts[0])
        if data is None or data.get("isActive", True) is False:
            return self._not_found("Profile not found")

        if len(parts) == 2:
            self._send_vcard(data)
        else:
            self._send_json({"success": True, "data": data})

    def do_POST(self):
        path = urlparse(self.path).path
        if path != "/api/analytics":
            return self._not_found()

        try:
            length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            return self._send_json({"success": False, "error": "Invalid Content-Length"}, 400)
        body_raw = self.rfile.read(length)
        try:
            body = json.loads(body_raw) if body_raw else {}
        except ValueError:
            return self._send_json({"success": False, "error": "Invalid JSON"}, 400)
        if not isinstance(body, dict):
            return self._send_json({"success": False, "error": "Expected an object"}, 400)

        body["receivedAt"] = datetime.now(timezone.utc).isoformat()
        self.server.append_event(body)
        self._send_json({"success": True})


def make_server(profiles_dir: Path, var_dir: Path, host: str = "127.0.0.1", port: int = PORT) -> ProfileServer:
    return ProfileServer((host, port), ProfileStore(profiles_dir), var_dir)


def serve(profiles_dir: Path, var_dir: Path, host: str = "127.0.0.1", port: int = PORT) -> None:
    server = make_server(profiles_dir, var_dir, host, port)
    logger.info("Serving profiles from %s on http://%s:%d", profiles_dir, host, server.server_port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
