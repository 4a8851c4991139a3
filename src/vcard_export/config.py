from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class Paths:
    root: Path
    downloads_dir: Path
    var_dir: Path
    local_dir: Path
    conf_file: Path


@dataclass
class Settings:
    api_base_url: str = "http://localhost:8421"
    public_base_url: str = ""
    fallback_timeout: float = 10.0
    photo_timeout: float = 5.0
    max_photo_bytes: int = 200 * 1024
    revoke_delay: float = 0.1
    ack_duration: float = 3.0
    phone_region: str = ""
    downloads_dir: str = "downloads"


DEFAULT_CONF = """# vcard-export local config (TOML)
api_base_url = "http://localhost:8421"
public_base_url = ""
fallback_timeout = 10.0
photo_timeout = 5.0
max_photo_bytes = 204800
revoke_delay = 0.1
ack_duration = 3.0
phone_region = ""
downloads_dir = "downloads"
"""


def _coerce(value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)


def load_settings(conf: Path) -> Settings:
    """Read a TOML config file over the defaults.

    Unknown keys are ignored. A missing or malformed file, or a value of the
    wrong type, falls back to the default with a warning.
    """
    settings = Settings()
    if not conf.exists():
        return settings
    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring malformed config %s: %s", conf, exc)
        return settings

    for f in fields(Settings):
        if f.name not in data:
            continue
        default = getattr(settings, f.name)
        try:
            setattr(settings, f.name, _coerce(data[f.name], default))
        except (TypeError, ValueError):
            logger.warning("Config %s: bad value for %s=%r, using %r", conf, f.name, data[f.name], default)
    return settings


def ensure_workspace(base: Path | None = None) -> tuple[Paths, Settings]:
    root = Path(base or os.getcwd())
    local = root / "local"
    var = root / "var"
    conf = local / "vcard-export.conf"

    for d in (local, var):
        d.mkdir(parents=True, exist_ok=True)

    if not conf.exists():
        conf.write_text(DEFAULT_CONF, encoding="utf-8")

    settings = load_settings(conf)
    downloads = Path(settings.downloads_dir)
    if not downloads.is_absolute():
        downloads = root / downloads
    downloads.mkdir(parents=True, exist_ok=True)

    return (
        Paths(root=root, downloads_dir=downloads, var_dir=var, local_dir=local, conf_file=conf),
        settings,
    )
