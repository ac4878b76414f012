"""Environment-driven settings for the holders service."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError


DEFAULT_NETWORK = "polygon-mainnet"
DEFAULT_PAGE_LIMIT = 100
DEFAULT_TIMEOUT = 20
_ALCHEMY_KEY_RE = re.compile(r"(/nft/v\d+/)([^/?#\s]+)")


def _load_dotenv(path: str = ".env") -> None:
    env_file = Path(path)
    if not env_file.exists():
        return
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def redact_endpoint(endpoint: str) -> str:
    return _ALCHEMY_KEY_RE.sub(r"\1***", endpoint)


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    network: str = DEFAULT_NETWORK
    endpoint: Optional[str] = None
    page_limit: int = DEFAULT_PAGE_LIMIT
    timeout: int = DEFAULT_TIMEOUT
    max_pages: int = 0
    root_path: str = ""

    @classmethod
    def from_env(cls, dotenv_path: str = ".env") -> "Settings":
        _load_dotenv(dotenv_path)
        return cls(
            api_key=os.getenv("ALCHEMY_API_KEY") or None,
            network=os.getenv("HODLERS_ALCHEMY_NETWORK") or DEFAULT_NETWORK,
            endpoint=os.getenv("HODLERS_ALCHEMY_ENDPOINT") or None,
            page_limit=_env_int("HODLERS_PAGE_LIMIT", DEFAULT_PAGE_LIMIT),
            timeout=_env_int("HODLERS_TIMEOUT", DEFAULT_TIMEOUT),
            max_pages=_env_int("HODLERS_MAX_PAGES", 0),
            root_path=os.getenv("HODLERS_ROOT_PATH", ""),
        )
