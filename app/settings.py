# -*- coding: utf-8 -*-
from __future__ import annotations
import os
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Project root (one level above app/). The .env file lives here so working
# directory changes do not break configuration.
ROOT = Path(__file__).resolve().parents[1]
load_dotenv(ROOT / ".env")

# jagilley/controlnet-scribble
DEFAULT_MODEL_VERSION = "435061a1b5a4c1e26740464bf786efdfa9cb3a3ac488595a2de23e143fdb0117"
DEFAULT_BASE_URL = "https://api.replicate.com"


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return float(raw)


def _int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return int(raw)


def _resolve_logs_dir() -> Path:
    # LOGS_DIR: absolute -> as-is, relative -> from the project root.
    # Unset -> system temp directory.
    raw = os.getenv("LOGS_DIR", "").strip()
    if raw:
        p = Path(raw)
        return p if p.is_absolute() else (ROOT / p)
    return Path(tempfile.gettempdir()) / "logs"


@dataclass(frozen=True)
class Settings:
    replicate_api_token: Optional[str]
    replicate_base_url: str = DEFAULT_BASE_URL
    model_version: str = DEFAULT_MODEL_VERSION
    poll_interval: float = 0.5
    prediction_timeout: Optional[float] = 300.0
    max_concurrent_generations: int = 0
    raster_size: int = 512
    cors_origins: str = ""
    log_io: bool = True
    logs_dir: Path = Path(tempfile.gettempdir()) / "logs"
    log_level: str = "INFO"
    vercel_url: Optional[str] = None
    host: str = "127.0.0.1"
    port: int = 3000

    @property
    def base_url(self) -> str:
        """Absolute origin of this deployment, used by server-side RPC callers."""
        if self.vercel_url:
            return f"https://{self.vercel_url}"
        return f"http://localhost:{self.port}"


def load_settings() -> Settings:
    timeout = _float("PREDICTION_TIMEOUT", 300.0)
    return Settings(
        replicate_api_token=(os.getenv("REPLICATE_API_TOKEN") or "").strip() or None,
        replicate_base_url=(os.getenv("REPLICATE_BASE_URL") or "").strip() or DEFAULT_BASE_URL,
        model_version=(os.getenv("SCRIBBLE_MODEL_VERSION") or "").strip() or DEFAULT_MODEL_VERSION,
        poll_interval=_float("PREDICTION_POLL_INTERVAL", 0.5),
        prediction_timeout=timeout if timeout > 0 else None,
        max_concurrent_generations=_int("MAX_CONCURRENT_GENERATIONS", 0),
        raster_size=_int("RASTER_SIZE", 512),
        cors_origins=os.getenv("CORS_ORIGINS", "").strip(),
        log_io=_flag("LOG_IO", "true"),
        logs_dir=_resolve_logs_dir(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        vercel_url=(os.getenv("VERCEL_URL") or "").strip() or None,
        host=(os.getenv("HOST") or "127.0.0.1").strip(),
        port=_int("PORT", 3000),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
