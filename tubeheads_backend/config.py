from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

STORE_BACKENDS = ("supabase", "memory")


def load_env(*, env_file: str | Path | None = None, override: bool = False) -> Path | None:
    """
    Load the first `.env` file found (explicit path, repo root, then cwd).

    Returns the path that was loaded, or None when no file exists.
    """

    repo_root = Path(__file__).resolve().parents[1]
    candidates = [Path(env_file)] if env_file else []
    candidates += [repo_root / ".env", Path.cwd() / ".env"]
    for path in candidates:
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            return path
    return None


def _env_str(name: str, default: str | None = None) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}")
    return value


def _env_list(name: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in (_env_str(name) or "").split(",") if item.strip())


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    if raw is None:
        return default
    if not raw.isdigit() or int(raw) < 1:
        raise RuntimeError(f"{name} must be a positive integer, got {raw!r}")
    return int(raw)


@dataclass(frozen=True)
class Settings:
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    supabase_anon_key: str | None = None
    db_schema: str = "social"
    store_backend: str = "supabase"
    store_timeout_seconds: float = 10.0
    cas_max_attempts: int = 3
    tmdb_api_key: str | None = None
    tmdb_timeout_seconds: float = 20.0
    cors_allow_origins: tuple[str, ...] = ()

    def require_supabase(self) -> tuple[str, str]:
        if not self.supabase_url:
            raise RuntimeError("SUPABASE_URL environment variable is not set")
        if not self.supabase_service_role_key:
            raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY environment variable is not set")
        return self.supabase_url, self.supabase_service_role_key


def load_settings() -> Settings:
    """Read settings from the process environment."""

    backend = (_env_str("TUBEHEADS_STORE_BACKEND", "supabase") or "supabase").casefold()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(f"TUBEHEADS_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, got {backend!r}")

    return Settings(
        supabase_url=_env_str("SUPABASE_URL"),
        supabase_service_role_key=_env_str("SUPABASE_SERVICE_ROLE_KEY"),
        supabase_anon_key=_env_str("SUPABASE_ANON_KEY"),
        db_schema=_env_str("TUBEHEADS_DB_SCHEMA", "social") or "social",
        store_backend=backend,
        store_timeout_seconds=_env_float("TUBEHEADS_STORE_TIMEOUT_SECONDS", 10.0),
        cas_max_attempts=_env_int("TUBEHEADS_CAS_MAX_ATTEMPTS", 3),
        tmdb_api_key=_env_str("TMDB_API_KEY"),
        tmdb_timeout_seconds=_env_float("TMDB_TIMEOUT_SECONDS", 20.0),
        cors_allow_origins=_env_list("CORS_ALLOW_ORIGINS"),
    )
