from __future__ import annotations

import pytest

from tubeheads_backend.config import Settings, load_env, load_settings

_ENV_NAMES = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "TUBEHEADS_DB_SCHEMA",
    "TUBEHEADS_STORE_BACKEND",
    "TUBEHEADS_STORE_TIMEOUT_SECONDS",
    "TUBEHEADS_CAS_MAX_ATTEMPTS",
    "TMDB_API_KEY",
    "CORS_ALLOW_ORIGINS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()
    assert settings.store_backend == "supabase"
    assert settings.db_schema == "social"
    assert settings.store_timeout_seconds == 10.0
    assert settings.cas_max_attempts == 3
    assert settings.cors_allow_origins == ()


def test_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TUBEHEADS_STORE_BACKEND", "Memory")
    monkeypatch.setenv("TUBEHEADS_STORE_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("TUBEHEADS_CAS_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, ,https://b.example")

    settings = load_settings()
    assert settings.store_backend == "memory"
    assert settings.store_timeout_seconds == 2.5
    assert settings.cas_max_attempts == 5
    assert settings.cors_allow_origins == ("https://a.example", "https://b.example")


@pytest.mark.parametrize(
    "name,value",
    [
        ("TUBEHEADS_STORE_BACKEND", "mongo"),
        ("TUBEHEADS_STORE_TIMEOUT_SECONDS", "soon"),
        ("TUBEHEADS_STORE_TIMEOUT_SECONDS", "0"),
        ("TUBEHEADS_CAS_MAX_ATTEMPTS", "0"),
    ],
)
def test_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        load_settings()


def test_require_supabase() -> None:
    with pytest.raises(RuntimeError):
        Settings().require_supabase()
    assert Settings(supabase_url="https://x.supabase.co", supabase_service_role_key="k").require_supabase() == (
        "https://x.supabase.co",
        "k",
    )


def test_load_env_prefers_explicit_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:  # noqa: ANN001
    env_file = tmp_path / "custom.env"
    env_file.write_text("TMDB_API_KEY=from-file\n")

    # monkeypatch restores this after the test.
    monkeypatch.setenv("TMDB_API_KEY", "")
    assert load_env(env_file=env_file, override=True) == env_file
    assert load_settings().tmdb_api_key == "from-file"
