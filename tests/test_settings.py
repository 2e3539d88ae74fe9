from pathlib import Path

from matchledger.config import Settings, load_settings


def test_defaults_without_environment(monkeypatch):
    for name in (
        "MATCHLEDGER_DB_PATH",
        "MATCHLEDGER_RELOAD_DEBOUNCE",
        "MATCHLEDGER_STORE_TIMEOUT",
        "MATCHLEDGER_LEGACY_TX_FALLBACK",
    ):
        monkeypatch.delenv(name, raising=False)

    assert load_settings() == Settings()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("MATCHLEDGER_DB_PATH", str(tmp_path / "league.sqlite"))
    monkeypatch.setenv("MATCHLEDGER_RELOAD_DEBOUNCE", "0.5")
    monkeypatch.setenv("MATCHLEDGER_STORE_TIMEOUT", "500")
    monkeypatch.setenv("MATCHLEDGER_LEGACY_TX_FALLBACK", "yes")

    settings = load_settings()

    assert settings.db_path == tmp_path / "league.sqlite"
    assert settings.reload_debounce == 0.5
    assert settings.store_timeout == 120.0
    assert settings.legacy_transaction_fallback is True


def test_sqlite_uri_is_kept_verbatim(monkeypatch):
    monkeypatch.setenv("MATCHLEDGER_DB_PATH", "file:league?mode=memory&cache=shared")

    settings = load_settings()

    assert settings.db_path == "file:league?mode=memory&cache=shared"
    assert not isinstance(settings.db_path, Path)


def test_invalid_values_fall_back_to_defaults(monkeypatch, caplog):
    monkeypatch.setenv("MATCHLEDGER_RELOAD_DEBOUNCE", "soon")
    monkeypatch.setenv("MATCHLEDGER_LEGACY_TX_FALLBACK", "maybe")

    settings = load_settings()

    assert settings.reload_debounce == 0.1
    assert settings.legacy_transaction_fallback is False
    assert "MATCHLEDGER_RELOAD_DEBOUNCE" in caplog.text
