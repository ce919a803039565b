from pathlib import Path

import pytest

from pagepeeker.core.config import Settings


def test_settings_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    current = Settings()

    assert current.base_url == "http://free.pagepeeker.com"
    assert current.request_path == "/v2/thumbs.php"
    assert current.status_path == "/v2/thumbs_ready.php"
    assert current.default_max_wait_seconds == 300.0
    assert current.json_logs is False


def test_settings_read_prefixed_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PAGEPEEKER_BASE_URL", "http://mirror.test")
    monkeypatch.setenv("PAGEPEEKER_REQUEST_TIMEOUT_SECONDS", "4.5")
    monkeypatch.setenv("PAGEPEEKER_JSON_LOGS", "true")

    current = Settings()

    assert current.base_url == "http://mirror.test"
    assert current.request_timeout_seconds == 4.5
    assert current.json_logs is True


def test_settings_read_dotenv_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("PAGEPEEKER_DEFAULT_MAX_WAIT_SECONDS=42\nUNRELATED_KEY=1\n", encoding="utf-8")

    assert Settings().default_max_wait_seconds == 42.0
