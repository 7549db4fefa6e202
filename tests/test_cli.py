import json
import logging

import pytest

from news_headlines import cli
from news_headlines.models import Category


@pytest.fixture
def restore_root_handlers():
    original_handlers = list(logging.getLogger().handlers)
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
    yield
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)
        handler.close()
    for handler in original_handlers:
        logging.getLogger().addHandler(handler)


def test_configure_logging_defaults_to_console_only(restore_root_handlers):
    cli.configure_logging("INFO")

    handlers = logging.getLogger().handlers
    assert any(isinstance(handler, logging.StreamHandler) for handler in handlers)
    assert not any(isinstance(handler, logging.FileHandler) for handler in handlers)


def test_configure_logging_with_log_file_creates_file_handler(
    restore_root_handlers, tmp_path
):
    log_path = tmp_path / "logs" / "headlines.log"
    cli.configure_logging("DEBUG", str(log_path))

    assert log_path.exists()
    assert any(
        isinstance(handler, logging.FileHandler)
        for handler in logging.getLogger().handlers
    )


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        cli.configure_logging("CHATTY")


class _FakeService:
    def __init__(self, settings):
        self.settings = settings

    def get_headlines(self, category):
        return {"headlines": [], "category": category.value}, 200


def test_fetch_prints_payload(monkeypatch, capsys):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "HeadlineService", _FakeService)

    exit_code = cli.main(["fetch", "--category", "science"])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {"headlines": [], "category": "SCIENCE"}


def test_fetch_unknown_category_is_usage_error(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["fetch", "--category", "weather"])

    assert excinfo.value.code == 2


def test_env_file_is_merged_before_settings(monkeypatch, tmp_path):
    captured = {}
    env_xml = tmp_path / "env.xml"
    env_xml.write_text(
        '<environment><variable name="RSS_URL_SPORTS">https://feeds.example.com/s</variable></environment>',
        encoding="utf-8",
    )
    monkeypatch.delenv("RSS_URL_SPORTS", raising=False)
    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli.os, "environ", dict(cli.os.environ))

    def fake_fetch(args, settings):
        captured["settings"] = settings
        return 0

    monkeypatch.setitem(cli._COMMANDS, "fetch", fake_fetch)

    cli.main(["--env-file", str(env_xml), "fetch"])

    assert captured["settings"].feed_for(Category.SPORTS).url == "https://feeds.example.com/s"


def test_cli_log_level_overrides_environment(monkeypatch):
    captured = {}

    def fake_configure(level, log_file=None):
        captured["level"] = level
        captured["file"] = log_file

    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setattr(cli, "configure_logging", fake_configure)
    monkeypatch.setitem(cli._COMMANDS, "fetch", lambda args, settings: 0)

    cli.main(["--log-level", "DEBUG", "--log-file", "cli.log", "fetch"])

    assert captured == {"level": "DEBUG", "file": "cli.log"}


def test_check_enhancer_prints_report(monkeypatch, capsys):
    payload = {
        "enabled": True,
        "apiKeySet": True,
        "results": [{"original": "Old heading", "enhanced": "New heading"}],
    }

    class FakeClient:
        def __init__(self, base_url):
            assert base_url == "http://localhost:3000"

        def enhancement_report(self):
            return payload, 200

    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "HeadlinesClient", FakeClient)

    exit_code = cli.main(["check-enhancer", "--base-url", "http://localhost:3000"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Original: Old heading" in out
    assert "Enhanced: New heading" in out


def test_format_report_includes_error():
    text = cli.format_report(
        {"enabled": False, "apiKeySet": False, "error": "disabled", "message": "details"}
    )

    assert "AI enhancement enabled: False" in text
    assert "Error: disabled" in text
    assert "Message: details" in text


def test_fetch_from_running_server(monkeypatch, capsys):
    from news_headlines.models import Headline

    class FakeClient:
        def __init__(self, base_url):
            self.base_url = base_url

        def fetch(self, category):
            return [Headline(heading="Remote heading", message="Remote heading")]

    monkeypatch.setattr(cli, "configure_logging", lambda level, log_file=None: None)
    monkeypatch.setattr(cli, "HeadlinesClient", FakeClient)

    exit_code = cli.main(["fetch", "--base-url", "http://localhost:5000"])

    data = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert data["category"] == "LOCAL"
    assert data["headlines"][0]["heading"] == "Remote heading"
