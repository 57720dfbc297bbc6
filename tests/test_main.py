import json

import pytest

from pr_pickup_agent import main as cli
from pr_pickup_agent.db import get_daily_stats, init_db
from pr_pickup_agent.settings import ConfigStore


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = str(tmp_path / "state.db")
    monkeypatch.setenv("DB_PATH", path)
    for key in ("TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER", "TWILIO_TO_NUMBER"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("VERIFY_WINDOW_SECONDS", "0.01")
    monkeypatch.setenv("VERIFY_TICK_SECONDS", "0.01")
    monkeypatch.setenv("SETTLE_DELAY_SECONDS", "0.01")
    return path


def read_settings(db_path):
    conn = init_db(db_path)
    return conn, ConfigStore(conn, "unused", 180)


def test_set_interval(db_path, capsys):
    assert cli.main(["set-interval", "90"]) == 0
    conn, settings = read_settings(db_path)
    assert settings.pickup_interval == 90
    conn.close()
    assert "90s" in capsys.readouterr().out


def test_set_interval_rejects_garbage(db_path, capsys):
    assert cli.main(["set-interval", "soon"]) == 2
    assert "Invalid pickup interval" in capsys.readouterr().err


def test_auto_pickup_toggle(db_path):
    cli.main(["auto-pickup", "toggle"])
    conn, settings = read_settings(db_path)
    assert settings.auto_pickup_enabled is False
    conn.close()

    cli.main(["auto-pickup", "on"])
    conn, settings = read_settings(db_path)
    assert settings.auto_pickup_enabled is True
    conn.close()


def test_set_ding_url_empty_restores_default(db_path):
    cli.main(["set-ding-url", "http://example.com/a.wav"])
    cli.main(["set-ding-url"])
    conn, settings = read_settings(db_path)
    assert settings.ding_url.endswith("alarm.wav")
    conn.close()


def test_stats_with_no_history(db_path, capsys):
    assert cli.main(["stats"]) == 0
    assert "No stats recorded yet." in capsys.readouterr().out


def test_run_replays_events(db_path, tmp_path, monkeypatch):
    monkeypatch.setattr(cli.DingAlertSink, "alert", lambda self: None)
    events = tmp_path / "events.jsonl"
    events.write_text("\n".join([
        json.dumps([{"id": "A", "status": "Started"}]),
        json.dumps([{"id": "B", "status": "Not started", "url": "https://example.com/B"}]),
    ]) + "\n", encoding="utf-8")

    cli.main(["reset-throttle"])
    assert cli.main(["run", "--events", str(events), "--no-browser"]) == 0

    conn, settings = read_settings(db_path)
    stats = get_daily_stats(conn, _today())
    assert (stats.items_seen, stats.items_claimed) == (1, 1)
    assert settings.last_claim_timestamp > 0
    conn.close()


def _today():
    from datetime import datetime
    return datetime.now().strftime("%Y-%m-%d")


def test_run_with_missing_events_file(db_path, tmp_path):
    assert cli.main(["run", "--events", str(tmp_path / "missing.jsonl")]) == 2
