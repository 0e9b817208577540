from unittest.mock import patch

import pytest

from saved_search_trigger import cli
from tests.support import TOKEN, FakeSplunkClient, http_error, ok


@pytest.fixture(autouse=True)
def splunk_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SPLUNK_TOKEN", TOKEN)
    monkeypatch.setenv("OWNER", "admin")
    monkeypatch.setenv("APP", "search")
    monkeypatch.setenv("SPLUNK_HOME", str(tmp_path / "splunk"))
    monkeypatch.delenv("ENABLE_LOGGING", raising=False)
    monkeypatch.delenv("SPLUNK_MANAGEMENT_ENDPOINT", raising=False)


def _run(argv, client):
    with patch.object(cli, "SplunkClient", return_value=client) as factory:
        code = cli.main(argv)
    return code, factory


def test_scenario_report_is_triggered(capsys, tmp_path):
    client = FakeSplunkClient(configs=[ok("index=main")], dispatches=[ok("<sid>123.45</sid>")])
    code, _ = _run(["Report X"], client)
    out = capsys.readouterr().out
    assert code == 0
    assert "SUCCESS: Successfully triggered: Report X (SID: 123.45)" in out
    assert "Triggered: 1 alerts, Skipped: 0 alerts" in out
    log_file = tmp_path / "splunk" / "var" / "log" / "splunk" / "trigger_saved_search.log"
    assert "Report X (SID: 123.45)" in log_file.read_text(encoding="utf-8")


def test_self_loop_alert_is_skipped(capsys):
    config_text = '<s:key name="action.script.filename">trigger_saved_search.py</s:key>'
    client = FakeSplunkClient(configs=[ok(config_text)])
    code, _ = _run(["Self Loop Alert", "--no-log-file"], client)
    err = capsys.readouterr().err
    assert code == 0
    assert client.dispatch_calls == []
    assert "  - Self Loop Alert (dangerous trigger action pattern: trigger_saved_search.py)" in err


def test_no_alerts_is_a_configuration_error():
    client = FakeSplunkClient()
    code, factory = _run(["--no-log-file"], client)
    assert code == 1
    factory.assert_not_called()
    assert client.config_calls == []


def test_invalid_configuration_exits_before_any_request(monkeypatch, capsys):
    monkeypatch.setenv("SPLUNK_MANAGEMENT_ENDPOINT", "splunk:8089")
    monkeypatch.setenv("OWNER", "")
    client = FakeSplunkClient()
    code, factory = _run(["Report X", "--no-log-file"], client)
    captured = capsys.readouterr()
    assert code == 1
    factory.assert_not_called()
    assert "Total validation errors: 2" in captured.err
    assert "Configuration validation failed. Exiting." in captured.err
    assert "Validating configuration parameters..." in captured.out
    assert "Total validation errors" not in captured.out


def test_dispatch_failures_do_not_change_exit_code(capsys):
    client = FakeSplunkClient(configs=[ok("")], dispatches=[http_error(404), http_error(404)])
    code, _ = _run(["Missing", "--no-log-file"], client)
    assert code == 0
    assert "FAILED: Search not found or permission denied: Missing" in capsys.readouterr().err


def test_alerts_file_is_read_in_order(tmp_path, capsys):
    alerts_file = tmp_path / "alerts.txt"
    alerts_file.write_text("# nightly\nFirst Alert\n\nSecond Alert\n", encoding="utf-8")
    client = FakeSplunkClient(
        configs=[ok(""), ok(""), ok("")],
        dispatches=[ok("<sid>1</sid>"), ok("<sid>2</sid>"), ok("<sid>3</sid>")],
    )
    code, _ = _run(["Zero", "--alerts-file", str(alerts_file), "--no-log-file"], client)
    assert code == 0
    assert [call[0] for call in client.dispatch_calls] == ["Zero", "First Alert", "Second Alert"]


def test_missing_alerts_file_is_fatal(tmp_path):
    code, factory = _run(["--alerts-file", str(tmp_path / "nope.txt"), "--no-log-file"], FakeSplunkClient())
    assert code == 1
    factory.assert_not_called()


def test_log_dir_falls_back_to_current_directory(monkeypatch, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setenv("SPLUNK_HOME", str(blocker))
    monkeypatch.chdir(tmp_path)
    client = FakeSplunkClient(configs=[ok("")], dispatches=[ok("<sid>1</sid>")])
    code, _ = _run(["Report X"], client)
    assert code == 0
    assert (tmp_path / "trigger_saved_search.log").exists()


def test_missing_owner_exits_before_any_request(monkeypatch, capsys):
    monkeypatch.delenv("OWNER")
    client = FakeSplunkClient()
    code, factory = _run(["Report X", "--no-log-file"], client)
    assert code == 1
    factory.assert_not_called()
    assert "ERROR: OWNER cannot be empty or contain spaces" in capsys.readouterr().err


def test_field_and_log_file_errors_are_reported_together(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("SPLUNK_MANAGEMENT_ENDPOINT", "splunk:8089")
    (tmp_path / "splunk" / "var" / "log" / "splunk" / "trigger_saved_search.log").mkdir(parents=True)
    code, factory = _run(["Report X"], FakeSplunkClient())
    err = capsys.readouterr().err
    assert code == 1
    factory.assert_not_called()
    assert "SPLUNK_MANAGEMENT_ENDPOINT must be in format" in err
    assert "Cannot write to log file" in err
    assert "Total validation errors: 2" in err
