from __future__ import annotations

import json

import pytest

from unitsync.audit import audit_log_path, log_operation, read_logs
from unitsync.commands.history import History


@pytest.fixture(autouse=True)
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_log_operation_appends_json_lines(home):
    log_operation("apply", {"succeeded": 2, "failed": 0})
    log_operation("apply", {"succeeded": 0, "failed": 1})

    lines = audit_log_path().read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["operation"] == "apply"
    assert first["details"] == {"succeeded": 2, "failed": 0}
    assert {"timestamp", "user", "host"} <= set(first)


def test_read_logs_most_recent_first_and_limited():
    for i in range(5):
        log_operation("apply", {"succeeded": i})

    records = read_logs(limit=2)

    assert [r.details["succeeded"] for r in records] == [4, 3]


def test_read_logs_skips_malformed_lines():
    log_operation("apply")
    with audit_log_path().open("a") as f:
        f.write("not json\n\n")
    log_operation("apply", {"failed": 1})

    assert len(read_logs()) == 2


def test_read_logs_skips_records_of_the_wrong_shape():
    log_operation("apply", {"succeeded": 1})
    with audit_log_path().open("a") as f:
        f.write('{"timestamp": "2026-01-01T00:00:00", "operation": "apply", "details": "x"}\n')
        f.write('{"operation": "apply"}\n')

    [record] = read_logs()

    assert record.details == {"succeeded": 1}


def test_history_tolerates_hand_edited_lines(capsys):
    with audit_log_path().open("a") as f:
        f.write('{"timestamp": "2026-01-01T00:00:00", "operation": "apply", "details": []}\n')
    log_operation("apply", {"succeeded": 3})

    History()()

    out = capsys.readouterr().out
    assert "unknown:" in out
    assert "Applied 3 action(s)" in out


def test_read_logs_without_file():
    assert read_logs() == []


def test_history_prints_failures(capsys):
    log_operation(
        "apply",
        {
            "state_file": "/var/lib/unitsync/state.json",
            "succeeded": 1,
            "failed": 1,
            "actions": [
                {"action": "create a.service", "ok": True, "reason": None},
                {"action": "update b.service", "ok": False, "reason": "restart failed: boom"},
            ],
        },
    )

    History()()

    out = capsys.readouterr().out
    assert "/var/lib/unitsync/state.json" in out
    assert "1 failed" in out
    assert "update b.service: restart failed: boom" in out
    assert "create a.service:" not in out


def test_history_without_logs(capsys):
    History()()

    assert "No audit logs found" in capsys.readouterr().out
