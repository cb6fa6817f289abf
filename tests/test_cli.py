"""Tests for the command-line interface."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import io
import json

import pytest

from report_guard.cli import main


def _run(monkeypatch, capsys, argv, stdin=""):
    monkeypatch.setattr(sys, "stdin", io.StringIO(stdin))
    code = main(argv)
    out, err = capsys.readouterr()
    return code, out, err


def test_redact(monkeypatch, capsys):
    code, out, _ = _run(monkeypatch, capsys, ["redact"], "Herr Meier am 12.03.2024")
    assert code == 0
    data = json.loads(out)
    assert data["text"] == "Herr [NAME_1] am [DATUM_0]"
    assert data["placeholders"] == [
        {"id": "[DATUM_0]", "original": "12.03.2024"},
        {"id": "[NAME_1]", "original": "Meier"},
    ]
    assert data["stats"] == {"date": 1, "name": 1}


def test_reinsert(monkeypatch, capsys):
    body = json.dumps({
        "text": "Herr [NAME_1], [NAME_1] am [DATUM_0] [ID_4]",
        "placeholders": [
            {"id": "[DATUM_0]", "original": "12.03.2024"},
            {"id": "[NAME_1]", "original": "Meier"},
        ],
    })
    code, out, err = _run(monkeypatch, capsys, ["reinsert", "--report"], body)
    assert code == 0
    assert out == "Herr Meier, Meier am 12.03.2024 [ID_4]"
    anomalies = json.loads(err.strip().splitlines()[-1])
    assert anomalies == {"missing": [], "duplicated": ["[NAME_1]"], "unknown": ["[ID_4]"]}


def test_reinsert_bad_json(monkeypatch, capsys):
    code, _, err = _run(monkeypatch, capsys, ["reinsert"], "{not json")
    assert code == 2
    assert "invalid input" in err


@pytest.mark.parametrize("stdin", [
    '["x"]',
    '"text"',
    '{"text": "a", "placeholders": {"id": "[ID_0]"}}',
    '{"text": 5, "placeholders": []}',
])
def test_reinsert_wrong_json_shape(monkeypatch, capsys, stdin):
    code, out, err = _run(monkeypatch, capsys, ["reinsert"], stdin)
    assert code == 2
    assert out == ""
    assert "invalid input" in err


def test_redact_needs_no_provider_credentials(monkeypatch, capsys):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    code, out, _ = _run(monkeypatch, capsys, ["--provider", "openai", "redact"], "Herr Meier")
    assert code == 0
    assert json.loads(out)["text"] == "Herr [NAME_0]"


def test_redact_reports_residual_identifiers(monkeypatch, capsys):
    code, out, _ = _run(monkeypatch, capsys, ["redact"], "Rückfragen an max@example.com")
    assert code == 0
    assert json.loads(out)["residual"] == ["email"]


def test_guard_exit_status(monkeypatch, capsys, tmp_path):
    original = tmp_path / "original.txt"
    candidate = tmp_path / "candidate.txt"
    original.write_text("Herd links im Oberlappen", encoding="utf-8")
    candidate.write_text("Herd im Oberlappen", encoding="utf-8")

    code, out, _ = _run(monkeypatch, capsys, [
        "guard", "--original", str(original), "--candidate", str(candidate),
    ])
    assert code == 1
    assert json.loads(out)["diff"]["lateralityChanged"] is True

    code, out, _ = _run(monkeypatch, capsys, [
        "guard", "--original", str(original), "--candidate", str(original),
    ])
    assert code == 0
    assert json.loads(out)["blocked"] is False


def test_process(monkeypatch, capsys):
    code, out, _ = _run(
        monkeypatch, capsys,
        ["--provider", "local", "process", "--mode", "B"],
        "Herr  Meier ,  Herd rechts 5 mm",
    )
    assert code == 0
    assert json.loads(out) == {"blocked": False, "answer": "Herr Meier, Herd rechts 5 mm"}


def test_process_empty_input(monkeypatch, capsys):
    code, _, err = _run(monkeypatch, capsys, ["--provider", "local", "process"], "  ")
    assert code == 2
    assert "invalid input" in err
