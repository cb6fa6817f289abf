"""Tests for config loading and pipeline wiring."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from report_guard import (
    AuditLog, LocalCleanupRewriter, OpenAIRewriter, SqliteAuditLog, ValidationError,
    create_pipeline, load_config, load_from_yaml,
)


def test_defaults():
    cfg = load_config({})
    assert cfg["language"] == "de"
    assert cfg["passes"] == ("date", "numeric_id", "name")
    assert cfg["audit_backend"] == "memory"


def test_nested_and_flat_equivalent():
    flat = {"language": "en", "passes": ["date"]}
    assert load_config({"report_guard": flat}) == load_config(flat)


def test_create_pipeline_defaults():
    pipeline = create_pipeline()
    assert pipeline.redactor.passes == ("date", "numeric_id", "name")
    assert isinstance(pipeline.provider, LocalCleanupRewriter)
    assert isinstance(pipeline.audit, AuditLog)
    assert pipeline.vocabulary.language == "de"


def test_create_pipeline_custom():
    pipeline = create_pipeline({"report_guard": {
        "language": "en",
        "passes": ["email", "date"],
        "vocabulary": {"medical_keywords": ["Effusion", "fracture"]},
        "audit": {"backend": "none"},
    }})
    assert pipeline.redactor.passes == ("date", "email")
    assert pipeline.vocabulary.language == "en"
    assert pipeline.vocabulary.medical_keywords == ("effusion", "fracture")
    assert pipeline.vocabulary.lateral_terms == ("left", "right")
    assert pipeline.audit is None


def test_openai_backend(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    pipeline = create_pipeline({"provider": {"backend": "openai", "model": "gpt-test", "timeout": 12}})
    assert isinstance(pipeline.provider, OpenAIRewriter)
    assert pipeline.provider.model == "gpt-test"
    assert pipeline.provider.timeout == 12.0
    assert pipeline.timeout == 12.0


def test_sqlite_audit_backend(tmp_path):
    pipeline = create_pipeline({"audit": {"backend": "sqlite", "path": str(tmp_path / "audit.db")}})
    assert isinstance(pipeline.audit, SqliteAuditLog)
    pipeline.audit.close()


@pytest.mark.parametrize("config", [
    {"provider": {"backend": "carrier-pigeon"}},
    {"audit": {"backend": "redis"}},
    {"passes": ["date", "ssn"]},
    {"language": "fr"},
    {"vocabulary": {"lateral_terms": "links"}},
])
def test_invalid_config(config):
    with pytest.raises(ValidationError):
        create_pipeline(config)


def test_load_from_yaml(tmp_path):
    path = tmp_path / "guard.yaml"
    path.write_text(
        "report_guard:\n"
        "  passes: [date, numeric_id, name, doctor]\n"
        "  allow_list: ['123456']\n"
        "  vocabulary:\n"
        "    lateral_terms: [links, rechts, beidseits]\n",
        encoding="utf-8",
    )
    cfg = load_from_yaml(path)
    assert cfg["allow_list"] == {"123456"}
    pipeline = create_pipeline(cfg)
    assert pipeline.redactor.passes == ("date", "numeric_id", "name", "doctor")
    assert pipeline.vocabulary.lateral_terms == ("links", "rechts", "beidseits")
