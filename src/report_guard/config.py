"""YAML/dict config loader for report-guard.

Supports loading from a YAML file or a plain dict (for embedding in a
larger application config).

Example YAML:

    report_guard:
      language: de
      passes: [date, numeric_id, name, email]
      use_presidio: false
      score_threshold: 0.35
      allow_list:
        - Radiologie Mitte
      vocabulary:
        medical_keywords: [fraktur, tumor, blutung, erguss]
      provider:
        backend: openai          # "local" or "openai"
        model: gpt-4o-mini
        timeout: 30
      audit:
        backend: sqlite          # "memory", "sqlite" or "none"
        path: ~/.report-guard/audit.db
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Any

from .audit import AuditLog, SqliteAuditLog
from .errors import ValidationError
from .patterns import DEFAULT_PASSES
from .pipeline import ReportPipeline
from .redactor import Redactor, RedactorConfig
from .rewrite import LocalCleanupRewriter, OpenAIRewriter
from .vocabulary import get_vocabulary

_PROVIDERS = ("local", "openai")
_AUDIT_BACKENDS = ("memory", "sqlite", "none")


def load_config(data: dict[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = data or {}
    # Support nested under "report_guard" key or flat
    if "report_guard" in data:
        data = data["report_guard"] or {}

    provider = data.get("provider") or {}
    audit = data.get("audit") or {}
    cfg = {
        "language": data.get("language", "de"),
        "passes": tuple(data.get("passes", DEFAULT_PASSES)),
        "use_presidio": bool(data.get("use_presidio", False)),
        "score_threshold": float(data.get("score_threshold", 0.35)),
        "allow_list": set(data.get("allow_list", [])),
        "vocabulary": data.get("vocabulary") or {},
        "provider_backend": provider.get("backend", os.environ.get("REPORT_GUARD_PROVIDER", "local")),
        "provider_model": provider.get("model"),
        "provider_base_url": provider.get("base_url"),
        "provider_timeout": float(provider.get("timeout", 30)),
        "provider_api_key_env": provider.get("api_key_env", "OPENAI_API_KEY"),
        "audit_backend": audit.get("backend", "memory"),
        "audit_path": audit.get("path", "audit.db"),
    }
    if cfg["provider_backend"] not in _PROVIDERS:
        raise ValidationError(f"provider.backend must be one of {_PROVIDERS}")
    if cfg["audit_backend"] not in _AUDIT_BACKENDS:
        raise ValidationError(f"audit.backend must be one of {_AUDIT_BACKENDS}")
    return cfg


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    import yaml
    with open(Path(path).expanduser(), encoding="utf-8") as f:
        return load_config(yaml.safe_load(f))


def _normalized(config: dict[str, Any] | None) -> dict[str, Any]:
    return config if config is not None and "provider_backend" in config else load_config(config)


def create_redactor(config: dict[str, Any] | None = None) -> Redactor:
    """Redactor alone; no provider or audit backend is built."""
    cfg = _normalized(config)
    return Redactor(RedactorConfig(
        passes=cfg["passes"],
        use_presidio=cfg["use_presidio"],
        language=cfg["language"],
        score_threshold=cfg["score_threshold"],
        allow_list=cfg["allow_list"],
    ))


def create_pipeline(config: dict[str, Any] | None = None) -> ReportPipeline:
    """Create a fully configured pipeline from a config dict."""
    cfg = _normalized(config)

    redactor = create_redactor(cfg)
    vocabulary = get_vocabulary(cfg["language"]).with_overrides(cfg["vocabulary"])

    if cfg["provider_backend"] == "openai":
        provider = OpenAIRewriter(
            api_key=os.environ.get(cfg["provider_api_key_env"]),
            model=cfg["provider_model"],
            base_url=cfg["provider_base_url"],
            timeout=cfg["provider_timeout"],
        )
    else:
        provider = LocalCleanupRewriter()

    if cfg["audit_backend"] == "sqlite":
        audit = SqliteAuditLog(cfg["audit_path"])
    elif cfg["audit_backend"] == "memory":
        audit = AuditLog()
    else:
        audit = None

    return ReportPipeline(
        redactor=redactor,
        provider=provider,
        vocabulary=vocabulary,
        audit=audit,
        timeout=cfg["provider_timeout"],
    )


def pipeline_from_env() -> ReportPipeline:
    """Pipeline from REPORT_GUARD_CONFIG if set, else defaults."""
    path = os.environ.get("REPORT_GUARD_CONFIG")
    return create_pipeline(load_from_yaml(path) if path else None)
