"""CLI interface for report-guard.

Usage:
    # Redact a report (stdin: text, stdout: JSON with text + placeholders)
    echo 'Herr Meier, CT vom 12.03.2024' | report-guard redact

    # Reinsert (stdin: JSON {"text": ..., "placeholders": [...]}, stdout: text)
    report-guard reinsert < rewritten.json

    # Guard a candidate against its original; exits 1 when blocked
    report-guard guard --original befund.txt --candidate neu.txt

    # Full pipeline (stdin: text, stdout: wire-format outcome)
    report-guard process --mode B < befund.txt
"""

from __future__ import annotations
import argparse
import json
import logging
import sys

from .config import create_pipeline, create_redactor, load_config, load_from_yaml
from .errors import ReportGuardError, RewriteProviderError, ValidationError
from .guard import guard_diff
from .redactor import residual_identifiers
from .reinserter import inspect_placeholders, reinsert
from .types import Placeholder, ProcessingRequest, RewriteOptions
from .vocabulary import get_vocabulary


def _config(args: argparse.Namespace) -> dict:
    cfg = load_from_yaml(args.config) if args.config else load_config(None)
    if args.provider:
        cfg["provider_backend"] = args.provider
    return cfg


def _dump(data, out=None) -> None:
    out = out or sys.stdout
    json.dump(data, out, ensure_ascii=False)
    out.write("\n")


def cmd_redact(args: argparse.Namespace) -> int:
    """Redact a plain-text report on stdin."""
    result = create_redactor(_config(args)).redact(sys.stdin.read())
    _dump({
        "text": result.text,
        "placeholders": [p.to_dict() for p in result.ledger],
        "stats": result.stats(),
        "residual": list(residual_identifiers(result.text)),
    })
    return 0


def cmd_reinsert(args: argparse.Namespace) -> int:
    """Reinsert placeholders: stdin JSON {"text", "placeholders"}."""
    try:
        body = json.loads(sys.stdin.read())
    except json.JSONDecodeError as e:
        raise ValidationError(f"stdin is not valid JSON: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("stdin must hold a JSON object")
    placeholders = body.get("placeholders", [])
    if not isinstance(placeholders, list):
        raise ValidationError("placeholders must be a list")
    ledger = tuple(Placeholder.from_dict(p) for p in placeholders)
    text = body.get("text", "")
    if not isinstance(text, str):
        raise ValidationError("text must be a string")
    result = reinsert(text, ledger)
    if args.report:
        report = inspect_placeholders(text, ledger)
        _dump({
            "missing": list(report.missing),
            "duplicated": list(report.duplicated),
            "unknown": list(report.unknown),
        }, sys.stderr)
    sys.stdout.write(result)
    return 0


def cmd_guard(args: argparse.Namespace) -> int:
    """Compare two files; exit status 1 when the candidate is blocked."""
    cfg = _config(args)
    vocabulary = get_vocabulary(cfg["language"]).with_overrides(cfg["vocabulary"])
    with open(args.original, encoding="utf-8") as f:
        original = f.read()
    with open(args.candidate, encoding="utf-8") as f:
        candidate = f.read()
    report = guard_diff(original, candidate, vocabulary)
    _dump(report.to_dict())
    return 1 if report.blocked else 0


def cmd_process(args: argparse.Namespace) -> int:
    """Run the whole pipeline on stdin."""
    pipeline = create_pipeline(_config(args))
    request = ProcessingRequest(
        text=sys.stdin.read(),
        allow_content_changes=args.allow_content_changes,
        options=RewriteOptions(mode=args.mode, style=args.style, address=args.address),
    )
    _dump(pipeline.process(request).to_dict())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="report-guard",
        description="De-identification and content guard for radiology report rewriting",
    )
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--provider", choices=["local", "openai"], default=None,
                        help="Override the configured rewrite provider")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (stderr)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("redact", help="Redact plain text (stdin)")
    p_reinsert = sub.add_parser("reinsert", help="Reinsert placeholders (JSON stdin)")
    p_reinsert.add_argument("--report", action="store_true", help="Write placeholder anomalies to stderr")
    p_guard = sub.add_parser("guard", help="Guard a candidate against an original")
    p_guard.add_argument("--original", required=True)
    p_guard.add_argument("--candidate", required=True)
    p_process = sub.add_parser("process", help="Redact, rewrite, reinsert and guard (stdin)")
    p_process.add_argument("--mode", choices=["A", "B", "C", "D"], default="A")
    p_process.add_argument("--style", choices=["knapp", "neutral", "ausführlicher"], default="neutral")
    p_process.add_argument("--address", choices=["sie", "neutral"], default="neutral")
    p_process.add_argument("--allow-content-changes", action="store_true")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    cmds = {
        "redact": cmd_redact,
        "reinsert": cmd_reinsert,
        "guard": cmd_guard,
        "process": cmd_process,
    }
    try:
        return cmds[args.command](args)
    except ValidationError as e:
        sys.stderr.write(f"invalid input: {e}\n")
        return 2
    except RewriteProviderError as e:
        sys.stderr.write(f"rewrite failed (retry later): {e}\n")
        return 3
    except ReportGuardError as e:
        sys.stderr.write(f"error: {e}\n")
        return 2


if __name__ == "__main__":
    sys.exit(main())
