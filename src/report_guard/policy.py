"""Decision policy: turns a guard report into the request outcome."""

from __future__ import annotations
import json
import logging

from .audit import BLOCKED, OVERRIDE, AuditLog, SqliteAuditLog
from .types import Accepted, Blocked, GuardReport, ProcessingOutcome

logger = logging.getLogger(__name__)


def decide(
    report: GuardReport,
    candidate: str,
    allow_content_changes: bool,
    *,
    request_id: str = "-",
    audit: AuditLog | SqliteAuditLog | None = None,
    message: str = "",
) -> ProcessingOutcome:
    """Accept the candidate, or block it and hand it back as a suggestion.

    A blocked report with ``allow_content_changes`` is accepted anyway, but
    the report is still logged and written to the audit log.
    """
    if not report.blocked:
        return Accepted(final_text=candidate, report=report)

    payload = json.dumps(report.to_dict(), ensure_ascii=False)
    if not allow_content_changes:
        logger.info("request %s blocked for review: %s", request_id, payload)
        if audit is not None:
            audit.record(request_id, BLOCKED, report)
        return Blocked(report=report, suggestion=candidate, message=message)

    logger.warning("request %s: guard overridden by caller: %s", request_id, payload)
    if audit is not None:
        audit.record(request_id, OVERRIDE, report)
    return Accepted(final_text=candidate, report=report, overridden=True)
