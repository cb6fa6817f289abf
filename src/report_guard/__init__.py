"""report-guard: de-identification and content guard for radiology report rewriting."""

from .redactor import Redactor, RedactorConfig, redact, residual_identifiers
from .reinserter import reinsert, inspect_placeholders
from .guard import guard_diff
from .policy import decide
from .pipeline import ReportPipeline
from .rewrite import LocalCleanupRewriter, OpenAIRewriter, RewriteProvider
from .audit import AuditLog, SqliteAuditLog
from .vocabulary import Vocabulary, get_vocabulary
from .config import create_pipeline, create_redactor, load_config, load_from_yaml
from .errors import ReportGuardError, ValidationError, RewriteProviderError
from .types import (
    Placeholder, RedactionResult, ReinsertionReport, GuardReport,
    RewriteOptions, ProcessingRequest, Accepted, Blocked,
)

__all__ = [
    "Redactor", "RedactorConfig", "redact", "residual_identifiers",
    "reinsert", "inspect_placeholders",
    "guard_diff", "decide",
    "ReportPipeline",
    "LocalCleanupRewriter", "OpenAIRewriter", "RewriteProvider",
    "AuditLog", "SqliteAuditLog",
    "Vocabulary", "get_vocabulary",
    "create_pipeline", "create_redactor", "load_config", "load_from_yaml",
    "ReportGuardError", "ValidationError", "RewriteProviderError",
    "Placeholder", "RedactionResult", "ReinsertionReport", "GuardReport",
    "RewriteOptions", "ProcessingRequest", "Accepted", "Blocked",
]
__version__ = "0.1.0"
