"""Report pipeline: redact, rewrite, reinsert, guard, decide.

Usage:

    pipeline = ReportPipeline.create()           # local cleanup rewriter
    outcome = pipeline.process(ProcessingRequest(text=report))

    if outcome.blocked:
        show(outcome.report.reasons, outcome.suggestion)
    else:
        save(outcome.final_text)

Both paths bound the provider call by ``timeout``.  The sync path waits on
a worker thread and gives up after the timeout (a stuck provider thread
is abandoned, not killed); the async path cancels the provider call.

Usage from async code (the provider call is cancelled with the task):

    outcome = await pipeline.aprocess(request)

Nothing is retried: a provider failure raises RewriteProviderError and a
resubmission with ``allow_content_changes=True`` is a new request.
"""

from __future__ import annotations
import asyncio
import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass

from .audit import AuditLog, SqliteAuditLog
from .errors import RewriteProviderError
from .guard import guard_diff
from .policy import decide
from .redactor import Redactor, RedactorConfig, residual_identifiers
from .reinserter import reinsert
from .rewrite import LocalCleanupRewriter, RewriteProvider
from .types import ProcessingOutcome, ProcessingRequest, RedactionResult
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)


@dataclass
class ReportPipeline:
    """Sits between the caller and the rewrite provider."""

    redactor: Redactor
    provider: RewriteProvider
    vocabulary: Vocabulary = DEFAULT_VOCABULARY
    audit: AuditLog | SqliteAuditLog | None = None
    timeout: float | None = 30.0      # seconds per provider call; None waits forever

    @classmethod
    def create(
        cls,
        *,
        config: RedactorConfig | None = None,
        provider: RewriteProvider | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> "ReportPipeline":
        """Fresh pipeline with an in-memory audit log."""
        return cls(
            redactor=Redactor(config),
            provider=provider or LocalCleanupRewriter(),
            vocabulary=vocabulary,
            audit=AuditLog(),
        )

    def process(self, request: ProcessingRequest) -> ProcessingOutcome:
        request_id = uuid.uuid4().hex
        redaction = self._redact(request_id, request)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rewrite")
        future = executor.submit(self.provider.rewrite, redaction.text, request.options)
        try:
            candidate = future.result(timeout=self.timeout)
        except FuturesTimeoutError as e:
            future.cancel()
            logger.error("request %s: rewrite provider timed out after %ss", request_id, self.timeout)
            raise RewriteProviderError(f"rewrite timed out after {self.timeout}s") from e
        except RewriteProviderError:
            logger.error("request %s: rewrite provider failed", request_id, exc_info=True)
            raise
        except Exception as e:
            logger.error("request %s: rewrite provider raised", request_id, exc_info=True)
            raise RewriteProviderError(f"rewrite provider raised: {e}") from e
        finally:
            executor.shutdown(wait=False)
        return self._finish(request_id, request, redaction, candidate)

    async def aprocess(self, request: ProcessingRequest) -> ProcessingOutcome:
        request_id = uuid.uuid4().hex
        redaction = self._redact(request_id, request)
        arewrite = getattr(self.provider, "arewrite", None)
        if arewrite is not None:
            call = arewrite(redaction.text, request.options)
        else:
            call = asyncio.to_thread(self.provider.rewrite, redaction.text, request.options)
        try:
            candidate = await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("request %s: rewrite provider timed out after %ss", request_id, self.timeout)
            raise RewriteProviderError(f"rewrite timed out after {self.timeout}s") from e
        except RewriteProviderError:
            logger.error("request %s: rewrite provider failed", request_id, exc_info=True)
            raise
        except Exception as e:
            logger.error("request %s: rewrite provider raised", request_id, exc_info=True)
            raise RewriteProviderError(f"rewrite provider raised: {e}") from e
        return self._finish(request_id, request, redaction, candidate)

    def _redact(self, request_id: str, request: ProcessingRequest) -> RedactionResult:
        logger.debug("request %s: RECEIVED (%d chars, mode %s)", request_id, len(request.text), request.options.mode)
        redaction = self.redactor.redact(request.text)
        logger.debug("request %s: REDACTED (%d placeholders)", request_id, len(redaction.ledger))
        residual = residual_identifiers(redaction.text)
        if residual:
            logger.warning(
                "request %s: redacted text still looks like it holds %s",
                request_id, ", ".join(residual),
            )
        return redaction

    def _finish(
        self,
        request_id: str,
        request: ProcessingRequest,
        redaction: RedactionResult,
        candidate: str,
    ) -> ProcessingOutcome:
        logger.debug("request %s: REWRITTEN (%d chars)", request_id, len(candidate))
        reinserted = reinsert(candidate, redaction.ledger)
        logger.debug("request %s: REINSERTED", request_id)

        report = guard_diff(request.text, reinserted, self.vocabulary)
        logger.debug("request %s: GUARDED (blocked=%s)", request_id, report.blocked)

        outcome = decide(
            report,
            reinserted,
            request.allow_content_changes,
            request_id=request_id,
            audit=self.audit,
            message=self.vocabulary.review_message,
        )
        logger.info(
            "request %s: %s", request_id,
            "BLOCKED_FOR_REVIEW" if outcome.blocked else "ACCEPTED",
        )
        return outcome
