"""Exception taxonomy.

Guard violations are not exceptions: they come back as a ``Blocked``
outcome.  Reinsertion anomalies are logged and never raised.
"""

from __future__ import annotations


class ReportGuardError(Exception):
    """Base class for all report-guard errors."""


class ValidationError(ReportGuardError, ValueError):
    """Malformed or empty input, bad rewrite options or bad config."""


class RewriteProviderError(ReportGuardError):
    """The external rewrite call failed, timed out or returned nothing.

    Fatal for the request.  Never retried internally; the caller may
    resubmit.
    """

    retryable = True
