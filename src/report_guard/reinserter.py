"""Reinserter: puts the redacted spans back into the rewritten text.

The rewriter may drop a placeholder (silent content loss), repeat one
(every copy is restored) or invent one that was never minted (left
verbatim).  None of these abort the request; they are logged.
"""

from __future__ import annotations
import logging
from collections import Counter

from .patterns import PLACEHOLDER_RE
from .types import Ledger, ReinsertionReport

logger = logging.getLogger(__name__)


def inspect_placeholders(text: str, ledger: Ledger) -> ReinsertionReport:
    """Compare the tokens found in ``text`` with the ledger."""
    known = {p.id for p in ledger}
    seen = Counter(PLACEHOLDER_RE.findall(text))
    for p in ledger:
        # ledger ids outside the standard grammar still count
        if p.id not in seen and p.id in text:
            seen[p.id] = text.count(p.id)
    return ReinsertionReport(
        missing=tuple(p.id for p in ledger if not seen[p.id]),
        duplicated=tuple(p.id for p in ledger if seen[p.id] > 1),
        unknown=tuple(token for token in seen if token not in known),
    )


def reinsert(text: str, ledger: Ledger) -> str:
    """Replace every occurrence of every ledger id with its original text."""
    report = inspect_placeholders(text, ledger)
    if report.unknown:
        logger.warning(
            "reinsertion anomaly: %d placeholder-shaped token(s) not in ledger, left verbatim: %s",
            len(report.unknown), ", ".join(report.unknown),
        )
    if report.missing:
        logger.info("rewriter dropped %d placeholder(s): %s", len(report.missing), ", ".join(report.missing))
    if report.duplicated:
        logger.debug("rewriter repeated placeholder(s): %s", ", ".join(report.duplicated))

    result = text
    # Longest ids first so a hand-built ledger with prefix-sharing ids is safe too
    for p in sorted(ledger, key=lambda p: len(p.id), reverse=True):
        if p.id in result:
            result = result.replace(p.id, p.original_text)
    return result
