"""Redactor: strips identifying fragments from a report before it leaves
the trust boundary.

Usage:
    from report_guard import Redactor, reinsert

    redactor = Redactor()        # reusable, thread-safe
    result = redactor.redact("Herr Meier, Aufnahme vom 12.03.2024")
    print(result.text)           # "Herr [NAME_1], Aufnahme vom [DATUM_0]"

    print(reinsert(result.text, result.ledger))
    # "Herr Meier, Aufnahme vom 12.03.2024"
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field

from .errors import ValidationError
from .patterns import (
    DEFAULT_PASSES, PASS_ORDER, PASSES, PLACEHOLDER_RE, RESIDUAL_PATTERNS, apply_pass, apply_spans,
)
from .types import Ledger, RedactionResult

logger = logging.getLogger(__name__)


@dataclass
class RedactorConfig:
    """Configuration for the Redactor."""
    passes: tuple[str, ...] = DEFAULT_PASSES
    use_presidio: bool = False        # adds the "person" NER pass
    language: str = "de"
    score_threshold: float = 0.35     # minimum confidence for Presidio
    # Values that should NEVER be redacted (e.g. the clinic's own name)
    allow_list: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        unknown = [p for p in self.passes if p not in PASS_ORDER]
        if unknown:
            raise ValidationError(f"unknown redaction pass(es): {', '.join(unknown)}")


class Redactor:
    """Ordered lexical redactor.

    Passes always run in the canonical order of ``PASS_ORDER``, whatever
    order they were configured in.  Keyed passes (birth_date, patient_id,
    mrn, insurance_number) come before the generic ones that would
    otherwise take the same span; the NER "person" pass runs last.
    """

    def __init__(self, config: RedactorConfig | None = None) -> None:
        self.config = config or RedactorConfig()
        enabled = set(self.config.passes)
        if self.config.use_presidio:
            enabled.add("person")
        self._order = tuple(name for name in PASS_ORDER if name in enabled)

    @property
    def passes(self) -> tuple[str, ...]:
        return self._order

    def redact(self, text: str) -> RedactionResult:
        """Replace sensitive spans with placeholders.

        Raises ValidationError for non-string input, or for text that
        already contains placeholder-shaped tokens (those could not be told
        apart from minted ones on the way back).
        """
        if not isinstance(text, str):
            raise ValidationError(f"text must be a string, got {type(text).__name__}")
        collision = PLACEHOLDER_RE.search(text)
        if collision:
            raise ValidationError(
                f"text contains reserved placeholder token {collision.group()!r}"
            )
        if not text:
            return RedactionResult(text="", ledger=())

        redacted, ledger = text, ()
        for name in self._order:
            if name == "person":
                redacted, ledger = self._person_pass(redacted, ledger)
            else:
                redacted, ledger = apply_pass(redacted, ledger, PASSES[name])

        if self.config.allow_list:
            redacted, ledger = _restore_allowed(redacted, ledger, self.config.allow_list)

        result = RedactionResult(text=redacted, ledger=ledger)
        logger.info(
            "redaction completed: %d placeholder(s) %s, length %d -> %d",
            len(ledger), result.stats(), len(text), len(redacted),
        )
        return result

    def _person_pass(self, text: str, ledger: Ledger) -> tuple[str, Ledger]:
        from .presidio_layer import scan_persons
        spans = scan_persons(
            text,
            language=self.config.language,
            score_threshold=self.config.score_threshold,
        )
        return apply_spans(text, ledger, spans, label="PERSON", kind="person")


def _restore_allowed(text: str, ledger: Ledger, allow_list: set[str]) -> tuple[str, Ledger]:
    """Put allow-listed originals back in place and drop them from the ledger."""
    kept = []
    for p in ledger:
        if p.original_text in allow_list:
            text = text.replace(p.id, p.original_text)
        else:
            kept.append(p)
    return text, tuple(kept)


def residual_identifiers(text: str) -> tuple[str, ...]:
    """Kinds of identifier-shaped text left over after redaction.

    A second look at what is about to leave the trust boundary: e-mail
    addresses, phone numbers, SSNs, card numbers and IP addresses that no
    enabled pass replaced.  Placeholder tokens are ignored.
    """
    bare = PLACEHOLDER_RE.sub(" ", text)
    return tuple(kind for kind, pattern in RESIDUAL_PATTERNS.items() if pattern.search(bare))


_default = Redactor()


def redact(text: str) -> RedactionResult:
    """Redact with the default passes (date, numeric_id, name)."""
    return _default.redact(text)
