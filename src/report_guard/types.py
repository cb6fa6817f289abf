"""Core types."""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import ValidationError


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A redacted span and the token that stands in for it."""
    id: str                # e.g. "[DATUM_0]"
    original_text: str
    kind: str = ""         # pass that minted it: "date", "numeric_id", ...

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "original": self.original_text}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Placeholder":
        try:
            return cls(id=str(data["id"]), original_text=str(data["original"]),
                       kind=str(data.get("kind", "")))
        except (KeyError, TypeError) as e:
            raise ValidationError(f"malformed placeholder: {data!r}") from e


Ledger = tuple[Placeholder, ...]


@dataclass(frozen=True, slots=True)
class RedactionResult:
    """Result of redacting one report."""
    text: str                     # redacted text with placeholder tokens
    ledger: Ledger = ()

    def stats(self) -> dict[str, int]:
        return dict(Counter(p.kind for p in self.ledger))


@dataclass(frozen=True, slots=True)
class ReinsertionReport:
    """How the rewriter treated the placeholders it was given."""
    missing: tuple[str, ...] = ()      # ledger ids absent from the candidate
    duplicated: tuple[str, ...] = ()   # ledger ids present more than once
    unknown: tuple[str, ...] = ()      # placeholder-shaped tokens not in the ledger

    @property
    def clean(self) -> bool:
        return not (self.missing or self.duplicated or self.unknown)


@dataclass(frozen=True, slots=True)
class GuardReport:
    """Content drift between an original report and a rewritten candidate."""
    added_numbers: tuple[str, ...] = ()
    removed_numbers: tuple[str, ...] = ()
    laterality_changed: bool = False
    new_medical_keywords: tuple[str, ...] = ()
    blocked: bool = False
    reasons: tuple[str, ...] = ()

    def diff_dict(self) -> dict[str, Any]:
        """Wire shape of the ``diff`` object."""
        return {
            "addedNumbers": list(self.added_numbers),
            "removedNumbers": list(self.removed_numbers),
            "lateralityChanged": self.laterality_changed,
            "newMedicalKeywords": list(self.new_medical_keywords),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocked": self.blocked,
            "reasons": list(self.reasons),
            "diff": self.diff_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GuardReport":
        diff = data.get("diff", {})
        return cls(
            added_numbers=tuple(diff.get("addedNumbers", ())),
            removed_numbers=tuple(diff.get("removedNumbers", ())),
            laterality_changed=bool(diff.get("lateralityChanged", False)),
            new_medical_keywords=tuple(diff.get("newMedicalKeywords", ())),
            blocked=bool(data.get("blocked", False)),
            reasons=tuple(data.get("reasons", ())),
        )


MODES = ("A", "B", "C", "D")
STYLES = ("knapp", "neutral", "ausführlicher")
ADDRESSES = ("sie", "neutral")


@dataclass(frozen=True, slots=True)
class RewriteOptions:
    """How the rewriter should treat the text.

    A = language polish, B = terminology normalization,
    C = restructuring, D = short referrer summary.
    """
    mode: str = "A"
    style: str = "neutral"
    address: str = "neutral"

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValidationError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.style not in STYLES:
            raise ValidationError(f"style must be one of {STYLES}, got {self.style!r}")
        if self.address not in ADDRESSES:
            raise ValidationError(f"address must be one of {ADDRESSES}, got {self.address!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RewriteOptions":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError("options must be an object")
        return cls(
            mode=data.get("mode", "A"),
            style=data.get("stil", data.get("style", "neutral")),
            address=data.get("ansprache", data.get("address", "neutral")),
        )


@dataclass(frozen=True, slots=True)
class ProcessingRequest:
    text: str
    allow_content_changes: bool = False
    options: RewriteOptions = field(default_factory=RewriteOptions)

    def __post_init__(self) -> None:
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValidationError("text must be a non-empty string")
        if not isinstance(self.allow_content_changes, bool):
            raise ValidationError("allowContentChanges must be a boolean")

    @classmethod
    def from_dict(cls, data: Any) -> "ProcessingRequest":
        """Parse the wire body ``{text, options, allowContentChanges}``."""
        if not isinstance(data, dict):
            raise ValidationError("request body must be an object")
        return cls(
            text=data.get("text"),
            allow_content_changes=data.get("allowContentChanges", False),
            options=RewriteOptions.from_dict(data.get("options")),
        )


@dataclass(frozen=True, slots=True)
class Accepted:
    final_text: str
    report: GuardReport = field(default_factory=GuardReport)
    overridden: bool = False   # blocked, but the caller allowed content changes

    blocked = False

    def to_dict(self) -> dict[str, Any]:
        return {"blocked": False, "answer": self.final_text}


@dataclass(frozen=True, slots=True)
class Blocked:
    report: GuardReport
    suggestion: str
    message: str = ""

    blocked = True

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = self.report.to_dict()
        if self.message:
            out["message"] = self.message
        out["suggestion"] = self.suggestion
        return out


ProcessingOutcome = Union[Accepted, Blocked]
