"""Guard vocabularies: the word lists the guard checks against.

Kept as immutable data so a deployment can swap language or extend the
keyword list from config without touching guard code.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any

from .errors import ValidationError


@dataclass(frozen=True, slots=True)
class Vocabulary:
    language: str
    lateral_terms: tuple[str, ...]
    # Stems, matched at a word start with any suffix ("embol" -> "Embolie")
    medical_keywords: tuple[str, ...]
    reason_numbers: str
    reason_laterality: str
    reason_keywords: str
    review_message: str

    def with_overrides(self, overrides: dict[str, Any] | None) -> "Vocabulary":
        """Return a copy with word lists replaced from config."""
        if not overrides:
            return self
        changes: dict[str, Any] = {}
        for key in ("lateral_terms", "medical_keywords"):
            if key in overrides:
                terms = overrides[key]
                if not isinstance(terms, (list, tuple)) or not all(isinstance(t, str) and t.strip() for t in terms):
                    raise ValidationError(f"vocabulary.{key} must be a list of non-empty strings")
                changes[key] = tuple(t.strip().lower() for t in terms)
        for key in ("reason_numbers", "reason_laterality", "reason_keywords", "review_message"):
            if key in overrides:
                changes[key] = str(overrides[key])
        return replace(self, **changes)


GERMAN = Vocabulary(
    language="de",
    lateral_terms=(
        "links", "linke", "linken", "linker", "linkes",
        "rechts", "rechte", "rechten", "rechter", "rechtes",
    ),
    medical_keywords=(
        "fraktur", "tumor", "metasta", "embol", "blutung", "infarkt",
        "ruptur", "aneurysm", "ischäm", "abszess", "pneumothorax",
        "atelekta", "thromb", "ödem", "entzündung",
    ),
    reason_numbers="Zahlen/Messwerte weichen ab.",
    reason_laterality="Lateralisierung geändert (links/rechts).",
    reason_keywords="Neue medizinische Schlüsselwörter hinzugefügt.",
    review_message=(
        "Änderungen betreffen Inhalt; bitte prüfen/erlauben. "
        "(Zahlen/Lateralisierung/medizinische Schlüsselwörter)"
    ),
)

ENGLISH = Vocabulary(
    language="en",
    lateral_terms=("left", "right"),
    medical_keywords=(
        "fracture", "tumor", "tumour", "metasta", "embol", "hemorrhag",
        "haemorrhag", "infarct", "rupture", "aneurysm", "ischemi", "ischaemi",
        "abscess", "pneumothorax", "atelecta", "thromb", "edema", "oedema",
        "inflammat",
    ),
    reason_numbers="Numbers/measurements differ.",
    reason_laterality="Laterality changed (left/right).",
    reason_keywords="New medical keywords added.",
    review_message=(
        "Changes affect clinical content; please review or allow. "
        "(numbers/laterality/medical keywords)"
    ),
)

VOCABULARIES = {v.language: v for v in (GERMAN, ENGLISH)}

DEFAULT_VOCABULARY = GERMAN


def get_vocabulary(language: str) -> Vocabulary:
    try:
        return VOCABULARIES[language]
    except KeyError:
        raise ValidationError(
            f"no guard vocabulary for language {language!r} (have: {', '.join(VOCABULARIES)})"
        ) from None
