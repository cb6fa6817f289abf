"""Lexical redaction passes and the placeholder token grammar.

Every pass is a pure function ``(text, ledger) -> (text, ledger)``.  Passes
run in a fixed order over the output of the previous pass, so a span that
was already replaced is only ever seen as its placeholder token.

Token format: ``[LABEL_n]`` where ``n`` is the ledger length at minting
time.  No pass can match inside a token: the brackets are not word
characters and the underscore glues the index to the label.
"""

from __future__ import annotations
import re
from dataclasses import dataclass

from .types import Ledger, Placeholder

_TOKEN_FMT = "[{label}_{idx}]"

# Anything shaped like a minted token, ledger or not
PLACEHOLDER_RE = re.compile(r"\[[A-Z]+(?:_[A-Z]+)*_\d+\]")

_CAP_WORD = r"[A-ZÄÖÜ][a-zäöüß]+"
_DATE = r"\d{1,2}[./-]\d{1,2}[./-]\d{2,4}|\d{4}-\d{2}-\d{2}"
_KEY_SEP = r"[ \t]*[:\-]?[ \t]*"

# Upper-case alphanumeric record number holding at least one digit
_RECORD_ID = r"(?=[A-Z]*\d)[A-Z0-9]{6,12}\b"
_INSURANCE_ID = r"(?=[A-Z]*\d)[A-Z0-9]{8,12}\b"

_STREET = (
    r"[A-ZÄÖÜ][\w\-]*?[ \t\-]?(?:[Ss]traße|[Ss]tr\.|[Ww]eg|[Pp]latz|[Aa]llee|[Rr]ing)(?!\w)"
    r"(?:[ \t]+\d{1,4}[a-z]?\b)?"
)
_CITY = r"\d{5}[ \t]+[A-ZÄÖÜ][\w\-]*"


def format_token(label: str, idx: int) -> str:
    return _TOKEN_FMT.format(label=label, idx=idx)


@dataclass(frozen=True, slots=True)
class RedactionPass:
    """One regex pass.  ``group`` selects the part of the match to replace."""
    name: str
    label: str
    pattern: re.Pattern
    group: int = 0


# Canonical order.  Anything a generic pass would swallow runs before it:
# DICOM UIDs and birth dates before dates, postal codes before phone
# numbers, keyed record numbers before bare digit runs.
PASSES: dict[str, RedactionPass] = {
    p.name: p for p in [
        RedactionPass("dicom_uid", "UID", re.compile(
            r"\b\d+(?:\.\d+){4,}\b"
        )),
        RedactionPass("birth_date", "GEBURTSDATUM", re.compile(
            rf"\b(?:[Gg]eb\.|[Gg]eboren(?:[ \t]+am)?|DOB){_KEY_SEP}({_DATE})\b"
        ), group=1),
        RedactionPass("date", "DATUM", re.compile(
            rf"\b(?:{_DATE})\b"
        )),
        RedactionPass("german_postal", "ADRESSE", re.compile(
            rf"\b(?:{_CITY},?[ \t]+{_STREET}|{_STREET},?[ \t]+{_CITY})"
        )),
        RedactionPass("patient_id", "PAT_ID", re.compile(
            rf"\b(?:Patienten-?ID|Patient(?:in)?|Pat\.?|Fall)(?![a-zäöüß]){_KEY_SEP}({_RECORD_ID})"
        ), group=1),
        RedactionPass("mrn", "FALL", re.compile(
            rf"\b(?:MRN|Fallnummer|Fall-Nr\.|Aktenzeichen|Az\.){_KEY_SEP}({_RECORD_ID})"
        ), group=1),
        RedactionPass("insurance_number", "VERS", re.compile(
            r"\b(?:Versichertennummer|Versichertennr\.|Versicherung|Vers\.|(?:Kranken)?[Kk]asse)"
            rf"{_KEY_SEP}({_INSURANCE_ID})"
        ), group=1),
        RedactionPass("email", "EMAIL", re.compile(
            r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b"
        )),
        RedactionPass("phone", "TELEFON", re.compile(
            r"(?<![\w+])(?:\+49[ ]?|0)[1-9]\d{1,4}(?:[ /\-]?\d{1,4}){1,3}\b"
        )),
        RedactionPass("numeric_id", "ID", re.compile(
            r"\b\d{6,12}\b"
        )),
        RedactionPass("name", "NAME", re.compile(
            r"\b(?:Name|Patientin|Patient|Pat\.?|Herrn|Herr|Hr\.|Frau|Fr\.)[ \t]*[:\-]?[ \t]*"
            rf"(?!(?:Dr|Prof)\b)({_CAP_WORD}(?:[ \t]+(?!(?:Dr|Prof)\b){_CAP_WORD})?)\b"
        ), group=1),
        RedactionPass("examiner", "UNTERSUCHER", re.compile(
            r"\b(?:[Uu]ntersucht|[Bb]eurteilt|[Bb]efundet|[Dd]iktiert)[ \t]+von[ \t]+"
            r"(?:(?:PD[ \t]?)?(?:Dr|Prof)\.?[ \t]+)?"
            rf"({_CAP_WORD}(?:[ \t]+{_CAP_WORD})?)\b"
        ), group=1),
        RedactionPass("doctor", "ARZT", re.compile(
            r"\b(?:PD[ ]?)?(?:Dr|Prof)\.?[ \t]+"
            rf"({_CAP_WORD}(?:[ \t]+{_CAP_WORD})?)\b"
        ), group=1),
    ]
}

DEFAULT_PASSES = ("date", "numeric_id", "name")

# Identifier shapes that should never reach the rewriter; checked on the
# redacted text whatever passes are enabled
RESIDUAL_PATTERNS: dict[str, re.Pattern] = {
    "email": PASSES["email"].pattern,
    "phone": PASSES["phone"].pattern,
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "credit_card": re.compile(r"\b\d{4}[ \-]?\d{4}[ \-]?\d{4}[ \-]?\d{4}\b"),
    "ip_address": re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b"),
}

# "person" is the optional NER layer; it always runs last
PASS_ORDER = (*PASSES, "person")


def placeholder_spans(text: str) -> list[tuple[int, int]]:
    return [m.span() for m in PLACEHOLDER_RE.finditer(text)]


def apply_pass(text: str, ledger: Ledger, rpass: RedactionPass) -> tuple[str, Ledger]:
    """Replace every match of ``rpass`` with a freshly minted placeholder."""
    protected = placeholder_spans(text)
    minted: list[Placeholder] = []

    def _mint(m: re.Match) -> str:
        start, end = m.span(rpass.group)
        if any(start < e and end > s for s, e in protected):
            return m.group()
        token = format_token(rpass.label, len(ledger) + len(minted))
        minted.append(Placeholder(id=token, original_text=m.group(rpass.group), kind=rpass.name))
        whole = m.group()
        offset = m.start()
        return whole[:start - offset] + token + whole[end - offset:]

    return rpass.pattern.sub(_mint, text), ledger + tuple(minted)


def apply_spans(
    text: str,
    ledger: Ledger,
    spans: list[tuple[int, int]],
    *,
    label: str,
    kind: str,
) -> tuple[str, Ledger]:
    """Replace externally detected spans (e.g. NER hits) with placeholders.

    Spans must not overlap each other; spans touching a placeholder are
    skipped.
    """
    protected = placeholder_spans(text)
    minted: list[Placeholder] = []
    parts: list[str] = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor or any(start < e and end > s for s, e in protected):
            continue
        token = format_token(label, len(ledger) + len(minted))
        minted.append(Placeholder(id=token, original_text=text[start:end], kind=kind))
        parts.append(text[cursor:start])
        parts.append(token)
        cursor = end
    parts.append(text[cursor:])
    return "".join(parts), ledger + tuple(minted)
