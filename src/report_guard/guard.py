"""Guard diff: detects forbidden content drift between an original report
and a rewritten candidate.

Three lexical checks, no clinical understanding:

  numbers      any number token added or removed ("5" and "5.0" differ)
  laterality   "mentions a side" flipped between the two texts
  keywords     a high-risk diagnostic stem appears that the original lacked

The laterality check is presence-only: moving "links" from one finding
to another is not detected.  Keywords the rewriter dropped are not
flagged either; the guard stops new claims, not omissions.

Keyword stems only match at the start of a word.  German compounds that
carry the stem inside ("Lungenembolie", "Rippenfraktur") are not caught
unless the compound itself is added to the vocabulary.
"""

from __future__ import annotations
import re
from functools import lru_cache

from .types import GuardReport
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

# Integer or decimal ("," or "."), never part of a longer digit run.
# Units may be glued on: "5mm" yields "5".
_NUMBER_RE = re.compile(r"(?<!\d)\d+(?:[.,]\d+)?(?!\d)")
_WS_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    return _WS_RE.sub(" ", text.lower()).strip()


def extract_numbers(text: str) -> list[str]:
    """Distinct number tokens in order of first appearance."""
    return list(dict.fromkeys(_NUMBER_RE.findall(text)))


@lru_cache(maxsize=16)
def _lateral_re(terms: tuple[str, ...]) -> re.Pattern:
    alternation = "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


@lru_cache(maxsize=16)
def _keyword_res(stems: tuple[str, ...]) -> tuple[tuple[str, re.Pattern], ...]:
    return tuple(
        (stem, re.compile(rf"\b{re.escape(normalize(stem))}\w*", re.IGNORECASE))
        for stem in stems
    )


def mentions_side(text: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> bool:
    return _lateral_re(vocabulary.lateral_terms).search(text) is not None


def find_keywords(text: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Keyword stems present in ``text``, in order of first appearance."""
    norm = normalize(text)
    hits: list[tuple[int, str]] = []
    for stem, rx in _keyword_res(vocabulary.medical_keywords):
        m = rx.search(norm)
        if m:
            hits.append((m.start(), stem))
    return [stem for _, stem in sorted(hits)]


def guard_diff(
    original: str,
    candidate: str,
    vocabulary: Vocabulary = DEFAULT_VOCABULARY,
) -> GuardReport:
    """Compare the pre-redaction original with the reinserted candidate."""
    reasons: list[str] = []

    orig_nums = extract_numbers(original)
    cand_nums = extract_numbers(candidate)
    added = tuple(n for n in cand_nums if n not in orig_nums)
    removed = tuple(n for n in orig_nums if n not in cand_nums)
    if added or removed:
        reasons.append(vocabulary.reason_numbers)

    laterality_changed = mentions_side(original, vocabulary) != mentions_side(candidate, vocabulary)
    if laterality_changed:
        reasons.append(vocabulary.reason_laterality)

    orig_keys = set(find_keywords(original, vocabulary))
    new_keys = tuple(k for k in find_keywords(candidate, vocabulary) if k not in orig_keys)
    if new_keys:
        reasons.append(vocabulary.reason_keywords)

    return GuardReport(
        added_numbers=added,
        removed_numbers=removed,
        laterality_changed=laterality_changed,
        new_medical_keywords=new_keys,
        blocked=bool(reasons),
        reasons=tuple(reasons),
    )
