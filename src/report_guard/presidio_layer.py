"""Optional NER pass: Presidio PERSON detection for names without a
keyword in front of them ("Befund mit Max Mustermann besprochen").

Runs on the already-redacted text; spans touching a placeholder are
dropped by the caller.  Needs the ``ner`` extra and a spaCy model.
"""

from __future__ import annotations
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from presidio_analyzer import AnalyzerEngine

# Lazy singleton; spaCy is not loaded until first use
_engine: AnalyzerEngine | None = None
_engine_lang: str = ""
_engine_lock = threading.Lock()

SPACY_MODELS = {
    "de": "de_core_news_sm",
    "en": "en_core_web_sm",
}

DEFAULT_ENTITIES = ["PERSON"]


def _get_engine(language: str = "de") -> AnalyzerEngine:
    global _engine, _engine_lang
    with _engine_lock:
        if _engine is None or _engine_lang != language:
            from presidio_analyzer import AnalyzerEngine
            from presidio_analyzer.nlp_engine import NlpEngineProvider

            model = SPACY_MODELS.get(language, f"{language}_core_news_sm")
            provider = NlpEngineProvider(nlp_configuration={
                "nlp_engine_name": "spacy",
                "models": [{"lang_code": language, "model_name": model}],
            })
            _engine = AnalyzerEngine(nlp_engine=provider.create_engine(), supported_languages=[language])
            _engine_lang = language
        return _engine


def scan_persons(
    text: str,
    *,
    language: str = "de",
    score_threshold: float = 0.35,
    entities: list[str] | None = None,
) -> list[tuple[int, int]]:
    """Return non-overlapping ``(start, end)`` spans of detected persons."""
    engine = _get_engine(language)
    results = engine.analyze(
        text=text,
        language=language,
        entities=entities or DEFAULT_ENTITIES,
        score_threshold=score_threshold,
    )

    # Highest score wins on overlap
    ranked = sorted(results, key=lambda r: (-r.score, -(r.end - r.start)))
    taken: list[tuple[int, int]] = []
    for r in ranked:
        if not any(r.start < e and r.end > s for s, e in taken):
            taken.append((r.start, r.end))
    return sorted(taken)
