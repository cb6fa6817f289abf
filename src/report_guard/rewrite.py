"""Rewrite providers: the external service that polishes redacted text.

The pipeline only ever hands a provider redacted text.  A provider returns
one candidate or raises RewriteProviderError; nothing here retries.
"""

from __future__ import annotations
import logging
import os
import re
from typing import Any, Protocol, runtime_checkable

from .errors import RewriteProviderError
from .types import RewriteOptions

logger = logging.getLogger(__name__)


@runtime_checkable
class RewriteProvider(Protocol):
    def rewrite(self, redacted_text: str, options: RewriteOptions) -> str: ...


# ---------------------------------------------------------------------------
# Offline fallback
# ---------------------------------------------------------------------------

_BLANKS = re.compile(r"[ \t]+")
_SPACE_BEFORE_PUNCT = re.compile(r"\s+([,.:;!?])")


class LocalCleanupRewriter:
    """Whitespace/punctuation cleanup only.  Used when no API key is set."""

    name = "local"

    def rewrite(self, redacted_text: str, options: RewriteOptions) -> str:
        text = _BLANKS.sub(" ", redacted_text)
        return _SPACE_BEFORE_PUNCT.sub(r"\1", text).strip()

    async def arewrite(self, redacted_text: str, options: RewriteOptions) -> str:
        return self.rewrite(redacted_text, options)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = (
    "Du bist ein Sprach- und Stildienst für radiologische Befunde. "
    "Du fügst keine neuen medizinischen Inhalte hinzu und änderst keine Zahlen, "
    "Einheiten, Messwerte, Seitenangaben oder Serien-/Bildnummern. "
    "Platzhalter in eckigen Klammern wie [NAME_2] oder [DATUM_0] übernimmst du unverändert. "
    "Antworte ausschließlich mit dem überarbeiteten Text. "
    "Fehlt eine Information, schreibe wörtlich: [keine Angabe]."
)

_INSTRUCTIONS = {
    "A": (
        "Korrigiere Rechtschreibung, Grammatik und Zeichensetzung. Inhalt unverändert. "
        "Zahlen, Einheiten und Lateralisierung bleiben exakt erhalten; erlaubt ist nur "
        "typografische Normierung. Stil: {style}. Ansprache: {address}."
    ),
    "B": (
        "Vereinheitliche radiologische Terminologie und Abkürzungen nach deutschem Standard "
        "(z. B. KM, i.v., nativ, T1/T2) und entferne redundante Phrasen. Keine neuen Befunde, "
        "keine Umdeutung, keine Empfehlungen. Struktur, Reihenfolge, Zahlen und "
        "Lateralisierung bleiben unverändert."
    ),
    "C": (
        "Gliedere den vorhandenen Text um in: Klinische Fragestellung, Technik, Befund, "
        "Beurteilung. Inhalte weder hinzufügen noch entfernen; lange Sätze kürzen. "
        "Zahlen, Einheiten und Lateralisierung unverändert. Stil: {style}."
    ),
    "D": (
        "Fasse den Befund in 3 bis 5 kurzen, verständlichen Sätzen für Zuweiser zusammen. "
        "Keine neuen Diagnosen, keine Zahlenänderungen, keine Therapieempfehlungen. "
        "Fachbegriffe bei Bedarf knapp in Klammern erklären."
    ),
}

_REMINDER = (
    "WICHTIG: Keine neuen Diagnosen/Befunde/Therapieempfehlungen. "
    "Keine Zahlenänderungen. Keine Lateralisierungsänderungen."
)


def build_messages(redacted_text: str, options: RewriteOptions) -> list[dict[str, str]]:
    """Chat messages for one rewrite call."""
    instruction = _INSTRUCTIONS[options.mode].format(style=options.style, address=options.address)
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"AUFGABE:\n{instruction}\n\nTEXT:\n---\n{redacted_text}\n---\n\n{_REMINDER}",
        },
    ]


# ---------------------------------------------------------------------------
# OpenAI-compatible chat completions
# ---------------------------------------------------------------------------

class OpenAIRewriter:
    """Rewrite through any OpenAI-compatible chat-completions endpoint.

    Example:
        >>> rewriter = OpenAIRewriter(model="gpt-4o-mini", timeout=30)
        >>> rewriter.rewrite("Herd li. OL, [DATUM_0]", RewriteOptions(mode="B"))
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        client: Any = None,
        async_client: Any = None,
    ) -> None:
        """Initialize the rewriter.

        Args:
            api_key: API key (defaults to OPENAI_API_KEY env var)
            model: Model name (defaults to OPENAI_MODEL env var, then gpt-4o-mini)
            base_url: Alternative OpenAI-compatible endpoint
            timeout: Per-call timeout in seconds
            client: Pre-built sync client (tests, custom transports)
            async_client: Pre-built async client

        Raises:
            RewriteProviderError: If no client is given and no API key is configured
        """
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.base_url = base_url
        self.timeout = timeout
        self._client = client
        self._async_client = async_client
        if client is None and async_client is None and not self.api_key:
            raise RewriteProviderError(
                "OpenAI API key required. Set OPENAI_API_KEY or pass api_key."
            )

    def _openai_module(self):
        try:
            import openai
        except ImportError as e:
            raise RewriteProviderError(
                "openai package required for the OpenAI rewriter. "
                "Install with: pip install 'report-guard[openai]'"
            ) from e
        return openai

    def _sync_client(self):
        if self._client is None:
            # No SDK-level retries: a failed rewrite is fatal for the request
            self._client = self._openai_module().OpenAI(
                api_key=self.api_key, base_url=self.base_url,
                timeout=self.timeout, max_retries=0,
            )
        return self._client

    def _aclient(self):
        if self._async_client is None:
            self._async_client = self._openai_module().AsyncOpenAI(
                api_key=self.api_key, base_url=self.base_url,
                timeout=self.timeout, max_retries=0,
            )
        return self._async_client

    def rewrite(self, redacted_text: str, options: RewriteOptions) -> str:
        client = self._sync_client()
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=build_messages(redacted_text, options),
                temperature=0.0,
                timeout=self.timeout,
            )
        except Exception as e:
            raise RewriteProviderError(f"rewrite call failed: {e}") from e
        return self._content(response)

    async def arewrite(self, redacted_text: str, options: RewriteOptions) -> str:
        client = self._aclient()
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=build_messages(redacted_text, options),
                temperature=0.0,
                timeout=self.timeout,
            )
        except Exception as e:
            raise RewriteProviderError(f"rewrite call failed: {e}") from e
        return self._content(response)

    def _content(self, response: Any) -> str:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise RewriteProviderError("malformed completion response") from e
        if not content or not content.strip():
            raise RewriteProviderError("empty completion from rewrite provider")
        logger.debug("rewrite provider %s returned %d chars", self.model, len(content))
        return content.strip()
