"""
Text-generation client for the hosted language model.

Uses Ollama's /api/generate endpoint with whatever OLLAMA_LLM_MODEL is
configured.  Unlike a best-effort helper, every failure (timeout, connection
error, non-200 response, unexpected body, empty completion) is raised as
``GenerationError`` so the pipeline coordinator decides what a failed stage
means.

Public API
----------
OllamaTextGenerator.generate(prompt, system=None)           -> str
OllamaTextGenerator.list_models()                            -> list[str] | None
OllamaTextGenerator.check_health()                           -> bool
get_text_generator()                                         -> FastAPI dependency
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, List, Optional, Protocol, Tuple

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when the model call does not produce usable text."""


class TextGenerator(Protocol):
    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        ...

    async def check_health(self) -> bool:
        ...


class OllamaTextGenerator:
    """
    Text generation via Ollama /api/generate.

    Limits concurrency to MAX_CONCURRENT simultaneous model calls.
    """

    MAX_CONCURRENT: int = 4
    MAX_TOKENS: int = 4096

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or settings.OLLAMA_LLM_MODEL
        self.llm_timeout = float(timeout if timeout is not None else settings.OLLAMA_TIMEOUT)
        self.timeout = httpx.Timeout(self.llm_timeout, connect=10.0)
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self._transport = transport
        self._semaphore = asyncio.Semaphore(self.MAX_CONCURRENT)

    def _client(self, timeout: Optional[httpx.Timeout] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self.timeout, transport=self._transport)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        """
        POST to Ollama /api/generate and return the completion text.

        Raises:
            GenerationError: on timeout, connection failure, non-200 response,
                an unexpected body or an empty completion.
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "num_predict": self.MAX_TOKENS,
                "temperature": self.temperature,
            },
        }
        if system:
            payload["system"] = system

        async with self._semaphore:
            try:
                async with self._client() as client:
                    resp = await client.post(f"{self.base_url}/api/generate", json=payload)
            except httpx.TimeoutException as exc:
                logger.error("generate: request timed out after %.0f s", self.llm_timeout)
                raise GenerationError(f"model request timed out after {self.llm_timeout:.0f}s") from exc
            except httpx.HTTPError as exc:
                logger.error("generate: connection error — %s", exc)
                raise GenerationError(f"model unreachable: {exc}") from exc

        if resp.status_code != 200:
            logger.error(
                "generate: Ollama returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            raise GenerationError(f"model returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise GenerationError("model returned a non-JSON body") from exc
        if not isinstance(body, dict) or not isinstance(body.get("response", ""), str):
            logger.error("generate: unexpected body from model %s: %s", self.model, resp.text[:300])
            raise GenerationError("model returned an unexpected body")

        text = body.get("response", "")

        if not text or not text.strip():
            logger.warning("generate: empty completion from model %s", self.model)
            raise GenerationError("model returned an empty completion")
        return text.strip()

    async def list_models(self) -> Optional[List[str]]:
        """
        Names of the models Ollama has pulled, from /api/tags.
        Returns None when Ollama is unreachable or answers unexpectedly.
        """
        try:
            async with self._client(httpx.Timeout(10.0)) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
        except httpx.HTTPError as exc:
            logger.warning("list_models: Ollama unreachable — %s", exc)
            return None

        if resp.status_code != 200:
            logger.warning("list_models: Ollama responded with status %d", resp.status_code)
            return None
        try:
            models = resp.json().get("models", [])
            return [m["name"] for m in models]
        except (ValueError, AttributeError, KeyError, TypeError) as exc:
            logger.warning("list_models: unexpected /api/tags body — %s", exc)
            return None

    def has_model(self, available: List[str]) -> bool:
        """True if the configured model (or another tag of it) is in *available*."""
        return any(
            name == self.model or name.startswith(self.model.split(":")[0])
            for name in available
        )

    async def check_health(self) -> bool:
        """Return True if Ollama answers /api/tags."""
        return await self.list_models() is not None


# ---------------------------------------------------------------------------
# JSON recovery for model output
# ---------------------------------------------------------------------------

def parse_json_robust(response: str) -> Tuple[bool, Any]:
    """
    Try multiple strategies to parse JSON from potentially messy model output.

    Handles:
    - Markdown code fences (```json … ```, ``` … ```)
    - Trailing commas before ] or }
    - Surrounding prose: finds the first balanced [...] or {...} block

    Returns ``(success, parsed_value)``.
    """
    if not response:
        return False, None

    text = response.strip()

    ok, val = _try_json(text)
    if ok:
        return True, val

    stripped = _strip_code_fences(text)
    if stripped != text:
        ok, val = _try_json(stripped)
        if ok:
            return True, val
        text = stripped

    fixed = _fix_json_issues(text)
    ok, val = _try_json(fixed)
    if ok:
        return True, val

    for open_b, close_b in (("[", "]"), ("{", "}")):
        fragment = _extract_json_structure(text, open_b, close_b)
        if fragment:
            ok, val = _try_json(_fix_json_issues(fragment))
            if ok:
                return True, val

    logger.warning("parse_json_robust: all strategies failed. Preview: %s", response[:400])
    return False, None


def _try_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


def _strip_code_fences(text: str) -> str:
    """Remove ```json / ``` delimiters that models often wrap output in."""
    text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def _fix_json_issues(text: str) -> str:
    # Trailing commas before ] or }
    return re.sub(r",(\s*[}\]])", r"\1", text).strip()


def _extract_json_structure(text: str, open_b: str, close_b: str) -> str:
    """
    Find the first complete balanced open_b … close_b structure in *text*.
    Returns the matched fragment, or empty string if not found.
    """
    start = text.find(open_b)
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escape_next = False

    for i, ch in enumerate(text[start:], start=start):
        if escape_next:
            escape_next = False
            continue
        if ch == "\\" and in_string:
            escape_next = True
            continue
        if ch == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if ch == open_b:
            depth += 1
        elif ch == close_b:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""


def coerce_string_list(value: Any) -> List[str]:
    """Accept ``["a", ...]`` or ``{"sections": ["a", ...]}`` and return clean strings."""
    if isinstance(value, dict):
        value = value.get("sections", [])
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

def get_text_generator() -> TextGenerator:
    """Dependency returning the configured text generator."""
    return OllamaTextGenerator()
