"""
Grounded responder

Turns KB answers and small talk into natural phrasing with an LLM. Every
call is bounded by a timeout and failures come back as ``ok=False`` so
callers can fall back to fixed text.
"""

import asyncio
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from src.core.logging import get_plain_logger

logger = get_plain_logger(__name__)

# Exact, case-sensitive. UI and voice layers key off this string.
DONT_KNOW = "I don't know"

_LOW_CONFIDENCE = re.compile(r"(not sure|unsure|can't|cannot|no information|don't know)", re.I)


class ResponseKind(str, Enum):
    SMALL_TALK = "small_talk"
    CONVERSATIONAL = "conversational"
    STRICT_KB = "strict_kb"


class ResponderResult(BaseModel):
    ok: bool
    text: str = ""
    confidence: float = 0.0
    reason: Optional[str] = None


def score_confidence(text: str) -> float:
    """Rough confidence: longer answers score higher, hedging cuts it hard"""
    if not text:
        return 0.0
    base = min(1.0, len(text.split()) / 12)
    return base * 0.3 if _LOW_CONFIDENCE.search(text) else base


def build_prompt(kind: ResponseKind, context: dict) -> str:
    if kind == ResponseKind.SMALL_TALK:
        return "\n".join([
            "You are a friendly receptionist for a business.",
            "You may answer general chit-chat (greetings, pleasantries, acknowledgements).",
            "Keep responses warm, brief, and professional.",
            "Avoid inventing business facts.",
            "",
            "Message:",
            str(context.get("message", "")).strip(),
        ])

    if kind == ResponseKind.CONVERSATIONAL:
        tone = context.get("tone") or "friendly, concise"
        return "\n".join([
            f"You are a {tone} support agent.",
            "You must answer using ONLY the facts in kb_answer below.",
            "Sound conversational and natural (not a copy-paste).",
            "Answer directly and keep it short unless the question needs steps.",
            "",
            "question:",
            str(context.get("question", "")).strip(),
            "",
            "kb_answer:",
            str(context.get("kb_answer", "")).strip() or "(empty)",
        ])

    return "\n".join([
        "You are a strictly grounded support agent.",
        "You may ONLY answer using facts found in the kb_context below.",
        f"If the answer is not fully contained in kb_context, reply EXACTLY: {DONT_KNOW}",
        "Keep responses concise.",
        "",
        "User question:",
        str(context.get("question", "")).strip(),
        "",
        "kb_context:",
        str(context.get("kb_context", "")).strip() or "(empty)",
    ])


class GroundedResponder:
    """LLM-backed responder (OpenAI chat completions)"""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gpt-4.1-mini",
        timeout_seconds: float = 8.0,
        enabled: bool = True,
        client=None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.enabled = enabled
        self._client = client

    def _get_client(self):
        """Lazily create the AsyncOpenAI client"""
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key or None)
            logger.info(f"LLM client initialized (model: {self.model})")
        return self._client

    async def _complete(self, prompt: str) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return (response.choices[0].message.content or "").strip()

    async def respond(self, kind: ResponseKind, context: dict) -> ResponderResult:
        if not self.enabled:
            logger.info(f"Responder disabled, skipping {kind.value}")
            return ResponderResult(ok=False, reason="disabled")

        if kind == ResponseKind.STRICT_KB and not str(context.get("kb_context", "")).strip():
            return ResponderResult(ok=True, text=DONT_KNOW, confidence=score_confidence(DONT_KNOW))

        try:
            text = await asyncio.wait_for(
                self._complete(build_prompt(kind, context)),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Responder timed out after {self.timeout_seconds}s ({kind.value})")
            return ResponderResult(ok=False, reason="timeout")
        except Exception as e:
            logger.error(f"Responder error ({kind.value}): {e}")
            return ResponderResult(ok=False, reason="llm_error")

        if not text:
            if kind == ResponseKind.STRICT_KB:
                text = DONT_KNOW
            else:
                return ResponderResult(ok=False, reason="empty")

        logger.info(f"Responder {kind.value}: '{text[:80]}'")
        return ResponderResult(ok=True, text=text, confidence=score_confidence(text))
