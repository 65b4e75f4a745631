"""Persona-driven replies from the text-generation provider."""

from __future__ import annotations

import time

from .constants import FALLBACK_PERSONA, REPLY_EMPTY_TEXT, REPLY_ERROR_TEXT
from .logging_setup import log


class ReplyGenerator:
    """Single request/response wrapper that never lets provider failures reach the chat."""

    def __init__(self, llm, persona: str = FALLBACK_PERSONA):
        self.llm = llm
        self.persona = persona

    async def generate_reply(self, prompt_text: str) -> str:
        started = time.monotonic()
        try:
            reply = await self.llm.chat(
                [{"role": "user", "content": prompt_text}],
                system_prompt=self.persona,
            )
        except Exception as e:
            log.error(f"Reply generator: LLM call failed: {e}")
            return REPLY_ERROR_TEXT

        if not isinstance(reply, str) or not reply.strip():
            log.warning("Reply generator: LLM returned no content")
            return REPLY_EMPTY_TEXT

        log.info(f"Reply generator: LLM response ({time.monotonic() - started:.1f}s)")
        return reply.strip()
