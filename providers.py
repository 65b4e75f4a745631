"""
Kurimuzon — LLM Provider
Single class routing chat requests to OpenAI, xAI, DeepSeek, Claude, or Gemini.
"""

import asyncio
import logging
from config import Config

log = logging.getLogger("kurimuzon.providers")

# OpenAI-compatible providers and their API base URLs (None = SDK default).
OPENAI_COMPATIBLE_BASE_URLS = {
    "openai": None,
    "xai": "https://api.x.ai/v1",
    "deepseek": "https://api.deepseek.com",
}


class LLMClient:
    """
    Unified LLM interface. Routes to the correct SDK based on provider name.

    Supported providers:
      - openai    → OpenAI ChatGPT (via openai SDK)
      - xai       → xAI Grok (via openai SDK with custom base_url)
      - deepseek  → DeepSeek (via openai SDK with custom base_url)
      - claude    → Anthropic Claude (via anthropic SDK)
      - gemini    → Google Gemini (via google-generativeai SDK)

    Failures are not caught here; callers decide what the user sees.
    """

    def __init__(self, config: Config):
        self.config = config
        self.provider_name = config.llm_provider
        self.model = config.llm_model
        self.max_output_tokens = max(128, int(getattr(config, "max_output_tokens", 1024) or 1024))
        self._client = None

        self._init_client()

    def _init_client(self):
        """Initialize the appropriate SDK client."""
        if self.provider_name in OPENAI_COMPATIBLE_BASE_URLS:
            import openai

            api_key = getattr(self.config, f"{self.provider_name}_api_key", "")
            if not api_key:
                raise ValueError(
                    f"{self.provider_name.upper()}_API_KEY is required when LLM_PROVIDER={self.provider_name}"
                )
            base_url = OPENAI_COMPATIBLE_BASE_URLS[self.provider_name]
            if base_url:
                self._client = openai.OpenAI(api_key=api_key, base_url=base_url)
            else:
                self._client = openai.OpenAI(api_key=api_key)
            log.info(f"Initialized {self.provider_name} provider (model: {self.model})")

        elif self.provider_name == "claude":
            import anthropic

            if not self.config.anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY is required when LLM_PROVIDER=claude")
            self._client = anthropic.Anthropic(api_key=self.config.anthropic_api_key)
            log.info(f"Initialized Claude provider (model: {self.model})")

        elif self.provider_name == "gemini":
            import google.generativeai as genai

            if not self.config.gemini_api_key:
                raise ValueError("GEMINI_API_KEY is required when LLM_PROVIDER=gemini")
            genai.configure(api_key=self.config.gemini_api_key)
            self._client = genai
            log.info(f"Initialized Gemini provider (model: {self.model})")

        else:
            raise ValueError(
                f"Unknown provider: {self.provider_name!r}. "
                f"Supported: openai, xai, deepseek, claude, gemini"
            )

    async def chat(self, messages: list[dict], system_prompt: str = "") -> str:
        """
        Send messages to the LLM and return the response text.

        Args:
            messages: List of {"role": "user"|"assistant", "content": "..."} dicts.
            system_prompt: Persona/system instruction sent ahead of the messages.

        Returns:
            The assistant's response text ("" when the provider returned no content).
        """
        if self.provider_name in OPENAI_COMPATIBLE_BASE_URLS:
            return await self._chat_openai(messages, system_prompt)
        if self.provider_name == "claude":
            return await self._chat_claude(messages, system_prompt)
        return await self._chat_gemini(messages, system_prompt)

    # ── OpenAI / xAI / DeepSeek ───────────────────────────────

    async def _chat_openai(self, messages: list[dict], system_prompt: str) -> str:
        """Chat via an OpenAI-compatible chat completions API."""
        api_messages = []
        if system_prompt:
            api_messages.append({"role": "system", "content": system_prompt})
        api_messages.extend(messages)

        response = await asyncio.to_thread(
            self._client.chat.completions.create,
            model=self.model,
            messages=api_messages,
            max_tokens=self.max_output_tokens,
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    # ── Claude ────────────────────────────────────────────────

    async def _chat_claude(self, messages: list[dict], system_prompt: str) -> str:
        """Chat via Anthropic's Messages API (system prompt is a separate param)."""
        api_messages = [m for m in messages if m.get("role") in ("user", "assistant")]
        kwargs = {
            "model": self.model,
            "messages": api_messages,
            "max_tokens": self.max_output_tokens,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = await asyncio.to_thread(self._client.messages.create, **kwargs)

        text_parts = [block.text for block in response.content if hasattr(block, "text")]
        return "\n".join(text_parts)

    # ── Gemini ────────────────────────────────────────────────

    async def _chat_gemini(self, messages: list[dict], system_prompt: str) -> str:
        """Chat via Google Gemini's GenerativeModel API."""
        if system_prompt:
            model = self._client.GenerativeModel(self.model, system_instruction=system_prompt)
        else:
            model = self._client.GenerativeModel(self.model)

        history = []
        for msg in messages[:-1]:
            role = "user" if msg["role"] == "user" else "model"
            history.append({"role": role, "parts": [msg["content"]]})

        chat = model.start_chat(history=history)
        last_msg = messages[-1]["content"] if messages else ""
        response = await asyncio.to_thread(chat.send_message, last_msg)
        return response.text or ""
