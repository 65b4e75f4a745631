"""
Kurimuzon — Configuration
Flat .env-based configuration system.
"""

import os
import re
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


LATEST_MODEL_DEFAULTS = {
    "openai": "gpt-4o-mini",
    "xai": "grok-4-latest",
    "deepseek": "deepseek-chat",
    "claude": "claude-sonnet-4-5",
    "gemini": "gemini-2.5-flash",
}

# Provider name → attribute on Config holding its credential.
PROVIDER_KEY_ATTRS = {
    "openai": "openai_api_key",
    "xai": "xai_api_key",
    "deepseek": "deepseek_api_key",
    "claude": "anthropic_api_key",
    "gemini": "gemini_api_key",
}

PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "xai": "XAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}

_MODEL_DEFAULT_SENTINELS = {"", "latest", "auto", "default"}


def _strip_inline_comment(value: str) -> str:
    """Strip shell-style inline comments for unquoted env values."""
    if not value:
        return ""
    cleaned = value.strip()
    if not cleaned:
        return ""
    if cleaned.startswith("#"):
        return ""
    return re.sub(r"\s+#.*$", "", cleaned).strip()


def _int_env(name: str, default: int) -> int:
    raw = _strip_inline_comment(os.getenv(name, ""))
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Config:
    # LLM Provider
    llm_provider: str = ""
    llm_model: str = ""
    max_output_tokens: int = 1024

    # API Keys
    openai_api_key: str = ""
    xai_api_key: str = ""
    deepseek_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""

    # Telegram
    telegram_bot_token: str = ""

    # Bot identity & storage
    bot_name: str = "Kurimuzon"
    progress_path: str = ".kurimuzon/xp.json"


def _resolve_model(provider: str, model: str) -> str:
    """Resolve empty/default model values to provider-specific latest defaults."""
    provider_name = _strip_inline_comment(provider or "").lower()
    requested = _strip_inline_comment(model or "")
    if requested.lower() in _MODEL_DEFAULT_SENTINELS:
        return LATEST_MODEL_DEFAULTS.get(provider_name, LATEST_MODEL_DEFAULTS["openai"])
    return requested


def provider_api_key(cfg: Config, provider: str | None = None) -> str:
    """Return the credential configured for ``provider`` (defaults to the active one)."""
    attr = PROVIDER_KEY_ATTRS.get(provider or cfg.llm_provider)
    return getattr(cfg, attr, "") if attr else ""


def load_config() -> Config:
    """Load config from environment variables with auto-detection."""
    cfg = Config(
        llm_provider=_strip_inline_comment(os.getenv("LLM_PROVIDER", "")),
        llm_model=os.getenv("LLM_MODEL", ""),
        max_output_tokens=_int_env("MAX_OUTPUT_TOKENS", 1024),
        openai_api_key=_strip_inline_comment(os.getenv("OPENAI_API_KEY", "")),
        xai_api_key=_strip_inline_comment(os.getenv("XAI_API_KEY", "")),
        deepseek_api_key=_strip_inline_comment(os.getenv("DEEPSEEK_API_KEY", "")),
        anthropic_api_key=_strip_inline_comment(os.getenv("ANTHROPIC_API_KEY", "")),
        gemini_api_key=_strip_inline_comment(os.getenv("GEMINI_API_KEY", "")),
        telegram_bot_token=_strip_inline_comment(os.getenv("TELEGRAM_BOT_TOKEN", "")),
        bot_name=_strip_inline_comment(os.getenv("BOT_NAME", "")) or "Kurimuzon",
        progress_path=os.getenv("PROGRESS_PATH", ".kurimuzon/xp.json") or ".kurimuzon/xp.json",
    )

    # Auto-detect provider from API keys if not explicitly set
    if not cfg.llm_provider:
        for name in ("openai", "xai", "deepseek", "claude", "gemini"):
            if provider_api_key(cfg, name):
                cfg.llm_provider = name
                break

    cfg.llm_provider = cfg.llm_provider.strip().lower()
    cfg.llm_model = _resolve_model(cfg.llm_provider, cfg.llm_model)
    cfg.max_output_tokens = max(128, int(cfg.max_output_tokens))

    return cfg


def validate_config(cfg: Config) -> list[str]:
    """Return human-readable problems that must stop the bot from starting."""
    problems: list[str] = []
    if not cfg.telegram_bot_token:
        problems.append("TELEGRAM_BOT_TOKEN is required. Set it in .env")

    if not cfg.llm_provider:
        problems.append(
            "No LLM provider configured. Set OPENAI_API_KEY (or LLM_PROVIDER "
            "and the matching API key) in .env"
        )
    elif cfg.llm_provider not in PROVIDER_KEY_ATTRS:
        problems.append(
            f"Unknown LLM_PROVIDER {cfg.llm_provider!r}. "
            f"Supported: {', '.join(PROVIDER_KEY_ATTRS)}"
        )
    elif not provider_api_key(cfg):
        env_name = PROVIDER_KEY_ENV[cfg.llm_provider]
        problems.append(f"{env_name} is required when LLM_PROVIDER={cfg.llm_provider}")

    return problems
