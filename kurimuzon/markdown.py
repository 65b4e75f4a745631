"""Chat-markup to Telegram-safe HTML conversion utilities."""

from __future__ import annotations

import html
import re

from .types import Participant


def _escape_html(text: str) -> str:
    """Escape HTML special characters."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def to_telegram_html(text: str) -> str:
    """Convert chat markup to Telegram HTML.

    Understands both chat-style (*bold*, _italic_) and Markdown-style
    (**bold**, ~~strike~~) emphasis, plus inline code and fenced code blocks,
    since bot texts use the former and LLM replies the latter.
    Everything else is HTML-escaped.
    """
    if not text:
        return ""

    code_blocks: list[str] = []

    def _extract_code_block(m: re.Match) -> str:
        code_blocks.append(m.group(1))
        return f"\x00CB{len(code_blocks) - 1}\x00"

    text = re.sub(r"```\w*\n?([\s\S]*?)```", _extract_code_block, text)

    inline_codes: list[str] = []

    def _extract_inline(m: re.Match) -> str:
        inline_codes.append(m.group(1))
        return f"\x00IC{len(inline_codes) - 1}\x00"

    text = re.sub(r"`([^`\n]+)`", _extract_inline, text)

    text = re.sub(r"^#{1,6}\s+(.+)$", r"\1", text, flags=re.MULTILINE)
    text = _escape_html(text)

    # order matters: double markers before single ones
    text = re.sub(r"\*\*(.+?)\*\*", r"<b>\1</b>", text)
    text = re.sub(r"(?<![\w*])\*([^*\n]+)\*(?![\w*])", r"<b>\1</b>", text)
    text = re.sub(r"(?<!\w)_([^_\n]+)_(?!\w)", r"<i>\1</i>", text)
    text = re.sub(r"~~(.+?)~~", r"<s>\1</s>", text)

    for i, code in enumerate(inline_codes):
        text = text.replace(f"\x00IC{i}\x00", f"<code>{_escape_html(code)}</code>")
    for i, code in enumerate(code_blocks):
        text = text.replace(f"\x00CB{i}\x00", f"<pre><code>{_escape_html(code)}</code></pre>")

    return text


def mention_html(participant: Participant) -> str:
    """Render a clickable mention that notifies the participant."""
    label = participant.display_name or participant.username or participant.user_id
    return f'<a href="tg://user?id={participant.user_id}">@{_escape_html(label)}</a>'


def strip_html(text: str) -> str:
    return html.unescape(re.sub(r"<[^>]+>", "", text))
