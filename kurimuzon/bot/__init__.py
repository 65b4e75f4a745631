"""Composed Kurimuzon bot class built from focused mixins."""

from __future__ import annotations

from .base import BotBaseMixin
from .handlers import BotHandlersMixin
from .messaging import BotMessagingMixin


class KurimuzonBot(
    BotMessagingMixin,
    BotHandlersMixin,
    BotBaseMixin,
):
    """The main bot class wiring Telegram, the progress store, and the LLM together."""

    pass


__all__ = ["KurimuzonBot"]
