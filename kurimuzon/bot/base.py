"""Core bot base state and shared utility methods."""

from __future__ import annotations

from telegram import Bot, Update

from config import Config
from progress import ProgressStore
from providers import LLMClient

from ..dispatcher import CommandDispatcher
from ..logging_setup import log
from ..moderation import GroupModeration
from ..personality import load_persona
from ..reply import ReplyGenerator
from .roster import ChatRoster


def tg_chat_id(value: str) -> int | str:
    """Telegram accepts numeric ids as ints and public chats as @names."""
    return int(value) if value.lstrip("-").isdigit() else value


class BotBaseMixin:
    def __init__(self, config: Config):
        self.config = config
        self.store = ProgressStore(config.progress_path)
        self.store.load()
        self.llm = LLMClient(config)
        self.replies = ReplyGenerator(self.llm, load_persona())
        self.roster = ChatRoster()
        # The bot itself is the transport the core talks to.
        self.moderation = GroupModeration(self)
        self.dispatcher = CommandDispatcher(
            self.store,
            self.replies,
            self.moderation,
            self,
            bot_name=config.bot_name,
        )
        self.tg: Bot | None = None

        # Permissions a chat had before .mute, restored by .unmute.
        self._muted_permissions: dict[str, object] = {}
        # Throttle repeated Telegram polling conflict warnings.
        self._last_telegram_conflict_log_at: float = 0.0

    async def bind(self, bot: Bot):
        """Attach the Telegram bot and learn our own identity for mention detection."""
        self.tg = bot
        me = await bot.get_me()
        self.dispatcher.set_identity(str(me.id), me.username or "")
        log.info(f"Signed in as @{me.username} ({me.id})")

    @staticmethod
    def _chat_id_from_update(update: Update | None) -> str:
        if update and update.effective_chat:
            return str(update.effective_chat.id)
        return "unknown"

    @staticmethod
    def _trim_for_log(text: str, max_chars: int = 2000) -> str:
        if len(text) <= max_chars:
            return text
        return text[:max_chars] + "\n...[truncated]"

    def _log_user_message(self, chat_id: str, text: str):
        log.info(f"[{chat_id}] User: {self._trim_for_log(text)}")
