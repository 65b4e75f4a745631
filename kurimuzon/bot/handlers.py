"""Telegram update handlers and conversion of Telegram messages to inbound messages."""

from __future__ import annotations

from telegram import Message, MessageEntity, Update, User
from telegram.constants import ChatType, ParseMode
from telegram.ext import ContextTypes

from ..constants import HELP_TEXT
from ..markdown import to_telegram_html
from ..types import InboundMessage, MemberEvent, Participant
from .roster import ChatRoster

GROUP_CHAT_TYPES = (ChatType.GROUP, ChatType.SUPERGROUP)

# Checked in order: a GIF carries both `animation` and `document`.
_MEDIA_ATTRS = ("animation", "video", "video_note", "voice", "audio", "document")


def participant_from_user(user: User) -> Participant:
    return Participant(
        user_id=str(user.id),
        display_name=user.full_name or "",
        username=user.username or "",
    )


def media_kind(message: Message) -> str | None:
    if message.photo:
        return "photo"
    if message.sticker:
        if message.sticker.is_animated or message.sticker.is_video:
            return "animated_sticker"
        return "sticker"
    for attr in _MEDIA_ATTRS:
        if getattr(message, attr, None):
            return attr
    return None


def mentioned_ids(
    message: Message,
    roster: ChatRoster,
    bot_id: str = "",
    bot_username: str = "",
) -> list[str]:
    """Collect user ids mentioned in the text or caption.

    Text mentions carry the user; @username mentions are resolved through the
    roster, and our own username resolves to ``bot_id``.
    """
    chat_id = str(message.chat.id)
    if message.text:
        entities = message.parse_entities([MessageEntity.MENTION, MessageEntity.TEXT_MENTION])
    else:
        entities = message.parse_caption_entities([MessageEntity.MENTION, MessageEntity.TEXT_MENTION])

    ids: list[str] = []
    for entity, value in entities.items():
        user_id = None
        if entity.type == MessageEntity.TEXT_MENTION and entity.user:
            user_id = str(entity.user.id)
        elif entity.type == MessageEntity.MENTION:
            username = value.lstrip("@")
            if bot_username and username.lower() == bot_username.lower():
                user_id = bot_id or None
            else:
                user_id = roster.resolve_username(chat_id, username)
        if user_id and user_id not in ids:
            ids.append(user_id)
    return ids


def inbound_from_telegram(
    message: Message,
    roster: ChatRoster,
    bot_id: str = "",
    bot_username: str = "",
    with_quote: bool = True,
) -> InboundMessage:
    chat_id = str(message.chat.id)
    sender = message.from_user
    kind = media_kind(message)
    quoted = None
    if with_quote and message.reply_to_message:
        quoted = inbound_from_telegram(
            message.reply_to_message, roster, bot_id, bot_username, with_quote=False
        )

    return InboundMessage(
        chat_id=chat_id,
        sender_id=str(sender.id) if sender else chat_id,
        sender_name=sender.full_name if sender else "",
        body=(message.text or message.caption or "").strip(),
        is_group=message.chat.type in GROUP_CHAT_TYPES,
        media_kind=kind,
        # Protected content only blocks forwarding; spoilers are the one-time reveal.
        is_view_once=kind is not None and bool(message.has_media_spoiler),
        mentioned_ids=mentioned_ids(message, roster, bot_id, bot_username),
        quoted=quoted,
        raw=message,
    )


class BotHandlersMixin:
    async def cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/start and /help: Telegram clients send these on their own."""
        if not update.effective_message:
            return
        chat_id = self._chat_id_from_update(update)
        self._log_user_message(chat_id, update.effective_message.text or "/start")
        await update.effective_message.reply_text(to_telegram_html(HELP_TEXT), parse_mode=ParseMode.HTML)

    # ── Message Handler (the core loop) ───────────────────────

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Convert a Telegram message and run it through the command dispatcher."""
        message = update.effective_message
        if not message or not update.effective_chat:
            return

        chat_id = str(update.effective_chat.id)
        if message.from_user and not message.from_user.is_bot:
            self.roster.remember(chat_id, participant_from_user(message.from_user))

        dispatcher = self.dispatcher
        inbound = inbound_from_telegram(message, self.roster, dispatcher.bot_id, dispatcher.bot_username)
        label = inbound.body or f"[{inbound.media_kind or 'empty'}]"
        self._log_user_message(chat_id, f"{inbound.sender_name or inbound.sender_id}: {label}")

        await dispatcher.dispatch(inbound)

    # ── Membership Handlers ───────────────────────────────────

    async def handle_new_members(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if not message or not message.new_chat_members:
            return

        chat_id = str(message.chat.id)
        for user in message.new_chat_members:
            if not user.is_bot:
                self.roster.remember(chat_id, participant_from_user(user))
            await self.dispatcher.on_member_joined(
                MemberEvent(chat_id=chat_id, user_id=str(user.id), display_name=user.first_name or "")
            )

    async def handle_left_member(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if not message or not message.left_chat_member:
            return

        chat_id = str(message.chat.id)
        user = message.left_chat_member
        self.roster.forget(chat_id, str(user.id))
        await self.dispatcher.on_member_left(
            MemberEvent(chat_id=chat_id, user_id=str(user.id), display_name=user.first_name or "")
        )
