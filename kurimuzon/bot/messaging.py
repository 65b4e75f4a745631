"""Telegram side of the transport: sending, media, membership, and error handling."""

from __future__ import annotations

import time

from telegram import ChatPermissions, InputFile, Update
from telegram.constants import ChatMemberStatus, ParseMode
from telegram.error import Conflict, NetworkError, RetryAfter, TimedOut
from telegram.ext import ContextTypes

from ..logging_setup import log
from ..markdown import _escape_html, mention_html, strip_html, to_telegram_html
from ..media import MediaConversionError, to_png, to_sticker_webp
from ..types import InboundMessage, MediaPayload, Participant
from .base import tg_chat_id

ADMIN_STATUSES = (ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER)
MENTIONS_PER_MESSAGE = 50

# Restored by .unmute when the pre-mute permissions are unknown.
DEFAULT_MEMBER_PERMISSIONS = ChatPermissions(
    can_send_messages=True,
    can_send_audios=True,
    can_send_documents=True,
    can_send_photos=True,
    can_send_videos=True,
    can_send_video_notes=True,
    can_send_voice_notes=True,
    can_send_polls=True,
    can_send_other_messages=True,
    can_add_web_page_previews=True,
    can_invite_users=True,
)

_PROMOTE_RIGHTS = (
    "can_manage_chat",
    "can_delete_messages",
    "can_manage_video_chats",
    "can_restrict_members",
    "can_invite_users",
    "can_pin_messages",
)
_ALL_ADMIN_RIGHTS = _PROMOTE_RIGHTS + ("can_promote_members", "can_change_info")


class BotMessagingMixin:
    @staticmethod
    def _chunk_message(text: str, max_len: int = 3500) -> list[str]:
        """Split a long message into chunks that fit Telegram's limit.

        Splits at newline boundaries; 3500 leaves room for HTML entity expansion.
        """
        chunks = []
        while len(text) > max_len:
            split_at = text.rfind("\n", 0, max_len)
            if split_at <= 0:
                split_at = max_len
            chunks.append(text[:split_at])
            text = text[split_at:].lstrip("\n")
        if text:
            chunks.append(text)
        return chunks

    async def _try_send(self, send_fn, text: str, **kwargs) -> bool:
        """Try to send with HTML, fall back to plain text. Returns True on success."""
        try:
            await send_fn(text, parse_mode=ParseMode.HTML, **kwargs)
            return True
        except (NetworkError, TimedOut, RetryAfter):
            raise
        except Exception as e:
            log.debug(f"HTML send rejected, retrying as plain text: {e}")

        try:
            await send_fn(strip_html(text), **kwargs)
            return True
        except Exception as e:
            log.error(f"Failed to send message chunk: {e}")
            return False

    # ── Text ──────────────────────────────────────────────────

    async def send_text(self, chat_id: str, text: str):
        target = tg_chat_id(chat_id)
        for chunk in self._chunk_message(text):
            html_chunk = to_telegram_html(chunk)
            if len(html_chunk) > 4096:
                html_chunk = html_chunk[:4050] + "..."
            await self._try_send(lambda t, **kw: self.tg.send_message(target, t, **kw), html_chunk)

    async def send_mentions(self, chat_id: str, header: str, participants: list[Participant]):
        target = tg_chat_id(chat_id)
        heading = _escape_html(header)
        batches = [
            participants[i:i + MENTIONS_PER_MESSAGE]
            for i in range(0, len(participants), MENTIONS_PER_MESSAGE)
        ] or [[]]
        for batch in batches:
            body = heading + "\n" + " ".join(mention_html(p) for p in batch)
            await self.tg.send_message(target, body.strip(), parse_mode=ParseMode.HTML)

    # ── Media ─────────────────────────────────────────────────

    async def download_media(self, message: InboundMessage) -> MediaPayload | None:
        """Download the message's attachment; None when it cannot be fetched."""
        raw = message.raw
        if raw is None or message.media_kind is None:
            return None

        if message.media_kind == "photo":
            attachment = raw.photo[-1]
        elif message.media_kind in ("sticker", "animated_sticker"):
            attachment = raw.sticker
        else:
            attachment = getattr(raw, message.media_kind, None)
        if attachment is None:
            return None

        try:
            tg_file = await attachment.get_file()
            data = await tg_file.download_as_bytearray()
        except Exception as e:
            log.error(f"[{message.chat_id}] Failed to download {message.media_kind}: {e}")
            return None

        return MediaPayload(
            kind=message.media_kind,
            data=bytes(data),
            mimetype=getattr(attachment, "mime_type", None) or "",
            filename=getattr(attachment, "file_name", None) or "",
        )

    async def send_media(self, chat_id: str, media: MediaPayload, caption: str = ""):
        target = tg_chat_id(chat_id)
        caption_html = to_telegram_html(caption) or None
        kwargs = {"caption": caption_html, "parse_mode": ParseMode.HTML} if caption_html else {}

        if media.kind == "photo":
            await self.tg.send_photo(target, media.data, **kwargs)
        elif media.kind == "video":
            await self.tg.send_video(target, media.data, **kwargs)
        elif media.kind == "animation":
            await self.tg.send_animation(target, media.data, **kwargs)
        elif media.kind == "audio":
            await self.tg.send_audio(target, media.data, **kwargs)
        elif media.kind == "voice":
            await self.tg.send_voice(target, media.data, **kwargs)
        elif media.kind == "video_note":
            await self.tg.send_video_note(target, media.data)
            if caption:
                await self.send_text(chat_id, caption)
        elif media.kind in ("sticker", "animated_sticker"):
            await self.tg.send_sticker(target, media.data)
        else:
            document = InputFile(media.data, filename=media.filename or "file")
            await self.tg.send_document(target, document, **kwargs)

    async def send_sticker(self, chat_id: str, media: MediaPayload) -> bool:
        if media.kind in ("sticker", "animated_sticker"):
            await self.tg.send_sticker(tg_chat_id(chat_id), media.data)
            return True
        if media.kind not in ("photo", "document"):
            log.info(f"[{chat_id}] Cannot turn {media.kind} into a sticker")
            return False

        try:
            webp = to_sticker_webp(media.data)
        except MediaConversionError as e:
            log.info(f"[{chat_id}] Sticker conversion skipped: {e}")
            return False
        await self.tg.send_sticker(tg_chat_id(chat_id), InputFile(webp, filename="sticker.webp"))
        return True

    async def send_image(self, chat_id: str, media: MediaPayload, caption: str = "") -> bool:
        try:
            png = to_png(media.data)
        except MediaConversionError as e:
            log.info(f"[{chat_id}] Image conversion skipped: {e}")
            return False
        caption_html = to_telegram_html(caption) or None
        await self.tg.send_photo(
            tg_chat_id(chat_id),
            InputFile(png, filename="sticker.png"),
            caption=caption_html,
            parse_mode=ParseMode.HTML if caption_html else None,
        )
        return True

    # ── Group membership ──────────────────────────────────────

    async def is_admin(self, chat_id: str, user_id: str) -> bool:
        member = await self.tg.get_chat_member(tg_chat_id(chat_id), int(user_id))
        return member.status in ADMIN_STATUSES

    async def get_participants(self, chat_id: str) -> list[Participant]:
        """Chat administrators plus every member seen so far (bots excluded)."""
        participants: dict[str, Participant] = {}
        for member in await self.tg.get_chat_administrators(tg_chat_id(chat_id)):
            if member.user.is_bot:
                continue
            participants[str(member.user.id)] = Participant(
                user_id=str(member.user.id),
                display_name=member.user.full_name or "",
                username=member.user.username or "",
                is_admin=True,
            )
        for participant in self.roster.members(chat_id):
            participants.setdefault(participant.user_id, participant)
        return list(participants.values())

    async def mute_chat(self, chat_id: str):
        target = tg_chat_id(chat_id)
        chat = await self.tg.get_chat(target)
        if chat.permissions and chat_id not in self._muted_permissions:
            self._muted_permissions[chat_id] = chat.permissions
        await self.tg.set_chat_permissions(target, ChatPermissions.no_permissions())

    async def unmute_chat(self, chat_id: str):
        permissions = self._muted_permissions.pop(chat_id, None) or DEFAULT_MEMBER_PERMISSIONS
        await self.tg.set_chat_permissions(tg_chat_id(chat_id), permissions)

    async def remove_participant(self, chat_id: str, user_id: str):
        target = tg_chat_id(chat_id)
        # Ban + unban removes the member without blocking a later rejoin.
        await self.tg.ban_chat_member(target, int(user_id))
        await self.tg.unban_chat_member(target, int(user_id), only_if_banned=True)
        self.roster.forget(chat_id, user_id)

    async def promote_participant(self, chat_id: str, user_id: str):
        rights = {name: True for name in _PROMOTE_RIGHTS}
        await self.tg.promote_chat_member(tg_chat_id(chat_id), int(user_id), **rights)

    async def demote_participant(self, chat_id: str, user_id: str):
        rights = {name: False for name in _ALL_ADMIN_RIGHTS}
        await self.tg.promote_chat_member(tg_chat_id(chat_id), int(user_id), **rights)

    # ── Global Telegram Error Handler ────────────────────────

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle Telegram framework errors without noisy unstructured tracebacks."""
        err = context.error
        chat_id = "unknown"
        if isinstance(update, Update):
            chat_id = self._chat_id_from_update(update)

        if isinstance(err, Conflict):
            now = time.time()
            # Polling conflicts repeat every few seconds; avoid log spam.
            if now - self._last_telegram_conflict_log_at >= 30:
                self._last_telegram_conflict_log_at = now
                log.warning(
                    f"[{chat_id}] Telegram polling conflict: another bot instance is using getUpdates. "
                    "Keep only one kurimuzon process running for this bot token."
                )
            return
        if isinstance(err, RetryAfter):
            log.warning(f"[{chat_id}] Telegram rate limit: retry after {err.retry_after}s")
            return
        if isinstance(err, (TimedOut, NetworkError)):
            log.warning(f"[{chat_id}] Telegram network issue: {err}")
            return

        log.exception(f"[{chat_id}] Unhandled Telegram error", exc_info=err)
