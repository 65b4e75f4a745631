"""Ordered rule dispatch for inbound chat messages."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Awaitable, Callable

from progress import LevelUp, NoActiveGame, ProgressStore

from . import constants as text
from .constants import CHAT_XP, COMMAND_PREFIX
from .logging_setup import log
from .moderation import GroupModeration, ModerationReport
from .reply import ReplyGenerator
from .transport import Transport
from .types import InboundMessage, MemberEvent


@dataclass
class Rule:
    """One dispatch rule.

    ``handle`` returns True when it acted on the message. A passthrough rule
    never stops evaluation; any other rule stops it once it has acted.
    """

    name: str
    matches: Callable[[InboundMessage], bool]
    handle: Callable[[InboundMessage], Awaitable[bool]]
    passthrough: bool = False


def split_command(body: str) -> tuple[str, list[str]]:
    parts = body.split()
    if not parts:
        return "", []
    return parts[0], parts[1:]


class CommandDispatcher:
    def __init__(
        self,
        store: ProgressStore,
        replies: ReplyGenerator,
        moderation: GroupModeration,
        transport: Transport,
        bot_name: str = "Kurimuzon",
        prefix: str = COMMAND_PREFIX,
    ):
        self.store = store
        self.replies = replies
        self.moderation = moderation
        self.transport = transport
        self.bot_name = bot_name
        self.prefix = prefix
        self.bot_id = ""
        self.bot_username = ""
        self.rules = self._build_rules()

    def set_identity(self, bot_id: str, username: str = ""):
        self.bot_id = str(bot_id)
        self.bot_username = username or ""

    # ── Matching helpers ──────────────────────────────────────

    def _is_prefixed(self, message: InboundMessage) -> bool:
        return message.body.startswith(self.prefix)

    def _is(self, command: str) -> Callable[[InboundMessage], bool]:
        full = self.prefix + command
        return lambda message: message.body == full

    def _starts(self, command: str) -> Callable[[InboundMessage], bool]:
        full = self.prefix + command
        return lambda message: split_command(message.body)[0] == full

    def _group(self, predicate: Callable[[InboundMessage], bool]) -> Callable[[InboundMessage], bool]:
        return lambda message: message.is_group and predicate(message)

    def mentions_bot(self, message: InboundMessage) -> bool:
        if self.bot_id and self.bot_id in message.mentioned_ids:
            return True
        lower = message.body.lower()
        names = [n.lower() for n in (self.bot_name, self.bot_username) if n]
        return any(name in lower for name in names)

    def _build_rules(self) -> list[Rule]:
        mod = self.moderation
        return [
            Rule("chat_xp", lambda m: not self._is_prefixed(m), self._award_chat_xp, passthrough=True),
            Rule("mention_reply", lambda m: not self._is_prefixed(m) and self.mentions_bot(m), self._mention_reply),
            Rule("view_once", lambda m: m.has_media and m.is_view_once, self._reveal_view_once),
            Rule("sticker", lambda m: m.has_media and self._is("sticker")(m), self._make_sticker),
            Rule("toimage", lambda m: self._is("toimage")(m) and self._quotes_sticker(m), self._sticker_to_image),
            Rule("profile", self._is("profile"), self._profile),
            Rule("help", self._is("help"), self._help),
            Rule("crimson", self._starts("crimson"), self._crimson),
            Rule("game", self._is("game"), self._start_game),
            Rule("guess", self._starts("guess"), self._guess),
            Rule("tagall", self._group(self._is("tagall")), self._admin_only(self._group_action(mod.tag_all))),
            Rule("mute", self._group(self._is("mute")), self._admin_only(self._group_action(mod.mute, text.MUTED_TEXT))),
            Rule("unmute", self._group(self._is("unmute")), self._admin_only(self._group_action(mod.unmute, text.UNMUTED_TEXT))),
            Rule("kick", self._group(self._starts("kick")), self._admin_only(self._targeted_action(mod.kick, text.KICKED_TEXT))),
            Rule("promote", self._group(self._starts("promote")), self._admin_only(self._targeted_action(mod.promote, text.PROMOTED_TEXT))),
            Rule("demote", self._group(self._starts("demote")), self._admin_only(self._targeted_action(mod.demote, text.DEMOTED_TEXT))),
        ]

    # ── Dispatch ──────────────────────────────────────────────

    async def dispatch(self, message: InboundMessage) -> list[str]:
        """Run every matching rule in priority order; returns the names of rules that acted."""
        fired: list[str] = []
        for rule in self.rules:
            if not rule.matches(message):
                continue
            acted = await rule.handle(message)
            if not acted:
                log.debug(f"[{message.chat_id}] Rule {rule.name} matched but did not act")
                continue
            fired.append(rule.name)
            if not rule.passthrough:
                break
        if fired:
            log.debug(f"[{message.chat_id}] Rules fired: {', '.join(fired)}")
        return fired

    async def _send(self, chat_id: str, body: str):
        log.info(f"[{chat_id}] Bot: {body}")
        await self.transport.send_text(chat_id, body)

    async def _announce_level_up(self, chat_id: str, level_up: LevelUp | None):
        if level_up is not None:
            await self._send(chat_id, text.LEVEL_UP_TEXT.format(level=level_up.level))

    # ── Progress & chat ───────────────────────────────────────

    async def _award_chat_xp(self, message: InboundMessage) -> bool:
        level_up = self.store.add_experience(message.sender_id, CHAT_XP)
        await self._announce_level_up(message.chat_id, level_up)
        return True

    async def _mention_reply(self, message: InboundMessage) -> bool:
        reply = await self.replies.generate_reply(message.body)
        await self._send(message.chat_id, text.REPLY_PREFIX + reply)
        return True

    async def _profile(self, message: InboundMessage) -> bool:
        profile = self.store.get_profile(message.sender_id)
        await self._send(
            message.chat_id,
            text.PROFILE_TEXT.format(level=profile.level, experience=profile.experience),
        )
        return True

    async def _help(self, message: InboundMessage) -> bool:
        await self._send(message.chat_id, text.HELP_TEXT)
        return True

    async def _crimson(self, message: InboundMessage) -> bool:
        prompt = message.body[len(self.prefix + "crimson"):].strip()
        if not prompt:
            await self._send(message.chat_id, text.CRIMSON_USAGE_TEXT)
            return True
        reply = await self.replies.generate_reply(prompt)
        await self._send(message.chat_id, text.REPLY_PREFIX + reply)
        return True

    # ── Media ─────────────────────────────────────────────────

    async def _download(self, message: InboundMessage, chat_id: str):
        media = await self.transport.download_media(message)
        if media is None:
            log.warning(f"[{chat_id}] {message.media_kind} from {message.sender_id} could not be downloaded")
        return media

    async def _reveal_view_once(self, message: InboundMessage) -> bool:
        media = await self._download(message, message.chat_id)
        if media is None:
            return False
        log.info(f"[{message.chat_id}] Revealing view-once {media.kind} from {message.sender_id}")
        await self.transport.send_media(message.chat_id, media, caption=text.VIEW_ONCE_CAPTION)
        return True

    async def _make_sticker(self, message: InboundMessage) -> bool:
        media = await self._download(message, message.chat_id)
        return media is not None and await self.transport.send_sticker(message.chat_id, media)

    @staticmethod
    def _quotes_sticker(message: InboundMessage) -> bool:
        return message.quoted is not None and message.quoted.media_kind == "sticker"

    async def _sticker_to_image(self, message: InboundMessage) -> bool:
        media = await self._download(message.quoted, message.chat_id)
        return media is not None and await self.transport.send_image(
            message.chat_id, media, caption=text.TOIMAGE_CAPTION
        )

    # ── Guessing game ─────────────────────────────────────────

    async def _start_game(self, message: InboundMessage) -> bool:
        prompt = self.store.start_game(message.sender_id)
        log.info(f"[{message.chat_id}] Guessing game started for {message.sender_id}")
        await self._send(message.chat_id, prompt)
        return True

    async def _guess(self, message: InboundMessage) -> bool:
        _, args = split_command(message.body)
        token = args[0] if args else ""
        # ASCII integers only.
        if not re.fullmatch(r"-?[0-9]+", token):
            await self._send(message.chat_id, text.GUESS_USAGE_TEXT)
            return True

        try:
            result = self.store.resolve_guess(message.sender_id, int(token))
        except NoActiveGame:
            await self._send(message.chat_id, text.GUESS_NO_GAME_TEXT)
            return True

        if result.correct:
            await self._send(message.chat_id, text.GUESS_CORRECT_TEXT)
            await self._announce_level_up(message.chat_id, result.level_up)
        else:
            await self._send(message.chat_id, text.GUESS_WRONG_TEXT.format(answer=result.answer))
        return True

    # ── Group moderation ──────────────────────────────────────

    def _admin_only(self, action: Callable[[InboundMessage], Awaitable[bool]]):
        async def gated(message: InboundMessage) -> bool:
            if not await self.moderation.is_admin(message.chat_id, message.sender_id, message.is_group):
                log.info(
                    f"[{message.chat_id}] Ignoring {split_command(message.body)[0]} "
                    f"from non-admin {message.sender_id}"
                )
                return True
            return await action(message)

        return gated

    async def _report(self, chat_id: str, report: ModerationReport, success_text: str = ""):
        if report.succeeded and success_text:
            await self._send(chat_id, success_text.format(count=len(report.succeeded)))
        if report.failed:
            await self._send(chat_id, text.MODERATION_FAILED_TEXT.format(action=report.action))

    def _group_action(self, action, success_text: str = ""):
        async def run(message: InboundMessage) -> bool:
            await self._report(message.chat_id, await action(message.chat_id), success_text)
            return True

        return run

    def _targeted_action(self, action, success_text: str):
        """Apply ``action`` to every mentioned user except the bot itself."""

        async def run(message: InboundMessage) -> bool:
            targets = list(dict.fromkeys(u for u in message.mentioned_ids if u != self.bot_id))
            if not targets:
                await self._send(message.chat_id, text.NO_TARGETS_TEXT)
            else:
                await self._report(message.chat_id, await action(message.chat_id, targets), success_text)
            return True

        return run

    # ── Membership events ─────────────────────────────────────

    async def on_member_joined(self, event: MemberEvent):
        if event.user_id == self.bot_id:
            return
        await self._send(event.chat_id, text.WELCOME_TEXT.format(name=event.display_name or "new one"))

    async def on_member_left(self, event: MemberEvent):
        if event.user_id == self.bot_id:
            return
        await self._send(event.chat_id, text.GOODBYE_TEXT.format(name=event.display_name or "Someone"))
