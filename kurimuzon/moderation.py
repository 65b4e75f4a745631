"""Admin-gated group moderation actions forwarded to the transport."""

from __future__ import annotations

from dataclasses import dataclass, field

from .constants import TAGALL_HEADER
from .logging_setup import log
from .transport import Transport


@dataclass
class ModerationReport:
    action: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class GroupModeration:
    """Thin wrappers around transport moderation calls.

    Callers run the admin gate first. Each transport call is isolated: a
    failure is logged and recorded in the report, never raised, and one bad
    target does not stop the rest.
    """

    def __init__(self, transport: Transport):
        self.transport = transport

    async def is_admin(self, chat_id: str, user_id: str, is_group: bool = True) -> bool:
        """Fresh admin lookup; nothing is cached between messages."""
        if not is_group:
            return False
        try:
            return await self.transport.is_admin(chat_id, user_id)
        except Exception:
            log.exception(f"[{chat_id}] Moderation: admin lookup failed for {user_id}")
            return False

    async def _run(self, chat_id: str, action: str, target: str, call) -> bool:
        try:
            await call
        except Exception:
            log.exception(f"[{chat_id}] Moderation: {action} failed for {target}")
            return False
        log.info(f"[{chat_id}] Moderation: {action} {target}")
        return True

    async def _for_each(self, chat_id: str, action: str, targets: list[str], method) -> ModerationReport:
        report = ModerationReport(action=action)
        for target in targets:
            if await self._run(chat_id, action, target, method(chat_id, target)):
                report.succeeded.append(target)
            else:
                report.failed.append(target)
        return report

    async def tag_all(self, chat_id: str) -> ModerationReport:
        report = ModerationReport(action="tagall")
        try:
            participants = await self.transport.get_participants(chat_id)
        except Exception:
            log.exception(f"[{chat_id}] Moderation: could not list participants")
            report.failed.append(chat_id)
            return report

        call = self.transport.send_mentions(chat_id, TAGALL_HEADER, participants)
        if await self._run(chat_id, "tagall", f"{len(participants)} participant(s)", call):
            report.succeeded.extend(p.user_id for p in participants)
        else:
            report.failed.append(chat_id)
        return report

    async def mute(self, chat_id: str) -> ModerationReport:
        report = ModerationReport(action="mute")
        ok = await self._run(chat_id, "mute", chat_id, self.transport.mute_chat(chat_id))
        (report.succeeded if ok else report.failed).append(chat_id)
        return report

    async def unmute(self, chat_id: str) -> ModerationReport:
        report = ModerationReport(action="unmute")
        ok = await self._run(chat_id, "unmute", chat_id, self.transport.unmute_chat(chat_id))
        (report.succeeded if ok else report.failed).append(chat_id)
        return report

    async def kick(self, chat_id: str, targets: list[str]) -> ModerationReport:
        return await self._for_each(chat_id, "kick", targets, self.transport.remove_participant)

    async def promote(self, chat_id: str, targets: list[str]) -> ModerationReport:
        return await self._for_each(chat_id, "promote", targets, self.transport.promote_participant)

    async def demote(self, chat_id: str, targets: list[str]) -> ModerationReport:
        return await self._for_each(chat_id, "demote", targets, self.transport.demote_participant)
