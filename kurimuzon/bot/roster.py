"""In-memory record of the members seen in each chat."""

from __future__ import annotations

from ..types import Participant


class ChatRoster:
    """Telegram bots cannot list group members, so remember everyone we see."""

    def __init__(self):
        self._members: dict[str, dict[str, Participant]] = {}

    def remember(self, chat_id: str, participant: Participant):
        self._members.setdefault(chat_id, {})[participant.user_id] = participant

    def forget(self, chat_id: str, user_id: str):
        self._members.get(chat_id, {}).pop(user_id, None)

    def members(self, chat_id: str) -> list[Participant]:
        return list(self._members.get(chat_id, {}).values())

    def resolve_username(self, chat_id: str, username: str) -> str | None:
        """Map an @username to a user id, preferring members of ``chat_id``."""
        wanted = username.lstrip("@").lower()
        if not wanted:
            return None
        chats = [self._members.get(chat_id, {})]
        chats.extend(m for cid, m in self._members.items() if cid != chat_id)
        for members in chats:
            for participant in members.values():
                if participant.username and participant.username.lower() == wanted:
                    return participant.user_id
        return None
