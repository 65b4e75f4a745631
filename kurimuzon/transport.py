"""Operations the bot core needs from the messaging transport."""

from __future__ import annotations

from typing import Protocol

from .types import InboundMessage, MediaPayload, Participant


class Transport(Protocol):
    async def send_text(self, chat_id: str, text: str) -> None: ...

    async def send_mentions(self, chat_id: str, header: str, participants: list[Participant]) -> None: ...

    async def send_media(self, chat_id: str, media: MediaPayload, caption: str = "") -> None: ...

    async def send_sticker(self, chat_id: str, media: MediaPayload) -> bool: ...

    async def send_image(self, chat_id: str, media: MediaPayload, caption: str = "") -> bool: ...

    async def download_media(self, message: InboundMessage) -> MediaPayload | None: ...

    async def get_participants(self, chat_id: str) -> list[Participant]: ...

    async def is_admin(self, chat_id: str, user_id: str) -> bool: ...

    async def mute_chat(self, chat_id: str) -> None: ...

    async def unmute_chat(self, chat_id: str) -> None: ...

    async def remove_participant(self, chat_id: str, user_id: str) -> None: ...

    async def promote_participant(self, chat_id: str, user_id: str) -> None: ...

    async def demote_participant(self, chat_id: str, user_id: str) -> None: ...
