"""Shared datatypes for Kurimuzon."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class MediaPayload:
    kind: str
    data: bytes
    mimetype: str = ""
    filename: str = ""


@dataclass
class Participant:
    user_id: str
    display_name: str = ""
    username: str = ""
    is_admin: bool = False


@dataclass
class InboundMessage:
    """Transport-neutral view of one received chat message."""

    chat_id: str
    sender_id: str
    body: str = ""
    sender_name: str = ""
    is_group: bool = False
    media_kind: str | None = None
    is_view_once: bool = False
    mentioned_ids: list[str] = field(default_factory=list)
    quoted: InboundMessage | None = None
    # Transport object the message came from (needed to download media).
    raw: Any = None

    @property
    def has_media(self) -> bool:
        return self.media_kind is not None


@dataclass
class MemberEvent:
    chat_id: str
    user_id: str
    display_name: str = ""
