"""Kurimuzon core package."""

from .app import main
from .bot import KurimuzonBot
from .dispatcher import CommandDispatcher, Rule
from .logging_setup import log
from .moderation import GroupModeration, ModerationReport
from .reply import ReplyGenerator
from .types import InboundMessage, MediaPayload, MemberEvent, Participant

__all__ = [
    "CommandDispatcher",
    "GroupModeration",
    "InboundMessage",
    "KurimuzonBot",
    "log",
    "main",
    "MediaPayload",
    "MemberEvent",
    "ModerationReport",
    "Participant",
    "ReplyGenerator",
    "Rule",
]
