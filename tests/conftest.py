"""
Shared pytest fixtures for the Kurimuzon test suite.

The fake transport records everything the bot core asks the messaging layer
to do, so dispatcher tests never touch Telegram.
"""

import json

import pytest

from progress import ProgressStore
from kurimuzon.dispatcher import CommandDispatcher
from kurimuzon.moderation import GroupModeration
from kurimuzon.reply import ReplyGenerator
from kurimuzon.types import InboundMessage, MediaPayload, Participant

BOT_ID = "999"
BOT_USERNAME = "kurimuzon_bot"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FixedRandom:
    """Stands in for random.Random; every draw returns the same number."""

    def __init__(self, value: int):
        self.value = value
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return self.value


class FakeLLM:
    """Returns canned replies in order, or raises when given an exception."""

    def __init__(self, responses=None):
        self._responses = list(responses or ["I-I'm here..."])
        self.calls = []

    async def chat(self, messages, system_prompt=""):
        self.calls.append({"messages": messages, "system_prompt": system_prompt})
        resp = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(resp, Exception):
            raise resp
        return resp


class FakeTransport:
    def __init__(self):
        self.texts = []
        self.mentions = []
        self.media = []
        self.stickers = []
        self.images = []
        self.calls = []
        self.admins = set()
        self.participants = {}
        self.admin_lookups = 0
        self.fail_targets = set()
        self.fail_download = False
        self.convertible = True

    def texts_for(self, chat_id):
        return [text for cid, text in self.texts if cid == chat_id]

    async def send_text(self, chat_id, text):
        self.texts.append((chat_id, text))

    async def send_mentions(self, chat_id, header, participants):
        self.mentions.append((chat_id, header, list(participants)))

    async def send_media(self, chat_id, media, caption=""):
        self.media.append((chat_id, media, caption))

    async def send_sticker(self, chat_id, media):
        if not self.convertible:
            return False
        self.stickers.append((chat_id, media))
        return True

    async def send_image(self, chat_id, media, caption=""):
        if not self.convertible:
            return False
        self.images.append((chat_id, media, caption))
        return True

    async def download_media(self, message):
        if self.fail_download or message.media_kind is None:
            return None
        return MediaPayload(kind=message.media_kind, data=b"media-bytes")

    async def get_participants(self, chat_id):
        return self.participants.get(chat_id, [])

    async def is_admin(self, chat_id, user_id):
        self.admin_lookups += 1
        return (chat_id, user_id) in self.admins

    async def _record(self, name, chat_id, user_id=None):
        self.calls.append((name, chat_id, user_id))
        if user_id in self.fail_targets or (user_id is None and chat_id in self.fail_targets):
            raise RuntimeError(f"{name} rejected")

    async def mute_chat(self, chat_id):
        await self._record("mute", chat_id)

    async def unmute_chat(self, chat_id):
        await self._record("unmute", chat_id)

    async def remove_participant(self, chat_id, user_id):
        await self._record("remove", chat_id, user_id)

    async def promote_participant(self, chat_id, user_id):
        await self._record("promote", chat_id, user_id)

    async def demote_participant(self, chat_id, user_id):
        await self._record("demote", chat_id, user_id)


def make_message(body="", **kwargs) -> InboundMessage:
    kwargs.setdefault("chat_id", "chat-1")
    kwargs.setdefault("sender_id", "user-1")
    return InboundMessage(body=body, **kwargs)


def group_message(body="", **kwargs) -> InboundMessage:
    kwargs.setdefault("chat_id", "group-1")
    kwargs.setdefault("is_group", True)
    return make_message(body, **kwargs)


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def progress_path(tmp_path):
    return tmp_path / "xp.json"


@pytest.fixture
def rng():
    return FixedRandom(7)


@pytest.fixture
def store(progress_path, rng):
    s = ProgressStore(progress_path, rng=rng)
    s.load()
    return s


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def dispatcher(store, llm, transport):
    d = CommandDispatcher(
        store,
        ReplyGenerator(llm, persona="test persona"),
        GroupModeration(transport),
        transport,
        bot_name="Kurimuzon",
    )
    d.set_identity(BOT_ID, BOT_USERNAME)
    return d


@pytest.fixture
def participants():
    return [
        Participant(user_id="1", display_name="Ann", is_admin=True),
        Participant(user_id="2", display_name="Bo"),
    ]


def stored(path):
    """The progress document as written to disk ({} before the first write)."""
    if not path.exists():
        return {}
    return json.loads(path.read_text(encoding="utf-8"))
