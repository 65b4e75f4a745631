"""
Tests for kurimuzon/dispatcher.py — rule order, commands, and scenarios end to end
against the fake transport.
"""

import asyncio

from conftest import BOT_ID, FakeLLM, group_message, make_message, stored
from kurimuzon import constants as text
from kurimuzon.dispatcher import CommandDispatcher, split_command
from kurimuzon.moderation import GroupModeration
from kurimuzon.reply import ReplyGenerator
from kurimuzon.types import InboundMessage, MemberEvent


def dispatch(dispatcher, message):
    return asyncio.run(dispatcher.dispatch(message))


class TestSplitCommand:

    def test_splits_on_whitespace(self):
        assert split_command(".guess   4 extra") == (".guess", ["4", "extra"])

    def test_empty_body(self):
        assert split_command("") == ("", [])


# ---------------------------------------------------------------------------
# Experience & mention replies
# ---------------------------------------------------------------------------

class TestChatExperience:

    def test_plain_message_awards_xp_silently(self, dispatcher, store, transport):
        fired = dispatch(dispatcher, make_message("hello"))
        assert fired == ["chat_xp"]
        assert store.get_profile("user-1").experience == 5
        assert transport.texts == []

    def test_commands_do_not_award_xp(self, dispatcher, store):
        dispatch(dispatcher, make_message(".profile"))
        dispatch(dispatcher, make_message(".unknown"))
        assert store.get_profile("user-1").experience == 0

    def test_xp_is_keyed_by_sender_not_chat(self, dispatcher, store):
        dispatch(dispatcher, group_message("hi all", sender_id="alice"))
        assert store.get_profile("alice").experience == 5
        assert store.get_profile("group-1").experience == 0

    def test_level_up_announced_in_chat(self, dispatcher, store, transport):
        store.add_experience("user-1", 95)
        dispatch(dispatcher, make_message("hello"))
        assert transport.texts == [("chat-1", text.LEVEL_UP_TEXT.format(level=2))]

    def test_media_without_caption_still_earns_xp(self, dispatcher, store):
        dispatch(dispatcher, make_message("", media_kind="photo"))
        assert store.get_profile("user-1").experience == 5


class TestMentionReply:

    def test_name_mention_gets_reply_and_xp(self, dispatcher, store, transport, llm):
        fired = dispatch(dispatcher, make_message("hey KURIMUZON, how are you?"))
        assert fired == ["chat_xp", "mention_reply"]
        assert store.get_profile("user-1").experience == 5
        assert llm.calls[0]["messages"] == [{"role": "user", "content": "hey KURIMUZON, how are you?"}]
        assert llm.calls[0]["system_prompt"] == "test persona"
        assert transport.texts == [("chat-1", "📘 I-I'm here...")]

    def test_identity_mention_gets_reply(self, dispatcher, transport):
        fired = dispatch(dispatcher, make_message("hi there", mentioned_ids=[BOT_ID]))
        assert "mention_reply" in fired
        assert len(transport.texts) == 1

    def test_username_in_text_counts_as_mention(self, dispatcher, transport):
        dispatch(dispatcher, make_message("ping @kurimuzon_bot"))
        assert transport.texts

    def test_other_mentions_are_ignored(self, dispatcher, transport):
        fired = dispatch(dispatcher, make_message("hi", mentioned_ids=["42"]))
        assert fired == ["chat_xp"]
        assert transport.texts == []

    def test_prefixed_message_with_name_is_not_a_mention(self, dispatcher, llm):
        fired = dispatch(dispatcher, make_message(".dance kurimuzon"))
        assert fired == []
        assert llm.calls == []

    def test_provider_failure_sends_fallback(self, store, transport):
        d = CommandDispatcher(
            store,
            ReplyGenerator(FakeLLM([RuntimeError("boom")])),
            GroupModeration(transport),
            transport,
        )
        dispatch(d, make_message("kurimuzon?"))
        assert transport.texts == [("chat-1", text.REPLY_PREFIX + text.REPLY_ERROR_TEXT)]


# ---------------------------------------------------------------------------
# Media rules
# ---------------------------------------------------------------------------

class TestMedia:

    def test_view_once_is_revealed(self, dispatcher, transport):
        fired = dispatch(dispatcher, make_message("", media_kind="photo", is_view_once=True))
        assert fired == ["chat_xp", "view_once"]
        (chat_id, media, caption), = transport.media
        assert chat_id == "chat-1"
        assert media.kind == "photo"
        assert caption == text.VIEW_ONCE_CAPTION

    def test_failed_download_sends_nothing(self, dispatcher, transport):
        transport.fail_download = True
        fired = dispatch(dispatcher, make_message("", media_kind="photo", is_view_once=True))
        assert fired == ["chat_xp"]
        assert transport.media == []
        assert transport.texts == []

    def test_sticker_command_on_media(self, dispatcher, transport):
        fired = dispatch(dispatcher, make_message(".sticker", media_kind="photo"))
        assert fired == ["sticker"]
        assert transport.stickers[0][0] == "chat-1"

    def test_sticker_command_without_media_is_ignored(self, dispatcher, transport):
        assert dispatch(dispatcher, make_message(".sticker")) == []
        assert transport.stickers == []

    def test_unconvertible_sticker_short_circuits(self, dispatcher, transport):
        transport.convertible = False
        assert dispatch(dispatcher, make_message(".sticker", media_kind="video")) == []
        assert transport.texts == []

    def test_toimage_on_quoted_sticker(self, dispatcher, transport):
        quoted = InboundMessage(chat_id="chat-1", sender_id="other", media_kind="sticker")
        fired = dispatch(dispatcher, make_message(".toimage", quoted=quoted))
        assert fired == ["toimage"]
        (chat_id, media, caption), = transport.images
        assert media.kind == "sticker"
        assert caption == text.TOIMAGE_CAPTION

    def test_toimage_needs_a_static_sticker(self, dispatcher, transport):
        for kind in ("photo", "animated_sticker"):
            quoted = InboundMessage(chat_id="chat-1", sender_id="other", media_kind=kind)
            assert dispatch(dispatcher, make_message(".toimage", quoted=quoted)) == []
        assert dispatch(dispatcher, make_message(".toimage")) == []
        assert transport.images == []


# ---------------------------------------------------------------------------
# Profile, help, crimson
# ---------------------------------------------------------------------------

class TestInfoCommands:

    def test_profile_reports_level_and_xp(self, dispatcher, store, transport):
        store.add_experience("user-1", 47)
        dispatch(dispatcher, make_message(".profile"))
        (_, reply), = transport.texts
        assert "Level: 1" in reply
        assert "XP: 47" in reply

    def test_profile_for_new_user(self, dispatcher, transport):
        dispatch(dispatcher, make_message(".profile"))
        assert "Level: 1\nXP: 0" in transport.texts[0][1]

    def test_help_lists_commands(self, dispatcher, transport):
        dispatch(dispatcher, make_message(".help"))
        assert ".guess <number>" in transport.texts[0][1]

    def test_exact_body_commands_need_exact_body(self, dispatcher, transport):
        assert dispatch(dispatcher, make_message(".profile please")) == []
        assert transport.texts == []

    def test_unknown_command_is_silent(self, dispatcher, transport, store):
        assert dispatch(dispatcher, make_message(".dance")) == []
        assert transport.texts == []
        assert len(store) == 0


class TestCrimson:

    def test_forwards_remainder(self, dispatcher, transport, llm):
        fired = dispatch(dispatcher, make_message(".crimson   tell me about books "))
        assert fired == ["crimson"]
        assert llm.calls[0]["messages"][0]["content"] == "tell me about books"
        assert transport.texts == [("chat-1", "📘 I-I'm here...")]

    def test_empty_prompt_gets_usage(self, dispatcher, transport, llm):
        dispatch(dispatcher, make_message(".crimson"))
        assert llm.calls == []
        assert transport.texts == [("chat-1", text.CRIMSON_USAGE_TEXT)]

    def test_command_token_must_match(self, dispatcher, llm):
        assert dispatch(dispatcher, make_message(".crimsonish hi")) == []
        assert llm.calls == []


# ---------------------------------------------------------------------------
# Guessing game
# ---------------------------------------------------------------------------

class TestGuessingGame:

    def test_game_sends_prompt(self, dispatcher, store, transport):
        dispatch(dispatcher, make_message(".game"))
        assert transport.texts == [("chat-1", "🎲 Uhm... guess a number between 1 and 10. Use `.guess <number>`")]
        assert "game" in stored(store.path)["user-1"]

    def test_correct_guess(self, dispatcher, store, transport):
        dispatch(dispatcher, make_message(".game"))
        dispatch(dispatcher, make_message(".guess 7"))
        assert transport.texts[-1] == ("chat-1", text.GUESS_CORRECT_TEXT)
        assert store.get_profile("user-1").experience == 20
        assert "game" not in stored(store.path)["user-1"]

    def test_correct_guess_level_up_is_announced(self, dispatcher, store, transport):
        store.add_experience("user-1", 85)
        dispatch(dispatcher, make_message(".game"))
        dispatch(dispatcher, make_message(".guess 7"))
        assert transport.texts[-2:] == [
            ("chat-1", text.GUESS_CORRECT_TEXT),
            ("chat-1", text.LEVEL_UP_TEXT.format(level=2)),
        ]

    def test_wrong_guess_reveals_number(self, dispatcher, store, transport):
        dispatch(dispatcher, make_message(".game"))
        dispatch(dispatcher, make_message(".guess 2"))
        assert transport.texts[-1] == ("chat-1", "❌ N-not quite... it was 7")
        assert store.get_profile("user-1").experience == 0
        assert "game" not in stored(store.path)["user-1"]

    def test_non_numeric_guess_gets_usage_without_mutation(self, dispatcher, store, transport, progress_path):
        dispatch(dispatcher, make_message(".guess abc"))
        assert transport.texts == [("chat-1", text.GUESS_USAGE_TEXT)]
        assert len(store) == 0
        assert not progress_path.exists()

    def test_non_numeric_guess_keeps_round_open(self, dispatcher, store):
        dispatch(dispatcher, make_message(".game"))
        before = stored(store.path)
        dispatch(dispatcher, make_message(".guess seven"))
        assert stored(store.path) == before

    def test_only_plain_integers_count_as_guesses(self, dispatcher, store, transport):
        dispatch(dispatcher, make_message(".game"))
        for token in ("0_7", "+7", "٧", "7.0", "--7"):
            dispatch(dispatcher, make_message(f".guess {token}"))
        assert transport.texts[1:] == [("chat-1", text.GUESS_USAGE_TEXT)] * 5
        assert stored(store.path)["user-1"] == {"xp": 0, "level": 1, "game": 7}

    def test_negative_guess_is_just_wrong(self, dispatcher, transport):
        dispatch(dispatcher, make_message(".game"))
        dispatch(dispatcher, make_message(".guess -3"))
        assert transport.texts[-1] == ("chat-1", "❌ N-not quite... it was 7")

    def test_missing_number_gets_usage(self, dispatcher, transport):
        dispatch(dispatcher, make_message(".guess"))
        assert transport.texts == [("chat-1", text.GUESS_USAGE_TEXT)]

    def test_guess_without_game(self, dispatcher, transport):
        dispatch(dispatcher, make_message(".guess 4"))
        assert transport.texts == [("chat-1", text.GUESS_NO_GAME_TEXT)]


# ---------------------------------------------------------------------------
# Group moderation
# ---------------------------------------------------------------------------

class TestModerationCommands:

    def test_mute_from_non_admin_does_nothing(self, dispatcher, transport):
        fired = dispatch(dispatcher, group_message(".mute"))
        assert fired == ["mute"]
        assert transport.calls == []
        assert transport.texts == []
        assert transport.admin_lookups == 1

    def test_mute_from_admin(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".mute"))
        assert transport.calls == [("mute", "group-1", None)]
        assert transport.texts == [("group-1", text.MUTED_TEXT)]

    def test_unmute_from_admin(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".unmute"))
        assert transport.calls == [("unmute", "group-1", None)]
        assert transport.texts == [("group-1", text.UNMUTED_TEXT)]

    def test_admin_commands_ignored_outside_groups(self, dispatcher, transport):
        assert dispatch(dispatcher, make_message(".mute")) == []
        assert transport.admin_lookups == 0
        assert transport.calls == []

    def test_admin_status_checked_every_time(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".mute"))
        transport.admins.clear()
        dispatch(dispatcher, group_message(".unmute"))
        assert transport.admin_lookups == 2
        assert [c[0] for c in transport.calls] == ["mute"]

    def test_failed_mute_is_reported(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        transport.fail_targets.add("group-1")
        dispatch(dispatcher, group_message(".mute"))
        assert transport.texts == [
            ("group-1", text.MODERATION_FAILED_TEXT.format(action="mute"))
        ]

    def test_tagall_mentions_everyone(self, dispatcher, transport, participants):
        transport.admins.add(("group-1", "user-1"))
        transport.participants["group-1"] = participants
        dispatch(dispatcher, group_message(".tagall"))
        assert transport.mentions == [("group-1", text.TAGALL_HEADER, participants)]
        assert transport.texts == []

    def test_kick_processes_targets_independently(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        transport.fail_targets.add("b")
        dispatch(dispatcher, group_message(".kick @a @b @c", mentioned_ids=["a", "b", "c"]))
        assert transport.calls == [
            ("remove", "group-1", "a"),
            ("remove", "group-1", "b"),
            ("remove", "group-1", "c"),
        ]
        assert transport.texts == [
            ("group-1", text.KICKED_TEXT.format(count=2)),
            ("group-1", text.MODERATION_FAILED_TEXT.format(action="kick")),
        ]

    def test_kick_never_targets_the_bot(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".kick @a @me", mentioned_ids=["a", BOT_ID, "a"]))
        assert transport.calls == [("remove", "group-1", "a")]

    def test_kick_without_mentions_gets_hint(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".kick"))
        assert transport.calls == []
        assert transport.texts == [("group-1", text.NO_TARGETS_TEXT)]

    def test_promote_and_demote(self, dispatcher, transport):
        transport.admins.add(("group-1", "user-1"))
        dispatch(dispatcher, group_message(".promote @a", mentioned_ids=["a"]))
        dispatch(dispatcher, group_message(".demote @a", mentioned_ids=["a"]))
        assert transport.calls == [("promote", "group-1", "a"), ("demote", "group-1", "a")]
        assert transport.texts == [
            ("group-1", text.PROMOTED_TEXT.format(count=1)),
            ("group-1", text.DEMOTED_TEXT.format(count=1)),
        ]

    def test_non_admin_kick_is_silent(self, dispatcher, transport):
        dispatch(dispatcher, group_message(".kick @a", mentioned_ids=["a"]))
        assert transport.calls == []
        assert transport.texts == []


# ---------------------------------------------------------------------------
# Membership events
# ---------------------------------------------------------------------------

class TestMembershipEvents:

    def test_welcome(self, dispatcher, transport):
        asyncio.run(dispatcher.on_member_joined(MemberEvent("group-1", "5", "Mika")))
        assert transport.texts == [("group-1", "👋 W-welcome Mika...")]

    def test_welcome_without_name(self, dispatcher, transport):
        asyncio.run(dispatcher.on_member_joined(MemberEvent("group-1", "5")))
        assert transport.texts == [("group-1", "👋 W-welcome new one...")]

    def test_goodbye(self, dispatcher, transport):
        asyncio.run(dispatcher.on_member_left(MemberEvent("group-1", "5")))
        assert transport.texts == [("group-1", "😢 Someone left...")]

    def test_bot_itself_is_not_greeted(self, dispatcher, transport):
        asyncio.run(dispatcher.on_member_joined(MemberEvent("group-1", BOT_ID, "Kurimuzon")))
        assert transport.texts == []
