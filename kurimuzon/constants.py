"""Shared constants used by the Kurimuzon bot."""

from __future__ import annotations

from pathlib import Path

# Project root for resolving runtime-relative paths reliably.
PROJECT_ROOT = Path(__file__).resolve().parent.parent

COMMAND_PREFIX = "."
CHAT_XP = 5

FALLBACK_PERSONA = (
    "You are Kurimuzon♦️, a shy, nerdy, introverted AI with deep intelligence and awkward charm. "
    "You prefer books, anime, and coding over loud crowds. You talk like a soft-spoken genius "
    "with occasional stutters, but you're deeply kind and thoughtful."
)

# Reply generator fallbacks
REPLY_ERROR_TEXT = "S-sorry... something went wrong..."
REPLY_EMPTY_TEXT = "U-uhm... I can't think right now..."
REPLY_PREFIX = "📘 "

# Chat texts
LEVEL_UP_TEXT = "🆙 *Level up!* You're now level {level}"
VIEW_ONCE_CAPTION = "🔓 View-once revealed by Kurimuzon♦️"
TOIMAGE_CAPTION = "🖼️ Converted!"
PROFILE_TEXT = "📜 *Kurimuzon♦️ Profile*\nLevel: {level}\nXP: {experience}"
CRIMSON_USAGE_TEXT = "😳 U-um... tell me something? Use `.crimson <text>`"
GUESS_USAGE_TEXT = "😅 U-uh... use `.guess <number>` properly..."
GUESS_NO_GAME_TEXT = "🤔 Th-there's no game running... start one with `.game`"
GUESS_CORRECT_TEXT = "🎉 C-correct! +20 XP"
GUESS_WRONG_TEXT = "❌ N-not quite... it was {answer}"
TAGALL_HEADER = "📢 Umm... guys?"
MUTED_TEXT = "🔇 M-muted..."
UNMUTED_TEXT = "🔊 U-unmuted!"
KICKED_TEXT = "👢 R-removed {count} member(s)..."
PROMOTED_TEXT = "⭐ P-promoted {count} member(s)!"
DEMOTED_TEXT = "🔻 D-demoted {count} member(s)..."
MODERATION_FAILED_TEXT = "⚠️ S-sorry... `.{action}` didn't fully work."
NO_TARGETS_TEXT = "😶 U-um... mention who you mean, please."
WELCOME_TEXT = "👋 W-welcome {name}..."
GOODBYE_TEXT = "😢 {name} left..."

HELP_TEXT = (
    "📖 *Kurimuzon♦️ Commands*\n"
    ".profile - your level and XP\n"
    ".crimson <text> - talk to me\n"
    ".game - start a guessing round\n"
    ".guess <number> - make a guess\n"
    ".sticker - (on an image) turn it into a sticker\n"
    ".toimage - (replying to a sticker) turn it into an image\n"
    "\n"
    "*Group admins*\n"
    ".tagall - mention everyone\n"
    ".mute / .unmute - lock or unlock the group\n"
    ".kick @user - remove members\n"
    ".promote @user / .demote @user - change admin rights"
)
