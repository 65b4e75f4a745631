#!/usr/bin/env python3
"""
Kurimuzon — shy chat companion for Telegram
===========================================
XP and levels for chatter, a guessing game, persona replies from an LLM,
sticker tools, and admin-only group moderation.

Architecture: Telegram Polling → handle_message → CommandDispatcher rules → replies
"""

from kurimuzon.app import main

if __name__ == "__main__":
    main()
