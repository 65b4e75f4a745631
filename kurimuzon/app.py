"""Application entrypoint and Telegram handler registration."""

from __future__ import annotations

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from config import load_config, validate_config

from .bot import KurimuzonBot
from .logging_setup import configure_optional_json_logging, log
from .personality import PERSONA_FILENAME, resolve_runtime_path, runtime_root

# Everything a member can post that the dispatcher may act on.
CHAT_CONTENT = (
    filters.TEXT
    | filters.CAPTION
    | filters.PHOTO
    | filters.Sticker.ALL
    | filters.VIDEO
    | filters.ANIMATION
    | filters.VIDEO_NOTE
    | filters.VOICE
    | filters.AUDIO
    | filters.Document.ALL
)


def main():
    """Start the Kurimuzon Telegram bot."""
    config = load_config()

    problems = validate_config(config)
    if problems:
        for problem in problems:
            log.error(problem)
        raise SystemExit(1)

    configure_optional_json_logging(runtime_root())
    config.progress_path = str(resolve_runtime_path(config.progress_path))

    log.info("♦️ Kurimuzon starting...")
    log.info(f"   Provider: {config.llm_provider} ({config.llm_model})")
    log.info(f"   Progress file: {config.progress_path}")
    log.info(f"   Bot name: {config.bot_name}")

    bot = KurimuzonBot(config)
    log.info(f"   Progress: {len(bot.store)} user(s) on record")
    if (runtime_root() / PERSONA_FILENAME).exists():
        log.info(f"   Persona: {PERSONA_FILENAME} ({runtime_root()})")
    else:
        log.info("   Persona: built-in default")

    async def _post_init(application: Application):
        await bot.bind(application.bot)

    app = Application.builder().token(config.telegram_bot_token).post_init(_post_init).build()

    app.add_handler(CommandHandler(["start", "help"], bot.cmd_start))
    app.add_handler(MessageHandler(filters.StatusUpdate.NEW_CHAT_MEMBERS, bot.handle_new_members))
    app.add_handler(MessageHandler(filters.StatusUpdate.LEFT_CHAT_MEMBER, bot.handle_left_member))
    app.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE & CHAT_CONTENT & ~filters.COMMAND, bot.handle_message)
    )
    app.add_error_handler(bot.on_error)

    log.info("♦️ Kurimuzon is quietly running... (disable privacy mode in @BotFather to see group chatter)")

    app.run_polling(allowed_updates=Update.ALL_TYPES, drop_pending_updates=True, timeout=30)


if __name__ == "__main__":
    main()
