"""
GrowFlow — Telegram Note Ingress.

Lets linked users forward meeting notes from Telegram: every plain text
message becomes a note, runs through the same extraction pipeline as the
HTTP webhook, and the bot replies with the number of tasks created.

Security-first: messages from Telegram users that are not linked to a
profile (TELEGRAM_USER_MAP) are silently ignored.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine

from telegram import Update
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from src.core.task_service import NoteSubmission
from src.ports.datastore_port import DatastoreError

if TYPE_CHECKING:
    from src.config import Settings
    from src.core.task_service import TaskService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def linked_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unlinked Telegram users.

    The wrapped handler receives the caller's GrowFlow profile id in
    context.user_data["profile_id"].
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        user_map: dict[int, str] = context.bot_data.get("user_map", {})
        if user is None or user.id not in user_map:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        context.user_data["profile_id"] = user_map[user.id]
        return await func(update, context)

    return wrapper


def _format_reply(tasks_created: int, descriptions: list[str]) -> str:
    if tasks_created == 0:
        return "📝 Note saved, but no actionable tasks were found."
    lines = [f"✅ Note saved and {tasks_created} task(s) created:"]
    lines.extend(f"• {d}" for d in descriptions)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


@linked_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        "👋 Hi! Send me your meeting notes and I'll turn them into tasks.\n"
        "Use /help to see how to format them."
    )


@linked_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        "Send notes as plain text, one task per line. For example:\n\n"
        "- John: Finish the report by 2025-03-01\n"
        "- Book the venue ASAP\n"
        "- Update the wiki when possible\n\n"
        "Names followed by a colon become assignees; "
        "'urgent'/'ASAP' mark high priority; 'by <date>' sets a deadline."
    )


@linked_only
async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Treat a plain text message as meeting notes."""
    service: TaskService = context.bot_data["service"]
    text = (update.message.text or "").strip()
    if not text:
        return

    submission = NoteSubmission(user_id=context.user_data["profile_id"], note_text=text)
    try:
        result = await service.submit_note(submission)
    except DatastoreError as exc:
        logger.error("Failed to save note from Telegram: %s", exc)
        await update.message.reply_text("❌ Sorry, I couldn't save your note. Please try again.")
        return

    await update.message.reply_text(
        _format_reply(result.tasks_created, [t.description for t in result.batch.tasks])
    )


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def build_app(settings: Settings, service: TaskService | None = None) -> Application:
    """Build and configure the Telegram Application with all handlers."""
    if not settings.TELEGRAM_BOT_TOKEN:
        raise ValueError("TELEGRAM_BOT_TOKEN is required to run the Telegram bot")

    if service is None:
        from src.adapters.datastore_factory import create_datastore
        from src.core.task_service import TaskService

        service = TaskService.from_settings(settings, create_datastore(settings))

    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()
    app.bot_data["service"] = service
    app.bot_data["user_map"] = dict(settings.TELEGRAM_USER_MAP)

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_help))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main(settings: Settings | None = None) -> None:
    """Entry point: build the app and start polling."""
    from src.config import load_settings

    logger.info("Starting GrowFlow Telegram bot...")
    app = build_app(settings or load_settings())
    app.run_polling()
