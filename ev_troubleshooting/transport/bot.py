"""
EV Troubleshooting Telegram Bot

Wires the Telegram Bot API to the ChatService. Updates arrive either by
long-polling or through the FastAPI webhook route; both paths end in the
same handlers, which turn the update into a View and hand it to the
renderer.

Usage:
    bot = TelegramBot(token="...", service=chat_service, dedupe=dedupe)
    await bot.start()    # non-blocking
    await bot.stop()
"""

import logging
from typing import Optional

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from ..schemas.views import View
from ..services.chat import COMMANDS, ChatService
from ..services.dedupe import CallbackDeduplicator
from .adapters.telegram_adapter import TelegramRenderer
from .interface import Renderer

logger = logging.getLogger(__name__)


class TelegramBot:
    """Telegram front end for the troubleshooting service.

    If token is empty, start() returns immediately and the bot is disabled.
    The HTTP app keeps serving health checks.

    Args:
        token:           Bot token from @BotFather. Empty = disabled.
        service:         ChatService that turns updates into Views.
        dedupe:          Suppresses repeated button presses.
        webhook_url:     Full public webhook URL. Empty = long-polling.
        webhook_secret:  Secret Telegram echoes in X-Telegram-Bot-Api-Secret-Token.
        renderer:        Overrides the renderer built from the bot (tests).
    """

    def __init__(
        self,
        token: str,
        service: ChatService,
        dedupe: CallbackDeduplicator,
        webhook_url: str = "",
        webhook_secret: str = "",
        renderer: Optional[Renderer] = None,
    ):
        self._token = token
        self._service = service
        self._dedupe = dedupe
        self._webhook_url = webhook_url
        self._webhook_secret = webhook_secret
        self._renderer = renderer

        self._app: Optional[Application] = None
        self._running = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self):
        """Initialize and start receiving updates. Non-blocking."""
        if not self._token:
            logger.error("Telegram bot disabled: TELEGRAM_BOT_TOKEN is not set")
            return

        builder = Application.builder().token(self._token)
        if self._webhook_url:
            # Updates are pushed to the FastAPI route instead
            builder = builder.updater(None)
        self._app = builder.build()

        if self._renderer is None:
            self._renderer = TelegramRenderer(self._app.bot)

        self._app.add_handler(CommandHandler(list(COMMANDS), self._on_command))
        self._app.add_handler(CallbackQueryHandler(self._on_callback))
        self._app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text))
        self._app.add_error_handler(self._on_error)

        await self._app.initialize()
        await self._app.start()

        if self._webhook_url:
            try:
                await self._app.bot.set_webhook(
                    url=self._webhook_url,
                    secret_token=self._webhook_secret or None,
                    allowed_updates=Update.ALL_TYPES,
                )
            except TelegramError as e:
                # The HTTP app keeps running; updates resume once the webhook is set
                logger.error(f"Webhook registration failed for {self._webhook_url}: {e}")
            else:
                logger.info(f"Telegram bot started (webhook {self._webhook_url})")
        else:
            await self._app.bot.delete_webhook()
            await self._app.updater.start_polling(drop_pending_updates=True)
            logger.info("Telegram bot started (polling)")

        self._running = True

    async def stop(self):
        """Gracefully stop the bot and clean up."""
        if self._app is None:
            return

        try:
            if self._app.updater and self._app.updater.running:
                await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
        except TelegramError as e:
            logger.warning(f"Error stopping Telegram bot: {e}")

        self._running = False
        logger.info("Telegram bot stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def webhook_secret(self) -> str:
        return self._webhook_secret

    async def process_webhook_update(self, payload: dict) -> bool:
        """Feeds one webhook payload through the handlers. False when the bot is disabled."""
        if self._app is None:
            logger.warning("Webhook update received while the bot is not running")
            return False
        update = Update.de_json(payload, self._app.bot)
        await self._app.process_update(update)
        return True

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if message is None or not message.text:
            return
        chat_id = update.effective_chat.id
        logger.debug(f"Command {message.text!r} from chat {chat_id}")

        view = self._service.handle_command(chat_id, message.text)
        await self._deliver(chat_id, view, None)

    async def _on_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        # Always stop the client spinner, even if the press is ignored
        try:
            await query.answer()
        except TelegramError as e:
            logger.debug(f"Could not answer callback query: {e}")

        if query.message is not None:
            chat_id = query.message.chat.id
            message_id = query.message.message_id
        else:
            chat_id = update.effective_chat.id
            message_id = None

        data = query.data or ""
        if self._dedupe.is_duplicate(chat_id, data):
            logger.debug(f"Dropping duplicate callback {data!r} from chat {chat_id}")
            return

        view = self._service.handle_callback(chat_id, message_id, data)
        await self._deliver(chat_id, view, message_id)

    async def _on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = update.effective_message
        if message is None or not message.text:
            return
        chat_id = update.effective_chat.id

        view = self._service.handle_text(chat_id, message.text)
        await self._deliver(chat_id, view, None)

    async def _on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error(f"Error while handling update {update}: {context.error}", exc_info=context.error)

    async def _deliver(self, chat_id: int, view: Optional[View], message_id: Optional[int]):
        if view is None:
            return
        shown_id = await self._renderer.render(chat_id, view, message_id)
        self._service.message_rendered(chat_id, view, message_id, shown_id)
