import logging
from typing import Optional

from telegram import Bot, InlineKeyboardButton, InlineKeyboardMarkup, Message
from telegram.error import BadRequest, TelegramError

from ..interface import Renderer
from ...schemas.views import View

logger = logging.getLogger(__name__)

# Edit failures that only mean "send a fresh message instead"
EXPECTED_EDIT_ERRORS = (
    "message can't be edited",
    "message to edit not found",
    "there is no text in the message to edit",
)
NOT_MODIFIED = "message is not modified"
PARSE_ERROR = "can't parse entities"

CAPTION_LIMIT = 1024


class TelegramRenderer(Renderer):
    def __init__(self, bot: Bot):
        self.bot = bot

    async def render(
        self,
        chat_id: int,
        view: View,
        message_id: Optional[int] = None,
    ) -> Optional[int]:
        markup = self._markup(view)
        parse_mode = view.parse_mode.value if view.parse_mode else None

        if view.image:
            sent = await self._send_photo(chat_id, view, markup, parse_mode)
            if sent is not None:
                return sent.message_id

        if message_id is not None and view.edit:
            if await self._edit(chat_id, message_id, view.text, markup, parse_mode):
                return message_id

        sent = await self._send(chat_id, view.text, markup, parse_mode)
        return sent.message_id

    async def _edit(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        markup: Optional[InlineKeyboardMarkup],
        parse_mode: Optional[str],
    ) -> bool:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                parse_mode=parse_mode,
                reply_markup=markup,
            )
            return True
        except BadRequest as e:
            reason = str(e).lower()
            if NOT_MODIFIED in reason:
                return True
            if PARSE_ERROR in reason and parse_mode:
                logger.warning(f"Markup rejected, retrying edit as plain text: {e}")
                return await self._edit(chat_id, message_id, text, markup, None)
            if any(expected in reason for expected in EXPECTED_EDIT_ERRORS):
                logger.debug(f"Edit not possible for message {message_id}: {e}")
            else:
                logger.warning(f"Unexpected edit failure for message {message_id}: {e}")
            return False
        except TelegramError as e:
            logger.warning(f"Unexpected edit failure for message {message_id}: {e}")
            return False

    async def _send(
        self,
        chat_id: int,
        text: str,
        markup: Optional[InlineKeyboardMarkup],
        parse_mode: Optional[str],
    ) -> Message:
        try:
            return await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
                reply_markup=markup,
            )
        except BadRequest as e:
            if parse_mode and PARSE_ERROR in str(e).lower():
                logger.warning(f"Markup rejected, resending as plain text: {e}")
                return await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=markup)
            raise

    async def _send_photo(
        self,
        chat_id: int,
        view: View,
        markup: Optional[InlineKeyboardMarkup],
        parse_mode: Optional[str],
    ) -> Optional[Message]:
        """
        Photo with the view as caption. Captions are capped, so longer text
        follows as its own message carrying the keyboard. Returns None if the
        photo could not be sent, letting the caller fall back to text.
        """
        fits = len(view.text) <= CAPTION_LIMIT
        try:
            if view.image.startswith(("http://", "https://")):
                photo = await self._post_photo(chat_id, view.image, view, markup, parse_mode, fits)
            else:
                with open(view.image, "rb") as f:
                    photo = await self._post_photo(chat_id, f, view, markup, parse_mode, fits)
        except (OSError, TelegramError) as e:
            logger.warning(f"Photo send failed for {view.image}: {e}")
            return None

        if fits:
            return photo
        return await self._send(chat_id, view.text, markup, parse_mode)

    async def _post_photo(self, chat_id, photo, view, markup, parse_mode, with_caption) -> Message:
        if with_caption:
            return await self.bot.send_photo(
                chat_id=chat_id,
                photo=photo,
                caption=view.text,
                parse_mode=parse_mode,
                reply_markup=markup,
            )
        return await self.bot.send_photo(chat_id=chat_id, photo=photo)

    @staticmethod
    def _markup(view: View) -> Optional[InlineKeyboardMarkup]:
        if not view.keyboard:
            return None
        return InlineKeyboardMarkup([
            [InlineKeyboardButton(button.text, callback_data=button.callback_data) for button in row]
            for row in view.keyboard
        ])
