from abc import ABC, abstractmethod
from typing import Optional

from ..schemas.views import View


class Renderer(ABC):
    """
    Abstract Base Class interface that defines the contract for any chat
    transport (Telegram, a test double, ...).
    """

    @abstractmethod
    async def render(
        self,
        chat_id: int,
        view: View,
        message_id: Optional[int] = None,
    ) -> Optional[int]:
        """
        Shows view, editing message_id in place when possible and otherwise
        sending a new message. Returns the id of the message now showing the
        view's buttons.
        """
        pass
