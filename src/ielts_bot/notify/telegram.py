"""
Telegram Bot API client.

Sends messages and receives command updates via the Telegram Bot API.
https://core.telegram.org/bots/api
"""

import logging
from typing import List, Optional

import requests

from ielts_bot.config import get_settings
from ielts_bot.models import DeliveryOutcome, DeliveryResult

logger = logging.getLogger(__name__)

# Telegram Bot API endpoint
TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/{method}"

# Error codes meaning the chat will never accept messages from the bot again:
# 403 covers "bot was blocked by the user", "bot was kicked" and
# "user is deactivated"; 400 is returned for chats that no longer exist.
PERMANENT_ERROR_CODES = {403}
PERMANENT_BAD_REQUEST_DESCRIPTIONS = ("chat not found", "user not found")


class TelegramError(Exception):
    """Raised when a Bot API call other than sendMessage fails."""
    pass


def classify_error(error_code: Optional[int], description: str = "") -> DeliveryOutcome:
    """
    Map a Bot API error response to a delivery outcome.

    Args:
        error_code: ``error_code`` from the API response (or HTTP status)
        description: ``description`` from the API response

    Returns:
        DeliveryOutcome: PERMANENT_FAILURE if the chat can never be reached
    """
    if error_code in PERMANENT_ERROR_CODES:
        return DeliveryOutcome.PERMANENT_FAILURE
    if error_code == 400 and any(
        text in description.lower() for text in PERMANENT_BAD_REQUEST_DESCRIPTIONS
    ):
        return DeliveryOutcome.PERMANENT_FAILURE
    return DeliveryOutcome.TRANSIENT_FAILURE


class TelegramClient:
    """
    Telegram Bot API client.

    Sending never raises: each send returns a DeliveryResult whose
    outcome tells the caller whether the chat is still reachable.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize Telegram client.

        Args:
            token: Telegram Bot API token (from @BotFather)
            timeout: Timeout in seconds for sendMessage and getMe
        """
        if token is None or timeout is None:
            settings = get_settings()
            token = token or settings.bot_token
            timeout = timeout or settings.request_timeout

        self.token = token
        self.timeout = timeout
        self.session = requests.Session()

    def _url(self, method: str) -> str:
        return TELEGRAM_API_URL.format(token=self.token, method=method)

    def send_message(
        self,
        chat_id: int,
        message: str,
        parse_mode: str = "Markdown",
    ) -> DeliveryResult:
        """
        Send a text message to one chat.

        Args:
            chat_id: Target chat
            message: The message text to send
            parse_mode: Message formatting mode (Markdown or HTML)

        Returns:
            DeliveryResult: Classified outcome of the send
        """
        payload = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
        }

        try:
            response = self.session.post(
                self._url("sendMessage"), json=payload, timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error(f"Telegram API request timed out for chat {chat_id}")
            return DeliveryResult(
                chat_id=chat_id,
                outcome=DeliveryOutcome.TRANSIENT_FAILURE,
                error="timeout",
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram API request failed for chat {chat_id}: {e}")
            return DeliveryResult(
                chat_id=chat_id,
                outcome=DeliveryOutcome.TRANSIENT_FAILURE,
                error=str(e),
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code == 200 and data.get("ok"):
            message_id = data.get("result", {}).get("message_id", "unknown")
            logger.debug(f"Telegram message {message_id} sent to chat {chat_id}")
            return DeliveryResult(chat_id=chat_id, outcome=DeliveryOutcome.DELIVERED)

        error_code = data.get("error_code", response.status_code)
        description = data.get("description") or response.text
        outcome = classify_error(error_code, description)

        logger.error(
            f"Telegram API error for chat {chat_id}: {error_code} - {description}"
        )
        return DeliveryResult(
            chat_id=chat_id,
            outcome=outcome,
            error=f"{error_code}: {description}",
        )

    def get_updates(self, offset: Optional[int] = None, timeout: int = 30) -> List[dict]:
        """
        Long-poll for new updates.

        Args:
            offset: Identifier of the first update to return
            timeout: Long-poll timeout in seconds

        Returns:
            List of update objects

        Raises:
            TelegramError: If the request fails or the API reports an error
        """
        params = {"timeout": timeout, "allowed_updates": '["message"]'}
        if offset is not None:
            params["offset"] = offset

        try:
            response = self.session.get(
                self._url("getUpdates"), params=params, timeout=timeout + self.timeout
            )
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise TelegramError(f"getUpdates request failed: {e}") from e
        except ValueError as e:
            raise TelegramError(f"getUpdates returned invalid JSON: {e}") from e

        if not data.get("ok"):
            raise TelegramError(
                f"getUpdates failed: {data.get('error_code')} - {data.get('description')}"
            )

        return data.get("result", [])

    def get_me(self) -> Optional[dict]:
        """Return the bot's user object, or None if the token is invalid."""
        try:
            response = self.session.get(self._url("getMe"), timeout=self.timeout)
            if response.status_code == 200 and response.json().get("ok"):
                return response.json().get("result", {})
            return None
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Failed to connect to Telegram: {e}")
            return None

    def test_connection(self) -> bool:
        """
        Test if the bot token is valid.

        Returns:
            bool: True if connection is valid
        """
        bot_info = self.get_me()
        if bot_info is None:
            return False
        logger.info(f"Connected to Telegram bot: @{bot_info.get('username')}")
        return True

    def close(self) -> None:
        self.session.close()
