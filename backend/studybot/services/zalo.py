"""Zalo Bot Platform HTTP client."""

import asyncio
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Transient failures that warrant retrying
_RETRYABLE_ERRORS = (httpx.TransportError,)
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ZaloAPIError(Exception):
    """Non-transient error response from the bot API."""

    def __init__(self, method: str, status_code: int, body: Any = None):
        super().__init__(f"{method} failed with HTTP {status_code}")
        self.method = method
        self.status_code = status_code
        self.body = body


class ZaloBotClient:
    """
    Thin async wrapper over `{base_url}/bot{token}/{method}`.

    Every call returns a boolean (or the payload for getWebhookInfo) and
    never raises: final failures are logged and reported as False/None so
    callers in background jobs can simply count them.
    """

    def __init__(
        self,
        token: str,
        base_url: str = "https://bot-api.zapps.me",
        *,
        timeout: float = 10.0,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _url(self, method: str) -> str:
        return f"{self._base_url}/bot{self._token}/{method}"

    async def _call(self, method: str, payload: dict | None = None) -> dict:
        """
        POST a bot API method with exponential backoff on transient errors.

        Raises the last transport error or ZaloAPIError once attempts are
        exhausted.
        """
        last_error: Exception | None = None
        for attempt in range(self._max_attempts):
            try:
                response = await self._client.post(self._url(method), json=payload or {})
                if response.status_code in _RETRYABLE_STATUS:
                    raise ZaloAPIError(method, response.status_code)
                if response.status_code != 200:
                    raise ZaloAPIError(method, response.status_code, response.text)
                return response.json()
            except ZaloAPIError as e:
                if e.status_code not in _RETRYABLE_STATUS:
                    raise
                last_error = e
            except _RETRYABLE_ERRORS as e:
                last_error = e

            if attempt < self._max_attempts - 1:
                delay = self._base_delay * (2 ** attempt)
                logger.warning(
                    "Zalo API transient error on %s (attempt %d/%d), retrying in %.1fs: %s",
                    method, attempt + 1, self._max_attempts, delay, str(last_error),
                )
                await asyncio.sleep(delay)
        raise last_error  # type: ignore[misc]

    async def _call_ok(self, method: str, payload: dict | None = None) -> bool:
        try:
            data = await self._call(method, payload)
        except (ZaloAPIError, httpx.HTTPError, ValueError) as e:
            logger.error("Zalo API %s failed: %s", method, e)
            return False
        if not data.get("ok"):
            logger.error("Zalo API %s returned not ok: %s", method, data)
            return False
        return True

    async def send_message(self, chat_id: str, text: str) -> bool:
        """Deliver a text message. Empty text is skipped and reported as not sent."""
        if not text:
            logger.info("Skipping empty message to %s", chat_id)
            return False
        return await self._call_ok("sendMessage", {"chat_id": chat_id, "text": text})

    async def send_typing_action(self, chat_id: str) -> bool:
        return await self._call_ok("sendChatAction", {"chat_id": chat_id, "action": "typing"})

    async def get_webhook_info(self) -> dict | None:
        try:
            data = await self._call("getWebhookInfo")
        except (ZaloAPIError, httpx.HTTPError, ValueError) as e:
            logger.error("Zalo API getWebhookInfo failed: %s", e)
            return None
        return data.get("result")

    async def set_webhook(self, url: str, secret_token: str) -> bool:
        return await self._call_ok("setWebhook", {"url": url, "secret_token": secret_token})

    async def delete_webhook(self) -> bool:
        return await self._call_ok("deleteWebhook")

    async def aclose(self) -> None:
        await self._client.aclose()
