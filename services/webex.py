import logging
from typing import Any, Dict, Optional

import requests

from services.errors import TransportError
from services.retry import remote_retry
from sheet_bot.config import Settings

logger = logging.getLogger(__name__)


class WebexClient:
    """Thin synchronous wrapper over the Webex messages API."""

    def __init__(
        self,
        token: str,
        *,
        api_base: str = "https://webexapis.com/v1",
        timeout: float = 20.0,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebexClient":
        return cls(settings.webex_token, api_base=settings.webex_api_base, timeout=settings.webex_timeout)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _check(self, resp: requests.Response, action: str) -> Dict[str, Any]:
        if resp.status_code >= 400:
            logger.warning("Webex %s failed: status=%s body=%s", action, resp.status_code, resp.text[:300])
            raise TransportError(f"Webex {action} failed with status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Webex {action} returned a non-JSON body") from exc

    @remote_retry
    def get_message(self, message_id: str) -> Dict[str, Any]:
        resp = self.session.get(
            f"{self.api_base}/messages/{message_id}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        return self._check(resp, "get message")

    def get_message_text(self, message_id: str) -> str:
        message = self.get_message(message_id)
        return str(message.get("text") or "")

    @remote_retry
    def post_text(self, room_id: str, text: str) -> Dict[str, Any]:
        resp = self.session.post(
            f"{self.api_base}/messages",
            json={"roomId": room_id, "text": text},
            headers=self._headers(),
            timeout=self.timeout,
        )
        return self._check(resp, "post message")

    @remote_retry
    def post_file(
        self,
        room_id: str,
        filename: str,
        content: bytes,
        content_type: str = "text/plain",
    ) -> Dict[str, Any]:
        resp = self.session.post(
            f"{self.api_base}/messages",
            data={"roomId": room_id},
            files={"files": (filename, content, content_type)},
            headers=self._headers(),
            timeout=self.timeout,
        )
        return self._check(resp, "post file")
