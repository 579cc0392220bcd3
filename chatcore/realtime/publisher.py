"""
Remote Event Publisher

HTTP client for collaborators running in another process. It mirrors the
Broadcaster interface but delivers through this service's internal event
endpoints, authenticated with the X-Internal-Secret header.

Publishing failures are logged and swallowed; they never break the
caller's main flow.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, get_settings
from ..models import OutboundEvent


logger = logging.getLogger("chatcore.realtime.publisher")

DEFAULT_PUBLISH_TIMEOUT_SECONDS = 5.0


class RemoteEventPublisher:
    """
    Posts outbound events to a running realtime service.

    Args:
        base_url: Realtime service URL; defaults to REALTIME_SERVICE_URL
        internal_secret: Shared secret; defaults to INTERNAL_SHARED_SECRET
        client: Optional preconfigured httpx.AsyncClient (tests inject one
            with a mock transport)
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        internal_secret: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_PUBLISH_TIMEOUT_SECONDS,
        settings: Optional[Settings] = None,
    ) -> None:
        if base_url is None or internal_secret is None:
            settings = settings or get_settings()
            base_url = base_url or settings.realtime_service_url_str
            internal_secret = internal_secret or settings.INTERNAL_SHARED_SECRET

        self._base_url = base_url.rstrip("/")
        self._headers = {
            "X-Internal-Secret": internal_secret or "",
            "Content-Type": "application/json",
        }
        self._client = client
        self._timeout = timeout

    async def broadcast_all(self, event: OutboundEvent) -> int:
        body = await self._post("/internal/events", self._event_body(event))
        return int(body.get("recipients", 0)) if body else 0

    async def send_to(self, user_id: str, event: OutboundEvent) -> bool:
        body = await self._post("/internal/events", self._event_body(event, user_id))
        return bool(body and body.get("recipients", 0) > 0)

    async def delivery_receipt(self, user_id: str, message_id: str) -> bool:
        body = await self._post(
            "/internal/delivery-receipts",
            {"userId": user_id, "messageId": message_id},
        )
        return bool(body and body.get("delivered"))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    @staticmethod
    def _event_body(event: OutboundEvent, user_id: Optional[str] = None) -> Dict[str, Any]:
        body = event.model_dump(mode="json")
        if user_id is not None:
            body["userId"] = user_id
        return body

    async def _post(self, path: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        url = f"{self._base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.post(
                    url, json=body, headers=self._headers, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(
                        url, json=body, headers=self._headers, timeout=self._timeout
                    )
            response.raise_for_status()
            logger.debug(f"Published {body.get('type', 'delivery-receipt')} to realtime service")
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                f"Failed to publish event to realtime service: {e}",
                extra={"path": path},
                exc_info=True
            )
            return None
