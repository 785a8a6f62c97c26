"""
Issues the sendMail call and normalises its outcome into a SendResult.
"""

from __future__ import annotations

import httpx

from graphmail.auth.credentials import CredentialProvider
from graphmail.config import GraphMailConfig, get_graph_mail_config
from graphmail.mail.models import SendResult
from graphmail.mail.wire import GraphMessage, SendMailRequest
from graphmail.shared.exceptions import GraphMailError, TransportError
from graphmail.shared.logging import get_logger

logger = get_logger(__name__)


class GraphDispatcher:
    """Sends one wire message per call, authenticated by a credential provider.

    No retries happen here; a failed call is reported back in the SendResult.
    """

    def __init__(
        self,
        credential: CredentialProvider,
        config: GraphMailConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._credential = credential
        self._config = config or get_graph_mail_config()
        self._http_client = http_client

    async def _post(self, url: str, payload: dict) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, auth=self._credential)
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.request_timeout_seconds)
        ) as client:
            return await client.post(url, json=payload, auth=self._credential)

    async def dispatch(
        self,
        message: GraphMessage,
        save_sent_copy: bool,
        sender_address: str | None = None,
    ) -> SendResult:
        """Send ``message`` as ``sender_address`` (defaults to the message sender)."""
        sender = sender_address or message.from_.email_address.address
        url = self._config.send_mail_url(sender)
        payload = SendMailRequest(
            message=message,
            save_to_sent_items=save_sent_copy,
        ).to_wire()

        logger.info(
            "Sending mail",
            extra={
                "sender": sender,
                "save_to_sent_items": save_sent_copy,
                "attachments": len(message.attachments or []),
            },
        )

        try:
            response = await self._post(url, payload)
            if response.status_code >= 400:
                raise _transport_error(response)
        except GraphMailError as e:
            logger.error(
                "Mail send failed",
                extra={"sender": sender, "code": e.code, "error": e.message},
            )
            return SendResult.failure(e.message)
        except httpx.HTTPError as e:
            logger.exception(
                "HTTP error during mail send",
                extra={"sender": sender},
            )
            return SendResult.failure(f"HTTP error: {e!s}")

        message_id = _echoed_message_id(response)
        logger.info(
            "Mail accepted",
            extra={"sender": sender, "status_code": response.status_code, "message_id": message_id},
        )
        return SendResult.success(message_id)


def _transport_error(response: httpx.Response) -> TransportError:
    error_data: dict = {}
    if response.content:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            error_data = body["error"]

    return TransportError(
        message=error_data.get("message") or f"Mail API returned HTTP {response.status_code}",
        status_code=response.status_code,
        retry_after=response.headers.get("Retry-After"),
        details={"error_code": error_data.get("code"), "status_code": response.status_code},
    )


def _echoed_message_id(response: httpx.Response) -> str | None:
    # sendMail normally answers 202 with an empty body.
    if not response.content:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("id"):
        return str(body["id"])
    return None
