"""
Public entry point: translate a generic email and send it through Graph.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import anyio
import httpx

from graphmail.auth.credentials import (
    CredentialProvider,
    DeviceCodeCallback,
    TokenCallback,
    build_credential_provider,
)
from graphmail.config import GraphMailConfig, get_graph_mail_config
from graphmail.mail.dispatcher import GraphDispatcher
from graphmail.mail.models import EmailMessage, SendResult
from graphmail.mail.translator import translate
from graphmail.mail.wire import GraphMessage
from graphmail.shared.exceptions import SendCancelledError, ValidationError
from graphmail.shared.logging import get_logger

logger = get_logger(__name__)

CANCEL_POLL_INTERVAL_SECONDS = 0.05


class GraphSender:
    """Sends EmailMessage objects as a Graph user.

    Passing ``client_secret`` selects the application credential; omitting it
    selects the delegated (signed-in user) credential. The instance keeps no
    per-call state and is safe to share between concurrent callers.

    Cancellation is cooperative: ``cancel_event`` is polled while the request
    is in flight and, once set, the request is cancelled and the call returns
    a failure result.
    """

    def __init__(
        self,
        app_id: str,
        tenant_id: str,
        client_secret: str | None = None,
        save_sent_items: bool = False,
        *,
        config: GraphMailConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_callback: TokenCallback | None = None,
        on_device_code: DeviceCodeCallback | None = None,
    ) -> None:
        self._config = config or get_graph_mail_config()
        self._save_sent_items = save_sent_items
        self._credential = build_credential_provider(
            app_id,
            tenant_id,
            client_secret,
            config=self._config,
            http_client=http_client,
            token_callback=token_callback,
            on_device_code=on_device_code,
        )
        self._dispatcher = GraphDispatcher(
            self._credential,
            config=self._config,
            http_client=http_client,
        )

    @classmethod
    def from_config(cls, config: GraphMailConfig | None = None, **kwargs) -> GraphSender:
        cfg = config or get_graph_mail_config()
        return cls(
            cfg.app_id,
            cfg.tenant_id,
            cfg.client_secret or None,
            cfg.save_sent_items,
            config=cfg,
            **kwargs,
        )

    @property
    def credential(self) -> CredentialProvider:
        return self._credential

    async def send_async(
        self,
        email: EmailMessage,
        cancel_event: threading.Event | None = None,
    ) -> SendResult:
        try:
            message = translate(email)
        except (ValidationError, OSError) as e:
            logger.error("Mail translation failed", extra={"error": str(e)})
            return SendResult.failure(str(e))

        sender = email.from_address.email_address
        if cancel_event is None:
            return await self._dispatcher.dispatch(message, self._save_sent_items, sender)
        return await self._dispatch_cancellable(message, sender, cancel_event)

    def send(
        self,
        email: EmailMessage,
        cancel_event: threading.Event | None = None,
    ) -> SendResult:
        """Blocking send.

        Runs ``send_async`` on its own event loop in a worker thread, so it is
        safe to call from code that is itself running inside an event loop.
        An injected ``http_client`` must therefore not be bound to one loop.
        """
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="graphmail-send") as pool:
            future = pool.submit(anyio.run, self.send_async, email, cancel_event)
            return future.result()

    async def _dispatch_cancellable(
        self,
        message: GraphMessage,
        sender: str,
        cancel_event: threading.Event,
    ) -> SendResult:
        if cancel_event.is_set():
            return SendResult.failure(SendCancelledError().message)

        result: SendResult | None = None

        async with anyio.create_task_group() as tg:

            async def _run() -> None:
                nonlocal result
                result = await self._dispatcher.dispatch(message, self._save_sent_items, sender)
                tg.cancel_scope.cancel()

            async def _watch() -> None:
                while not cancel_event.is_set():
                    await anyio.sleep(CANCEL_POLL_INTERVAL_SECONDS)
                tg.cancel_scope.cancel()

            tg.start_soon(_run)
            tg.start_soon(_watch)

        if result is None:
            logger.warning("Mail send cancelled", extra={"sender": sender})
            return SendResult.failure(SendCancelledError().message)
        return result
