"""
Tests for the sendMail dispatcher.
"""

import json

import httpx
import pytest
import respx

from conftest import SEND_URL, TOKEN_URL, token_response
from graphmail.auth.credentials import ApplicationCredentialProvider
from graphmail.config import GraphMailConfig
from graphmail.mail.dispatcher import GraphDispatcher
from graphmail.mail.models import EmailMessage
from graphmail.mail.translator import translate
from graphmail.mail.wire import GraphMessage


@pytest.fixture
def dispatcher(
    app_credential: ApplicationCredentialProvider, graph_config: GraphMailConfig
) -> GraphDispatcher:
    return GraphDispatcher(app_credential, config=graph_config)


@pytest.fixture
def wire_message(simple_email: EmailMessage) -> GraphMessage:
    return translate(simple_email)


class TestDispatchSuccess:
    @pytest.mark.asyncio
    @respx.mock
    async def test_accepted_without_echoed_id(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response("app-token"))
        send = respx.post(SEND_URL).mock(return_value=httpx.Response(202))

        result = await dispatcher.dispatch(wire_message, save_sent_copy=True)

        assert result.message_id == ""
        assert result.error_messages is None
        assert send.call_count == 1
        request = send.calls.last.request
        assert request.headers["Authorization"] == "Bearer app-token"
        body = json.loads(request.content)
        assert body["saveToSentItems"] is True
        assert body["message"]["subject"] == "Hi"

    @pytest.mark.asyncio
    @respx.mock
    async def test_echoed_id_is_returned(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.post(SEND_URL).mock(return_value=httpx.Response(202, json={"id": "msg-1"}))

        result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.message_id == "msg-1"

    @pytest.mark.asyncio
    @respx.mock
    async def test_uses_injected_client(
        self,
        app_credential: ApplicationCredentialProvider,
        graph_config: GraphMailConfig,
        wire_message: GraphMessage,
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response())
        send = respx.post(SEND_URL).mock(return_value=httpx.Response(202))

        async with httpx.AsyncClient(headers={"X-Client": "injected"}) as client:
            dispatcher = GraphDispatcher(app_credential, config=graph_config, http_client=client)
            result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.successful
        assert send.calls.last.request.headers["X-Client"] == "injected"


class TestDispatchFailure:
    @pytest.mark.asyncio
    @respx.mock
    async def test_graph_error_payload_is_normalised(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.post(SEND_URL).mock(
            return_value=httpx.Response(
                400,
                json={
                    "error": {
                        "code": "ErrorInvalidRecipients",
                        "message": "At least one recipient is not valid.",
                    }
                },
            )
        )

        result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.message_id is None
        assert result.error_messages == ["At least one recipient is not valid."]

    @pytest.mark.asyncio
    @respx.mock
    async def test_throttling_without_body(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response())
        send = respx.post(SEND_URL).mock(
            return_value=httpx.Response(429, headers={"Retry-After": "10"})
        )

        result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.error_messages == ["Mail API returned HTTP 429"]
        assert send.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_failure(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(return_value=token_response())
        respx.post(SEND_URL).mock(side_effect=httpx.ConnectError("Connection refused"))

        result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.error_messages is not None
        assert len(result.error_messages) == 1
        assert "Connection refused" in result.error_messages[0]

    @pytest.mark.asyncio
    @respx.mock
    async def test_auth_failure_aborts_the_call(
        self, dispatcher: GraphDispatcher, wire_message: GraphMessage
    ) -> None:
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(
                401,
                json={"error": "invalid_client", "error_description": "Invalid client secret"},
            )
        )
        send = respx.post(SEND_URL).mock(return_value=httpx.Response(202))

        result = await dispatcher.dispatch(wire_message, save_sent_copy=False)

        assert result.error_messages == ["Invalid client secret"]
        assert send.call_count == 0
