"""
Maps the provider-agnostic EmailMessage onto the Graph message resource.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping, Sequence
from contextlib import ExitStack, closing
from typing import BinaryIO

from graphmail.mail.models import Address, Attachment, EmailMessage, Priority
from graphmail.mail.wire import (
    EmailAddress,
    FileAttachment,
    GraphMessage,
    InternetMessageHeader,
    ItemBody,
    Recipient,
)
from graphmail.shared.exceptions import ValidationError

READ_CHUNK_SIZE = 64 * 1024

IMPORTANCE_MAP: dict[Priority, str] = {
    Priority.HIGH: "high",
    Priority.NORMAL: "normal",
    Priority.LOW: "low",
}


def translate(email: EmailMessage) -> GraphMessage:
    """Build the wire message for one send attempt.

    Raises:
        ValidationError: If the sender address is missing or an attachment
            stream is closed or not a binary stream.
        OSError: If an attachment stream cannot be read.
    """
    sender = email.from_address
    if sender is None or not str(sender):
        raise ValidationError("Sender address is required")

    return GraphMessage(
        subject=email.subject,
        body=ItemBody(
            content=email.body,
            content_type="html" if email.is_html else "text",
        ),
        from_=_sender(sender),
        to_recipients=_recipients(email.to),
        cc_recipients=_recipients(email.cc),
        bcc_recipients=_recipients(email.bcc),
        reply_to=_recipients(email.reply_to),
        attachments=_attachments(email.attachments),
        internet_message_headers=_headers(email.headers),
        importance=map_importance(email.priority),
    )


def map_importance(priority: Priority | None) -> str:
    """Unknown or unspecified priorities fall back to normal."""
    return IMPORTANCE_MAP.get(priority, "normal")  # type: ignore[arg-type]


def _recipient(address: Address) -> Recipient:
    return Recipient(
        email_address=EmailAddress(address=str(address), name=address.name),
    )


def _sender(address: Address) -> Recipient:
    return Recipient(
        email_address=EmailAddress(address=str(address), name=address.name or str(address)),
    )


def _recipients(addresses: Sequence[Address] | None) -> list[Recipient] | None:
    if not addresses:
        return None
    return [_recipient(a) for a in addresses]


def _attachments(attachments: Sequence[Attachment] | None) -> list[FileAttachment] | None:
    if not attachments:
        return None
    # Every stream is closed, including those after one that fails to read.
    with ExitStack() as stack:
        for a in attachments:
            stack.enter_context(closing(a.data))
        return [
            FileAttachment(
                name=a.filename,
                content_type=a.content_type,
                content_bytes=base64.b64encode(_read_attachment(a)).decode("ascii"),
                is_inline=a.is_inline,
                content_id=a.content_id,
            )
            for a in attachments
        ]


def _read_attachment(attachment: Attachment) -> bytes:
    try:
        return read_stream(attachment.data)
    except (ValueError, TypeError) as e:
        raise ValidationError(
            f"Attachment {attachment.filename} could not be read: {e!s}",
            details={"filename": attachment.filename},
        ) from e


def _headers(headers: Mapping[str, str] | None) -> list[InternetMessageHeader] | None:
    if not headers:
        return None
    return [InternetMessageHeader(name=k, value=v) for k, v in headers.items()]


def read_stream(stream: BinaryIO) -> bytes:
    """Read a stream of unknown length to end of stream."""
    buffer = bytearray()
    while chunk := stream.read(READ_CHUNK_SIZE):
        buffer.extend(chunk)
    return bytes(buffer)
