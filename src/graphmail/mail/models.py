"""
Provider-agnostic email model and the normalised send result.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO


class Priority(str, Enum):
    """Message priority as set by the composer."""

    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"
    UNSPECIFIED = "unspecified"


@dataclass(frozen=True)
class Address:
    """Email address with an optional display name."""

    email_address: str
    name: str | None = None

    def __str__(self) -> str:
        return self.email_address


@dataclass(frozen=True)
class Attachment:
    """Attachment whose content is an open binary stream of unknown length."""

    filename: str
    data: BinaryIO
    content_type: str = "application/octet-stream"
    is_inline: bool = False
    content_id: str | None = None


@dataclass(frozen=True)
class EmailMessage:
    """Email as produced by the composing code, before any vendor mapping."""

    from_address: Address
    subject: str = ""
    body: str = ""
    is_html: bool = False
    to: Sequence[Address] | None = None
    cc: Sequence[Address] | None = None
    bcc: Sequence[Address] | None = None
    reply_to: Sequence[Address] | None = None
    attachments: Sequence[Attachment] | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    priority: Priority = Priority.NORMAL


@dataclass
class SendResult:
    """Outcome of one send call.

    Exactly one of ``message_id`` and ``error_messages`` is set. A success
    where the service echoed no identifier carries an empty ``message_id``.
    """

    message_id: str | None = None
    error_messages: list[str] | None = None

    def __post_init__(self) -> None:
        if (self.message_id is None) == (self.error_messages is None):
            raise ValueError("SendResult needs exactly one of message_id or error_messages")
        if self.error_messages is not None and not self.error_messages:
            raise ValueError("error_messages must not be empty")

    @property
    def successful(self) -> bool:
        return not self.error_messages

    @classmethod
    def success(cls, message_id: str | None = None) -> SendResult:
        return cls(message_id=message_id or "")

    @classmethod
    def failure(cls, error: str) -> SendResult:
        return cls(error_messages=[error or "Unknown error"])
