"""
Pydantic models for the Graph message resource (the subset used to send mail).

Field names are snake_case in Python and camelCase on the wire. Unset
optional collections are omitted when serialised, so "no Cc recipients" never
becomes ``"ccRecipients": []``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GraphModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class EmailAddress(GraphModel):
    address: str
    name: str | None = None


class Recipient(GraphModel):
    email_address: EmailAddress


class ItemBody(GraphModel):
    content_type: Literal["html", "text"] = "text"
    content: str = ""


class FileAttachment(GraphModel):
    """File attachment; content_bytes is base64 text."""

    odata_type: str = Field(
        default="#microsoft.graph.fileAttachment",
        alias="@odata.type",
    )
    name: str
    content_type: str | None = None
    content_bytes: str
    is_inline: bool = False
    content_id: str | None = None


class InternetMessageHeader(GraphModel):
    name: str
    value: str


class GraphMessage(GraphModel):
    """Outgoing message resource."""

    subject: str = ""
    body: ItemBody = Field(default_factory=ItemBody)
    from_: Recipient = Field(alias="from")
    to_recipients: list[Recipient] | None = None
    cc_recipients: list[Recipient] | None = None
    bcc_recipients: list[Recipient] | None = None
    reply_to: list[Recipient] | None = None
    attachments: list[FileAttachment] | None = None
    internet_message_headers: list[InternetMessageHeader] | None = None
    importance: Literal["low", "normal", "high"] = "normal"


class SendMailRequest(GraphModel):
    """Body of POST /users/{id}/sendMail."""

    message: GraphMessage
    save_to_sent_items: bool = False
