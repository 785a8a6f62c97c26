"""
Graph mail sender.

Translates provider-agnostic email messages into Microsoft Graph sendMail
requests and dispatches them with an application or delegated credential.
"""

from graphmail.mail.models import Address, Attachment, EmailMessage, Priority, SendResult
from graphmail.mail.sender import GraphSender

__all__ = [
    "Address",
    "Attachment",
    "EmailMessage",
    "GraphSender",
    "Priority",
    "SendResult",
]
