"""
Graph sender factory.

Single source of truth for configuration:
- use GraphMailConfig (Pydantic Settings) which loads from OS env + .env
- never read raw os.getenv("GRAPH_MAIL_*") here
"""

from __future__ import annotations

from functools import lru_cache

from graphmail.config import get_graph_mail_config
from graphmail.mail.sender import GraphSender
from graphmail.shared.logging import get_logger

logger = get_logger(__name__)


def _mask(s: str, keep: int = 6) -> str:
    if not s:
        return ""
    if len(s) <= keep:
        return "*" * len(s)
    return f"{s[:keep]}***"


@lru_cache(maxsize=1)
def get_graph_sender() -> GraphSender:
    """Create and cache the sender using GraphMailConfig."""
    cfg = get_graph_mail_config()

    if not cfg.app_id or not cfg.tenant_id:
        raise ValueError("GRAPH_MAIL_APP_ID and GRAPH_MAIL_TENANT_ID must be set")

    logger.info(
        "Graph mail config resolved",
        extra={
            "credential": "application" if cfg.uses_application_credential else "delegated",
            "app_id": _mask(cfg.app_id),
            "tenant_id": _mask(cfg.tenant_id),
            "client_secret": _mask(cfg.client_secret, keep=0),
            "save_sent_items": cfg.save_sent_items,
            "graph_base_url": cfg.graph_base_url,
        },
    )

    return GraphSender.from_config(cfg)
