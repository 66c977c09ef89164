# n8n_gateway/server/runtime/sessions/registry.py
from __future__ import annotations

import base64
from typing import Any

from mcp.server.fastmcp.utilities.logging import get_logger

from n8n_gateway.client.connector import N8nConnector, normalize_base_url
from n8n_gateway.shared.exceptions import SessionError

logger = get_logger(__name__)


def session_id_for(base_url: str) -> str:
    """
    Derive the session (client) id for a backend URL.

    The id is the standard base64 encoding of the normalized URL: callers can
    rebuild it from the URL alone, and connecting twice to the same URL lands
    in the same registry slot. It is an address, not a secret.
    """
    return base64.b64encode(normalize_base_url(base_url).encode("utf-8")).decode("ascii")


class SessionRegistry:
    """
    Process-lifetime map of session id -> connector.

    - Sessions are registered only after a successful connectivity probe
      (the dispatch gateway enforces this).
    - Registering an existing id replaces the previous connector in place.
    - No expiry and no capacity bound. All access happens on the single event
      loop, so register/resolve never interleave mid-mutation.
    """

    def __init__(self) -> None:
        self._connectors: dict[str, N8nConnector] = {}

    # ---- registration -----------------------------------------------------

    def register(self, session_id: str, connector: N8nConnector) -> None:
        replaced = session_id in self._connectors
        self._connectors[session_id] = connector
        if replaced:
            logger.info("Replaced n8n session %s (%s)", session_id, connector.base_url)
        else:
            logger.info("Registered n8n session %s (%s)", session_id, connector.base_url)

    # ---- access -----------------------------------------------------------

    def get(self, session_id: Any) -> N8nConnector | None:
        if not isinstance(session_id, str) or not session_id:
            return None
        return self._connectors.get(session_id)

    def resolve(self, session_id: Any) -> N8nConnector:
        """Return the connector for `session_id` or raise SessionError."""
        connector = self.get(session_id)
        if connector is None:
            logger.debug("No n8n session for client id %r", session_id)
            raise SessionError(session_id)
        return connector

    def session_ids(self) -> list[str]:
        return list(self._connectors)

    def __contains__(self, session_id: object) -> bool:
        return isinstance(session_id, str) and session_id in self._connectors

    def __len__(self) -> int:
        return len(self._connectors)
