# n8n_gateway/server/runtime/gateway.py
from __future__ import annotations as _annotations

from typing import Any, Callable

from mcp.server.fastmcp.utilities.logging import get_logger

from n8n_gateway.client.connector import N8nConnector
from n8n_gateway.server.runtime.operations import OperationCatalog, build_catalog
from n8n_gateway.server.runtime.operations.base import SESSION_ARGUMENT, Operation
from n8n_gateway.server.runtime.operations.builtin import ConnectArgs
from n8n_gateway.server.runtime.sessions import SessionRegistry, session_id_for
from n8n_gateway.shared.exceptions import GatewayError, UnknownError
from n8n_gateway.types import OperationResult

logger = get_logger(__name__)

ConnectorFactory = Callable[[str, str], N8nConnector]


class DispatchGateway:
    """Dispatches operation calls to the connector of the right session.

    Per call: validate -> resolve session (or connect) -> invoke -> wrap.
    Every call yields exactly one OperationResult; nothing raises past
    `dispatch`.
    """

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        catalog: OperationCatalog | None = None,
        connector_factory: ConnectorFactory | None = None,
    ):
        self.registry = registry if registry is not None else SessionRegistry()
        self.catalog = catalog if catalog is not None else build_catalog()
        self._connector_factory: ConnectorFactory = connector_factory or N8nConnector

    async def dispatch(self, name: str, arguments: dict[str, Any] | None) -> OperationResult:
        """Run one operation and return its response envelope."""
        logger.info("Dispatching operation %s", name)
        try:
            op = self.catalog.resolve(name)
            args = op.validate_arguments(arguments)
            if isinstance(args, ConnectArgs):
                return await self.connect(args.url, args.api_key)
            return await self._invoke(op, args, (arguments or {}).get(SESSION_ARGUMENT))
        except GatewayError as err:
            logger.info("Operation %s failed: %s", name, err.to_text())
            return OperationResult.failure(err.to_text())
        except Exception as e:
            logger.exception("Unexpected error while dispatching %s", name)
            return OperationResult.failure(UnknownError.from_exception(e).to_text())

    async def _invoke(self, op: Operation, args: Any, session_id: Any) -> OperationResult:
        connector = self.registry.resolve(session_id)
        if op.invoke is None:
            raise UnknownError(f"Operation {op.name} has no invoker")
        return await op.invoke(connector, args)

    async def connect(self, url: str, api_key: str) -> OperationResult:
        """Probe a backend and register it as a session.

        Raises the connector's GatewayError on probe failure; nothing is
        registered in that case.
        """
        connector = self._connector_factory(url, api_key)
        # Probe with a benign read before anything is registered.
        await connector.list_workflows()
        session_id = session_id_for(url)
        self.registry.register(session_id, connector)
        return OperationResult.confirmation(
            f"Successfully connected to n8n at {url}. Use this client ID for future operations: {session_id}",
            {"clientId": session_id},
        )

    async def seed_session(self, url: str, api_key: str) -> str | None:
        """Register a default session at start-up. Returns its id, or None if the probe failed."""
        try:
            await self.connect(url, api_key)
        except GatewayError as err:
            logger.warning("Default n8n session for %s not registered: %s", url, err.to_text())
            return None
        except Exception:
            logger.exception("Default n8n session for %s not registered", url)
            return None
        return session_id_for(url)
