# n8n_gateway/server/runtime/server.py
from __future__ import annotations as _annotations

from typing import Any, Literal

import anyio
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.applications import Starlette
from starlette.routing import Route
from starlette.types import Receive, Scope, Send

import mcp.types as types
from mcp.server.fastmcp.utilities.logging import configure_logging, get_logger
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager

from n8n_gateway import __version__
from n8n_gateway.client.connector import N8nConnector
from n8n_gateway.server.runtime.gateway import ConnectorFactory, DispatchGateway
from n8n_gateway.server.runtime.operations import CONNECT_OPERATION, OperationCatalog
from n8n_gateway.server.runtime.sessions import SessionRegistry, session_id_for
from n8n_gateway.shared._httpx_utils import DEFAULT_TIMEOUT_SECONDS
from n8n_gateway.types import OperationResult

logger = get_logger(__name__)

SERVER_NAME = "n8n-integration"
TRANSPORTS = ("stdio", "streamable-http")


class Settings(BaseSettings):
    """Gateway settings.

    All settings can be configured via environment variables with the prefix N8N_GATEWAY_.
    For example, N8N_GATEWAY_API_URL=https://n8n.example.com seeds a default session.
    """

    model_config = SettingsConfigDict(
        env_prefix="N8N_GATEWAY_",
        env_file=".env",
        extra="ignore",
    )

    # Server settings
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Default backend session (both must be set)
    api_url: str | None = None
    api_key: SecretStr | None = None

    # Backend calls
    http_timeout: float = DEFAULT_TIMEOUT_SECONDS
    """Transport timeout in seconds for every backend request."""

    # Transport settings
    transport: Literal["stdio", "streamable-http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000
    streamable_http_path: str = "/mcp"
    json_response: bool = False
    stateless_http: bool = False
    """Define if the server should create a new transport per request."""

    @property
    def default_session_configured(self) -> bool:
        return bool(self.api_url) and self.api_key is not None


def to_call_tool_result(result: OperationResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.isError,
    )


class N8nGateway:
    """MCP server exposing the n8n administrative API as tools."""

    def __init__(
        self,
        name: str = SERVER_NAME,
        *,
        settings: Settings | None = None,
        registry: SessionRegistry | None = None,
        catalog: OperationCatalog | None = None,
        connector_factory: ConnectorFactory | None = None,
        **settings_overrides: Any,
    ):
        self.settings = settings if settings is not None else Settings(**settings_overrides)
        self._gateway = DispatchGateway(
            registry=registry,
            catalog=catalog,
            connector_factory=connector_factory or self._make_connector,
        )
        self._mcp_server = Server(
            name=name,
            version=__version__,
            instructions=self._instructions(),
        )
        self._session_manager: StreamableHTTPSessionManager | None = None

        self._setup_handlers()

        # Configure logging
        configure_logging(self.settings.log_level)

    @property
    def name(self) -> str:
        return self._mcp_server.name

    @property
    def gateway(self) -> DispatchGateway:
        return self._gateway

    @property
    def registry(self) -> SessionRegistry:
        return self._gateway.registry

    @property
    def catalog(self) -> OperationCatalog:
        return self._gateway.catalog

    @property
    def mcp_server(self) -> Server:
        return self._mcp_server

    @property
    def session_manager(self) -> StreamableHTTPSessionManager:
        """Get the StreamableHTTP session manager.

        Raises:
            RuntimeError: If called before streamable_http_app() has been called.
        """
        if self._session_manager is None:
            raise RuntimeError(
                "Session manager can only be accessed after "
                "calling streamable_http_app(). "
                "The session manager is created lazily "
                "to avoid unnecessary initialization."
            )
        return self._session_manager

    def _instructions(self) -> str:
        text = (
            f"Call {CONNECT_OPERATION} with the n8n url and apiKey first, then pass the returned "
            "clientId to every other tool."
        )
        if self.settings.default_session_configured:
            assert self.settings.api_url is not None
            text += (
                f" A default connection to {self.settings.api_url} is preconfigured "
                f"with clientId {session_id_for(self.settings.api_url)}."
            )
        return text

    def _make_connector(self, url: str, api_key: str) -> N8nConnector:
        return N8nConnector(url, api_key, timeout=self.settings.http_timeout)

    def _setup_handlers(self) -> None:
        """Set up the MCP tool handlers."""
        self._mcp_server.list_tools()(self._list_tools)
        # Arguments are validated by the dispatch gateway, not the MCP layer.
        self._mcp_server.call_tool(validate_input=False)(self._call_tool)

    async def _list_tools(self) -> list[types.Tool]:
        return [
            types.Tool(
                name=d.name,
                description=d.description,
                inputSchema=d.inputSchema,
                annotations=types.ToolAnnotations(readOnlyHint=not d.mutating),
            )
            for d in self.catalog.list_descriptors()
        ]

    async def _call_tool(self, name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        result = await self._gateway.dispatch(name, arguments)
        return to_call_tool_result(result)

    async def seed_default_session(self) -> str | None:
        """Probe and register the session configured through the environment, if any."""
        if not self.settings.default_session_configured:
            return None
        assert self.settings.api_url is not None and self.settings.api_key is not None
        return await self._gateway.seed_session(
            self.settings.api_url,
            self.settings.api_key.get_secret_value(),
        )

    def run(self, transport: Literal["stdio", "streamable-http"] | None = None) -> None:
        """Run the gateway. Note this is a synchronous function.

        Args:
            transport: Transport protocol to use ("stdio" or "streamable-http").
                Defaults to the configured transport.
        """
        transport = transport or self.settings.transport
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport: {transport}")

        match transport:
            case "stdio":
                anyio.run(self.run_stdio_async)
            case "streamable-http":
                anyio.run(self.run_streamable_http_async)

    async def run_stdio_async(self) -> None:
        """Run the server using stdio transport."""
        await self.seed_default_session()
        async with stdio_server() as (read_stream, write_stream):
            await self._mcp_server.run(
                read_stream,
                write_stream,
                self._mcp_server.create_initialization_options(),
            )

    async def run_streamable_http_async(self) -> None:
        """Run the server using StreamableHTTP transport."""
        import uvicorn

        await self.seed_default_session()
        starlette_app = self.streamable_http_app()

        config = uvicorn.Config(
            starlette_app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        server = uvicorn.Server(config)
        await server.serve()

    def streamable_http_app(self) -> Starlette:
        """Return an instance of the StreamableHTTP server app."""
        # Create session manager on first call (lazy initialization)
        if self._session_manager is None:
            self._session_manager = StreamableHTTPSessionManager(
                app=self._mcp_server,
                json_response=self.settings.json_response,
                stateless=self.settings.stateless_http,
            )

        routes = [
            Route(
                self.settings.streamable_http_path,
                endpoint=StreamableHTTPASGIApp(self._session_manager),
            )
        ]

        return Starlette(
            debug=self.settings.debug,
            routes=routes,
            lifespan=lambda app: self.session_manager.run(),
        )


class StreamableHTTPASGIApp:
    """
    ASGI application for Streamable HTTP server transport.
    """

    def __init__(self, session_manager: StreamableHTTPSessionManager):
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)
