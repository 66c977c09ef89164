# n8n_gateway/server/runtime/__init__.py
from .gateway import DispatchGateway
from .server import N8nGateway, Settings

__all__ = ["DispatchGateway", "N8nGateway", "Settings"]
