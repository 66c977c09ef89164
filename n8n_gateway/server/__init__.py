# n8n_gateway/server/__init__.py
from .runtime import DispatchGateway, N8nGateway, Settings

__all__ = ["DispatchGateway", "N8nGateway", "Settings"]
