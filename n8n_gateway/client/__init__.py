from .connector import N8nConnector

__all__ = ["N8nConnector"]
