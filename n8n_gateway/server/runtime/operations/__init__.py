from .base import Operation, OperationArgs
from .builtin import CONNECT_OPERATION, build_catalog, register_builtin_operations
from .catalog import OperationCatalog

__all__ = [
    "CONNECT_OPERATION",
    "Operation",
    "OperationArgs",
    "OperationCatalog",
    "build_catalog",
    "register_builtin_operations",
]
