# n8n_gateway/__init__.py
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("n8n-gateway")
except PackageNotFoundError:
    __version__ = "0.0.0"
