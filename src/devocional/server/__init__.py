"""HTTP admin server."""

from devocional.server.app import DevocionalServer, create_app
from devocional.server.runner import ServerRunner

__all__ = [
    "DevocionalServer",
    "ServerRunner",
    "create_app",
]
