"""Completion daemon and its client."""

from .client import CompletionClient
from .protocol import ProtocolError
from .server import (
    CompletionServer,
    Fault,
    Ok,
    ServerError,
    run_guarded,
)

__all__ = [
    "CompletionClient",
    "CompletionServer",
    "Fault",
    "Ok",
    "ProtocolError",
    "ServerError",
    "run_guarded",
]
