"""
Client side of the daemon protocol.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any

from gocomplete.config import ServerConfig
from gocomplete.server.protocol import (
    AUTOCOMPLETE,
    EXIT,
    ProtocolError,
    encode_message,
    make_request,
    read_message,
    reply_from_result,
    request_to_params,
)
from gocomplete.suggest.suggest import AutoCompleteReply, AutoCompleteRequest

logger = logging.getLogger(__name__)


class CompletionClient:
    """
    Talks to a running completion daemon.

    Usage:
        client = CompletionClient(config)
        reply = await client.auto_complete(request)
    """

    def __init__(self, config: ServerConfig, timeout: float = 30.0):
        self.config = config
        self.timeout = timeout
        self._ids = itertools.count(1)

    async def _connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if self.config.sock == "unix":
            return await asyncio.open_unix_connection(self.config.socket_path)
        host, port = self.config.host_port()
        return await asyncio.open_connection(host, port)

    async def call(self, method: str, params: dict[str, Any]) -> Any:
        """
        Send one request on a fresh connection and wait for its result.

        Raises:
            OSError: If the daemon cannot be reached
            ProtocolError: If the daemon answers with an error or garbage
        """
        reader, writer = await self._connect()
        try:
            msg_id = next(self._ids)
            writer.write(encode_message(make_request(msg_id, method, params)))
            await writer.drain()

            response = await asyncio.wait_for(read_message(reader), timeout=self.timeout)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

        if response is None:
            raise ProtocolError("Daemon closed the connection without answering")
        if "error" in response:
            error = response["error"] or {}
            raise ProtocolError(
                str(error.get("message", "unknown error")),
                error.get("code", 0),
            )
        return response.get("result")

    async def auto_complete(self, request: AutoCompleteRequest) -> AutoCompleteReply:
        result = await self.call(AUTOCOMPLETE, request_to_params(request))
        return reply_from_result(result)

    async def exit(self) -> None:
        """Ask the daemon to shut down."""
        await self.call(EXIT, {})
