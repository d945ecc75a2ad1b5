"""
Completion daemon.

Serves AutoComplete and Exit requests on a TCP or unix-domain socket. Every
accepted connection gets its own asyncio task; a connection handles its
requests one after another until the client hangs up.

Each AutoComplete runs inside a fault boundary: whatever goes wrong while
analyzing, resolving or collecting is logged and answered with a single
sentinel candidate, so one broken request cannot take the daemon or any
other request down with it.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import socket
import stat
import time
from dataclasses import dataclass
from typing import Any, Union

from lsprotocol.types import ErrorCodes

from gocomplete.config import ServerConfig
from gocomplete.server.protocol import (
    AUTOCOMPLETE,
    EXIT,
    ProtocolError,
    encode_message,
    make_error,
    make_result,
    read_message,
    reply_to_result,
    request_from_params,
)
from gocomplete.suggest.candidate import FAULT_CANDIDATE
from gocomplete.suggest.suggest import AutoCompleteReply, AutoCompleteRequest, Suggester

logger = logging.getLogger(__name__)


class ServerError(Exception):
    """Raised when the daemon cannot start."""


@dataclass(frozen=True)
class Ok:
    reply: AutoCompleteReply


@dataclass(frozen=True)
class Fault:
    description: str


Outcome = Union[Ok, Fault]


async def run_guarded(suggester: Suggester, request: AutoCompleteRequest) -> Outcome:
    """Run one completion, turning any failure into a Fault."""
    try:
        return Ok(await suggester.suggest(request))
    except Exception as e:
        logger.exception("Completion failed for %s at %d", request.filename, request.cursor)
        return Fault(f"{type(e).__name__}: {e}")


def fault_reply() -> AutoCompleteReply:
    return AutoCompleteReply(candidates=(FAULT_CANDIDATE,), prefix_len=0)


class CompletionServer:
    """
    Asyncio completion daemon.

    Usage:
        server = CompletionServer(config, Suggester(resolver))
        await server.serve_forever()
    """

    def __init__(self, config: ServerConfig, suggester: Suggester):
        self.config = config
        self.suggester = suggester

        self._server: asyncio.AbstractServer | None = None
        self._stopped: asyncio.Event | None = None
        self._connections: set[asyncio.Task] = set()
        self._exit_handle: asyncio.TimerHandle | None = None
        self._signals: list[int] = []

    @property
    def address(self) -> str | tuple[str, int]:
        """Socket path, or the (host, port) actually bound."""
        if self.config.sock == "unix":
            return self.config.socket_path
        if self._server is None or not self._server.sockets:
            return self.config.host_port()
        host, port = self._server.sockets[0].getsockname()[:2]
        return host, port

    @property
    def running(self) -> bool:
        return self._server is not None and not (self._stopped and self._stopped.is_set())

    async def start(self) -> None:
        """Bind the listening socket."""
        self._stopped = asyncio.Event()
        try:
            if self.config.sock == "unix":
                self._remove_stale_socket(self.config.socket_path)
                self._server = await asyncio.start_unix_server(
                    self._handle_connection, path=self.config.socket_path
                )
            else:
                host, port = self.config.host_port()
                self._server = await asyncio.start_server(self._handle_connection, host, port)
        except OSError as e:
            raise ServerError(f"Cannot listen on {self.address}: {e}") from e

        logger.info("Listening on %s", self.address)

    @staticmethod
    def _remove_stale_socket(path: str) -> None:
        try:
            mode = os.stat(path).st_mode
        except FileNotFoundError:
            return
        if not stat.S_ISSOCK(mode):
            raise ServerError(f"{path} exists and is not a socket")

        probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            probe.connect(path)
        except (ConnectionRefusedError, FileNotFoundError):
            logger.debug("Removing stale socket %s", path)
            os.unlink(path)
            return
        finally:
            probe.close()
        raise ServerError(f"Another daemon is already listening on {path}")

    async def serve_forever(self, install_signal_handlers: bool = True) -> None:
        """Serve until shutdown() is called, a signal arrives or a client asks to exit."""
        if self._server is None:
            await self.start()
        if install_signal_handlers:
            self._install_signal_handlers()

        try:
            await self._stopped.wait()
        finally:
            await self.close()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.shutdown)
            except (NotImplementedError, RuntimeError):
                # Not in the main thread, or no signal support on this platform
                continue
            self._signals.append(sig)

    def shutdown(self) -> None:
        """Stop serving now. In-flight requests are not drained."""
        if self._stopped is not None and not self._stopped.is_set():
            logger.info("Shutting down")
            self._stopped.set()

    def request_exit(self) -> None:
        """Shut down after the configured grace period."""
        if self._exit_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._exit_handle = loop.call_later(self.config.exit_grace, self.shutdown)

    async def close(self) -> None:
        if self._exit_handle is not None:
            self._exit_handle.cancel()
            self._exit_handle = None

        loop = asyncio.get_running_loop()
        for sig in self._signals:
            loop.remove_signal_handler(sig)
        self._signals.clear()

        if self._server is not None:
            self._server.close()

        pending = [t for t in self._connections if t is not asyncio.current_task()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._server is not None:
            await self._server.wait_closed()
            self._server = None

        if self.config.sock == "unix":
            try:
                os.unlink(self.config.socket_path)
            except FileNotFoundError:
                pass

    async def _handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        task = asyncio.current_task()
        if task is not None:
            self._connections.add(task)

        try:
            while True:
                try:
                    message = await read_message(reader)
                except ProtocolError as e:
                    logger.debug("Malformed message: %s", e)
                    await self._send(writer, make_error(None, e.code, str(e)))
                    break
                except ConnectionError:
                    break

                if message is None:
                    break

                response = await self._dispatch(message)
                if not await self._send(writer, response):
                    break
        finally:
            if task is not None:
                self._connections.discard(task)
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def _send(self, writer: asyncio.StreamWriter, payload: dict[str, Any]) -> bool:
        """Deliver a message. False if the client is gone."""
        try:
            writer.write(encode_message(payload))
            await writer.drain()
        except (ConnectionError, OSError) as e:
            logger.debug("Client went away before the reply was delivered: %s", e)
            return False
        return True

    async def _dispatch(self, message: dict[str, Any]) -> dict[str, Any]:
        msg_id = message.get("id")
        method = message.get("method")

        if method == AUTOCOMPLETE:
            try:
                request = request_from_params(message.get("params"))
            except ProtocolError as e:
                return make_error(msg_id, e.code, str(e))
            reply = await self.auto_complete(request)
            return make_result(msg_id, reply_to_result(reply))

        if method == EXIT:
            self.request_exit()
            return make_result(msg_id, {})

        if not isinstance(method, str):
            return make_error(msg_id, ErrorCodes.InvalidRequest, "Missing method")
        return make_error(msg_id, ErrorCodes.MethodNotFound, f"Unknown method {method}")

    async def auto_complete(self, request: AutoCompleteRequest) -> AutoCompleteReply:
        """Answer one completion request. Never raises."""
        debug = self.config.debug
        if debug:
            cursor = min(max(request.cursor, 0), len(request.data))
            text = request.data[:cursor] + b"#" + request.data[cursor:]
            logger.debug("Got autocompletion request for '%s'", request.filename)
            logger.debug("Cursor at: %d", request.cursor)
            logger.debug(
                "\n%s\n%s\n%s", "-" * 55, text.decode("utf-8", errors="replace"), "-" * 55
            )

        started = time.monotonic()
        outcome = await run_guarded(self.suggester, request)
        if isinstance(outcome, Fault):
            reply = fault_reply()
        else:
            reply = outcome.reply

        if debug:
            logger.debug("Elapsed duration: %.3fs", time.monotonic() - started)
            logger.debug("Offset: %d", reply.prefix_len)
            logger.debug("Number of candidates found: %d", len(reply.candidates))
            for c in reply.candidates:
                logger.debug("  %s", c)
            logger.debug("=" * 55)

        return reply
