"""
Wire protocol between the completion client and the daemon.

JSON-RPC 2.0 messages framed with `Content-Length` headers, the same framing
LSP uses. Two methods exist:

    AutoComplete  params: {"filename", "data" (base64), "cursor", "builtin",
                           "context": {"env", "build_flags"}}
                  result: {"candidates": [{"class", "name", "type"}], "len"}
    Exit          params: {}    result: {}
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from typing import Any

from lsprotocol.types import ErrorCodes

from gocomplete.resolver.base import PackedContext
from gocomplete.suggest.candidate import Candidate
from gocomplete.suggest.suggest import AutoCompleteReply, AutoCompleteRequest

AUTOCOMPLETE = "AutoComplete"
EXIT = "Exit"

# Refuse frames larger than this many bytes
MAX_CONTENT_LENGTH = 64 * 1024 * 1024


class ProtocolError(Exception):
    """Malformed frame, envelope or parameters."""

    def __init__(self, message: str, code: int = ErrorCodes.InvalidRequest):
        super().__init__(message)
        self.code = int(code)


def encode_message(payload: dict[str, Any]) -> bytes:
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def _parse_content_length(header_blob: bytes) -> int:
    header_text = header_blob.decode("ascii", errors="ignore")

    for raw_line in header_text.split("\r\n"):
        if ":" not in raw_line:
            continue
        key, value = raw_line.split(":", 1)
        if key.strip().lower() != "content-length":
            continue
        try:
            content_length = int(value.strip())
        except ValueError as e:
            raise ProtocolError(f"Invalid Content-Length: {value.strip()!r}") from e
        if not 0 <= content_length <= MAX_CONTENT_LENGTH:
            raise ProtocolError(f"Content-Length out of range: {content_length}")
        return content_length

    raise ProtocolError("Missing Content-Length header")


async def read_message(reader: asyncio.StreamReader) -> dict[str, Any] | None:
    """
    Read one framed message.

    Returns:
        The decoded JSON object, or None at end of stream

    Raises:
        ProtocolError: If the frame or its JSON body is malformed
    """
    try:
        header_blob = await reader.readuntil(b"\r\n\r\n")
    except asyncio.IncompleteReadError as e:
        if not e.partial.strip():
            return None
        raise ProtocolError("Connection closed inside a message header") from e
    except asyncio.LimitOverrunError as e:
        raise ProtocolError("Message header too long") from e

    length = _parse_content_length(header_blob[:-4])
    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError as e:
        raise ProtocolError("Connection closed inside a message body") from e

    try:
        decoded = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON body: {e}", ErrorCodes.ParseError) from e

    if not isinstance(decoded, dict):
        raise ProtocolError("Message must be a JSON object")
    return decoded


def make_request(msg_id: int, method: str, params: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "method": method, "params": params}


def make_result(msg_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": msg_id, "result": result}


def make_error(msg_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": msg_id,
        "error": {"code": int(code), "message": message},
    }


def request_to_params(request: AutoCompleteRequest) -> dict[str, Any]:
    return {
        "filename": request.filename,
        "data": base64.b64encode(request.data).decode("ascii"),
        "cursor": request.cursor,
        "builtin": request.builtin,
        "context": {
            "env": list(request.context.env),
            "build_flags": list(request.context.build_flags),
        },
    }


def request_from_params(params: Any) -> AutoCompleteRequest:
    """Decode AutoComplete params. Raises ProtocolError with InvalidParams."""
    if not isinstance(params, dict):
        raise ProtocolError("AutoComplete params must be an object", ErrorCodes.InvalidParams)

    try:
        context = params.get("context") or {}
        cursor = params["cursor"]
        if not isinstance(cursor, int) or isinstance(cursor, bool):
            raise TypeError("cursor must be an integer")
        return AutoCompleteRequest(
            filename=str(params.get("filename", "")),
            data=base64.b64decode(params.get("data", ""), validate=True),
            cursor=cursor,
            context=PackedContext(
                env=tuple(context.get("env") or ()),
                build_flags=tuple(context.get("build_flags") or ()),
            ),
            builtin=bool(params.get("builtin", False)),
        )
    except (KeyError, TypeError, AttributeError, binascii.Error) as e:
        raise ProtocolError(f"Invalid AutoComplete params: {e}", ErrorCodes.InvalidParams) from e


def reply_to_result(reply: AutoCompleteReply) -> dict[str, Any]:
    return {
        "candidates": [c.to_dict() for c in reply.candidates],
        "len": reply.prefix_len,
    }


def reply_from_result(result: Any) -> AutoCompleteReply:
    if not isinstance(result, dict):
        raise ProtocolError("AutoComplete result must be an object")
    try:
        return AutoCompleteReply(
            candidates=tuple(Candidate.from_dict(c) for c in result.get("candidates") or []),
            prefix_len=int(result.get("len", 0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ProtocolError(f"Invalid AutoComplete result: {e}") from e
