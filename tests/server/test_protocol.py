"""
Tests for gocomplete/server/protocol.py
"""
from __future__ import annotations

import asyncio
import base64
import json

import pytest
from lsprotocol.types import ErrorCodes

from gocomplete.resolver.base import PackedContext
from gocomplete.server.protocol import (
    ProtocolError,
    encode_message,
    make_error,
    make_request,
    make_result,
    read_message,
    reply_from_result,
    reply_to_result,
    request_from_params,
    request_to_params,
)
from gocomplete.suggest.candidate import Candidate, CandidateClass
from gocomplete.suggest.suggest import AutoCompleteReply, AutoCompleteRequest


def reader_for(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


# =============================================================================
# Framing
# =============================================================================


class TestFraming:
    def test_encode_message(self):
        frame = encode_message({"a": 1})

        assert frame == b'Content-Length: 7\r\n\r\n{"a":1}'

    def test_encode_counts_bytes(self):
        frame = encode_message({"s": "é"})
        header, body = frame.split(b"\r\n\r\n", 1)

        assert header == f"Content-Length: {len(body)}".encode()

    @pytest.mark.asyncio
    async def test_read_message(self):
        reader = reader_for(encode_message({"id": 1}) + encode_message({"id": 2}))

        assert await read_message(reader) == {"id": 1}
        assert await read_message(reader) == {"id": 2}
        assert await read_message(reader) is None

    @pytest.mark.asyncio
    async def test_header_is_case_insensitive(self):
        reader = reader_for(b'content-length: 2\r\nX-Other: 1\r\n\r\n{}')

        assert await read_message(reader) == {}

    @pytest.mark.asyncio
    async def test_clean_eof(self):
        assert await read_message(reader_for(b"")) is None

    @pytest.mark.asyncio
    async def test_eof_inside_header(self):
        with pytest.raises(ProtocolError):
            await read_message(reader_for(b"Content-Length: 10"))

    @pytest.mark.asyncio
    async def test_eof_inside_body(self):
        with pytest.raises(ProtocolError):
            await read_message(reader_for(b"Content-Length: 10\r\n\r\n{}"))

    @pytest.mark.asyncio
    async def test_missing_content_length(self):
        with pytest.raises(ProtocolError, match="Missing Content-Length"):
            await read_message(reader_for(b"X-Other: 1\r\n\r\n{}"))

    @pytest.mark.asyncio
    async def test_invalid_content_length(self):
        with pytest.raises(ProtocolError, match="Invalid Content-Length"):
            await read_message(reader_for(b"Content-Length: ten\r\n\r\n{}"))

    @pytest.mark.asyncio
    async def test_negative_content_length(self):
        with pytest.raises(ProtocolError, match="out of range"):
            await read_message(reader_for(b"Content-Length: -1\r\n\r\n"))

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        with pytest.raises(ProtocolError) as exc_info:
            await read_message(reader_for(b"Content-Length: 3\r\n\r\n{x}"))

        assert exc_info.value.code == ErrorCodes.ParseError

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        with pytest.raises(ProtocolError, match="JSON object"):
            await read_message(reader_for(b"Content-Length: 2\r\n\r\n[]"))


# =============================================================================
# Envelopes
# =============================================================================


class TestEnvelopes:
    def test_make_request(self):
        assert make_request(3, "Exit", {}) == {
            "jsonrpc": "2.0",
            "id": 3,
            "method": "Exit",
            "params": {},
        }

    def test_make_result(self):
        assert make_result(3, {}) == {"jsonrpc": "2.0", "id": 3, "result": {}}

    def test_make_error(self):
        error = make_error(None, ErrorCodes.MethodNotFound, "nope")

        assert error["id"] is None
        assert error["error"] == {"code": -32601, "message": "nope"}

    def test_protocol_error_default_code(self):
        assert ProtocolError("x").code == ErrorCodes.InvalidRequest


# =============================================================================
# AutoComplete Params and Results
# =============================================================================


class TestParams:
    def test_request_params(self):
        request = AutoCompleteRequest(
            filename="main.go",
            data=b"foo.\xff",
            cursor=4,
            context=PackedContext(env=("A=1",), build_flags=("-x",)),
            builtin=True,
        )

        params = request_to_params(request)

        assert base64.b64decode(params["data"]) == b"foo.\xff"
        assert params["context"] == {"env": ["A=1"], "build_flags": ["-x"]}
        json.dumps(params)

    def test_request_params_decode(self):
        request = AutoCompleteRequest(
            filename="main.go",
            data=b"x := y.",
            cursor=7,
            context=PackedContext(env=("GOOS=linux",)),
        )

        assert request_from_params(request_to_params(request)) == request

    def test_defaults(self):
        request = request_from_params({"cursor": 0})

        assert request == AutoCompleteRequest(filename="", data=b"", cursor=0)

    @pytest.mark.parametrize(
        "params",
        [
            None,
            [],
            {},
            {"cursor": "3"},
            {"cursor": True},
            {"cursor": 1, "data": "***"},
            {"cursor": 1, "context": "bad"},
        ],
    )
    def test_invalid_params(self, params):
        with pytest.raises(ProtocolError) as exc_info:
            request_from_params(params)

        assert exc_info.value.code == ErrorCodes.InvalidParams


class TestResults:
    def test_reply_to_result(self):
        reply = AutoCompleteReply(
            candidates=(Candidate(CandidateClass.FIELD, "Bar", "int"),), prefix_len=1
        )

        assert reply_to_result(reply) == {
            "candidates": [{"class": "field", "name": "Bar", "type": "int"}],
            "len": 1,
        }

    def test_empty_reply(self):
        assert reply_to_result(AutoCompleteReply.empty()) == {"candidates": [], "len": 0}

    def test_reply_from_result(self):
        result = {"candidates": [{"class": "func", "name": "F", "type": "func()"}], "len": 2}

        reply = reply_from_result(result)

        assert reply.candidates == (Candidate(CandidateClass.FUNC, "F", "func()"),)
        assert reply.prefix_len == 2

    def test_reply_from_null_candidates(self):
        assert reply_from_result({"candidates": None, "len": 0}) == AutoCompleteReply.empty()

    @pytest.mark.parametrize("result", [None, [], {"candidates": [{"class": "x"}]}])
    def test_invalid_result(self, result):
        with pytest.raises(ProtocolError):
            reply_from_result(result)
