"""
Client for an external Go analyzer process.

The analyzer is any executable that accepts one JSON request on stdin,
{"action": ..., "parameters": {...}}, and prints one JSON response on
stdout. It is started once per query and keeps no state between calls, so
every query carries the edited buffer and the cursor again.

Actions and responses:

    analyze          -> {"package": {"name", "path"},
                         "scopes": [[symbol, ...], ...]}   innermost first
    evaluate         -> {"kind": "package" | "type" | "value" | "unresolved",
                         "package": {"name", "path"},
                         "type": {"name", "struct"}}
    type_members     -> {"fields": [...], "methods": [...],
                         "embedded": [{"name", "struct"}, ...]}
    package_members  -> {"members": [symbol, ...]}

    symbol = {"class", "name", "type", "package", "builtin"}
"""

from __future__ import annotations

import asyncio
import base64
import contextlib
import json
import logging
import shutil
from typing import Any

from gocomplete.resolver.base import (
    Analysis,
    PackageRef,
    PackedContext,
    Resolution,
    ResolvedPackage,
    ResolvedType,
    ResolvedValue,
    Scope,
    Symbol,
    SymbolKind,
    SymbolResolver,
    TypeMembers,
    TypeRef,
    Unresolved,
)

logger = logging.getLogger(__name__)


def _symbol(data: dict[str, Any]) -> Symbol:
    return Symbol(
        kind=SymbolKind(data["class"]),
        name=data["name"],
        type=data.get("type", ""),
        package=data.get("package"),
        builtin=bool(data.get("builtin", False)),
    )


def _type_ref(data: dict[str, Any]) -> TypeRef:
    return TypeRef(name=data["name"], is_struct=bool(data.get("struct", False)))


class AnalyzerClient(SymbolResolver):
    """
    Resolver that delegates to an external analyzer command.

    Failures of the analyzer (missing binary, non-zero exit, timeout,
    malformed JSON) are reported as "nothing resolved" rather than raised.
    """

    def __init__(self, command: list[str], timeout: float = 30.0):
        """
        Initialize the client.

        Args:
            command: Analyzer command line, e.g. ["gocomplete-analyzer", "rpc"]
            timeout: Seconds to wait for one analyzer invocation
        """
        if not command:
            raise ValueError("Analyzer command must not be empty")
        self.command = list(command)
        self.timeout = timeout

    def is_available(self) -> bool:
        """Check if the analyzer executable can be found."""
        return shutil.which(self.command[0]) is not None

    async def _rpc_command_async(
        self, action: str, parameters: dict[str, Any]
    ) -> dict | None:
        """Run the analyzer once and return its decoded JSON response."""
        rpc_data = {"action": action, "parameters": parameters}

        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.debug("Cannot start analyzer %s: %s", self.command[0], e)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(input=json.dumps(rpc_data).encode()),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.debug("Analyzer timed out on %s", action)
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            return None

        if process.returncode != 0:
            logger.debug(
                "Analyzer failed on %s: %s", action, stderr.decode(errors="replace").strip()
            )
            return None

        try:
            response = json.loads(stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.debug("Invalid JSON from analyzer on %s: %s", action, e)
            return None

        return response if isinstance(response, dict) else None

    @staticmethod
    def _request_parameters(analysis: Analysis) -> dict[str, Any]:
        return {
            "filename": analysis.filename,
            "source": base64.b64encode(analysis.source).decode("ascii"),
            "cursor": analysis.position,
            "env": list(analysis.context.env),
            "build_flags": list(analysis.context.build_flags),
        }

    async def analyze_package(
        self,
        filename: str,
        source: bytes,
        cursor: int,
        context: PackedContext,
    ) -> Analysis | None:
        analysis = Analysis(
            package=PackageRef(name="", path=""),
            scopes=(),
            position=cursor,
            filename=filename,
            source=source,
            context=context,
        )
        response = await self._rpc_command_async(
            "analyze", self._request_parameters(analysis)
        )
        if not response or not response.get("package"):
            return None

        try:
            package = PackageRef(
                name=response["package"]["name"], path=response["package"]["path"]
            )
            scopes = tuple(
                Scope(tuple(_symbol(s) for s in scope))
                for scope in response.get("scopes", [])
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Malformed analyze response: %s", e)
            return None

        return Analysis(
            package=package,
            scopes=scopes,
            position=cursor,
            filename=filename,
            source=source,
            context=context,
        )

    async def evaluate(self, analysis: Analysis, expr: str) -> Resolution:
        parameters = self._request_parameters(analysis)
        parameters["expr"] = expr
        response = await self._rpc_command_async("evaluate", parameters)
        if not response:
            return Unresolved("analyzer error")

        try:
            kind = response.get("kind")
            if kind == "package":
                package = response["package"]
                return ResolvedPackage(PackageRef(name=package["name"], path=package["path"]))
            if kind == "type":
                return ResolvedType(_type_ref(response["type"]))
            if kind == "value":
                return ResolvedValue(_type_ref(response["type"]))
        except (KeyError, TypeError) as e:
            return Unresolved(f"malformed evaluate response: {e}")

        return Unresolved(str(response.get("reason", "")))

    async def type_members(self, analysis: Analysis, type_ref: TypeRef) -> TypeMembers:
        parameters = self._request_parameters(analysis)
        parameters["type"] = type_ref.name
        response = await self._rpc_command_async("type_members", parameters)
        if not response:
            return TypeMembers()

        return TypeMembers(
            fields=tuple(_symbol(s) for s in response.get("fields", [])),
            methods=tuple(_symbol(s) for s in response.get("methods", [])),
            embedded=tuple(_type_ref(t) for t in response.get("embedded", [])),
        )

    async def package_members(self, analysis: Analysis, package: PackageRef) -> list[Symbol]:
        parameters = self._request_parameters(analysis)
        parameters["package"] = package.path
        response = await self._rpc_command_async("package_members", parameters)
        if not response:
            return []
        return [_symbol(s) for s in response.get("members", [])]
