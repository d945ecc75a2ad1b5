"""
Daemon configuration.

Configuration is built once at startup and never mutated afterwards.
Sources, lowest precedence first:

1. Built-in defaults
2. YAML configuration file
3. Environment variables (GOCOMPLETE_DEBUG, GOCOMPLETE_SOCK, GOCOMPLETE_ADDR)
4. Command-line flags
"""

from __future__ import annotations

import getpass
import logging
import os
import tempfile
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ADDR = "127.0.0.1:37373"
SOCKET_TYPES = ("unix", "tcp")


class ConfigError(ValueError):
    """Raised for invalid configuration values or files."""


def get_env_flag(env_var: str, default: bool = False) -> bool:
    """Get a boolean flag from an environment variable.

    Args:
        env_var: Name of the environment variable
        default: Default value if environment variable is not set

    Returns:
        True if the environment variable is set to "1", "true", or "yes" (case insensitive)
        False otherwise
    """
    value = os.environ.get(env_var, "").lower()
    return value in ("1", "true", "yes") if value else default


def default_socket_path() -> str:
    """Per-user unix socket path in the temp directory."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "all"
    return os.path.join(tempfile.gettempdir(), f"gocomplete-daemon.{user}")


@dataclass(frozen=True)
class ServerConfig:
    """
    Immutable daemon configuration.

    Attributes:
        sock: Transport, "unix" or "tcp"
        addr: host:port for the tcp transport
        socket_path: Socket file for the unix transport
        debug: Enable diagnostic logging
        exit_grace: Seconds between an Exit request and process shutdown
        model_path: YAML symbol model for the static resolver
        analyzer_command: External analyzer command line
        analyzer_timeout: Seconds allowed for one analyzer invocation
    """

    sock: str = "unix"
    addr: str = DEFAULT_ADDR
    socket_path: str = ""
    debug: bool = False
    exit_grace: float = 1.0
    model_path: str | None = None
    analyzer_command: tuple[str, ...] = ()
    analyzer_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.sock not in SOCKET_TYPES:
            raise ConfigError(f"Unknown socket type {self.sock!r}, expected one of {SOCKET_TYPES}")
        if not self.socket_path:
            object.__setattr__(self, "socket_path", default_socket_path())
        if isinstance(self.analyzer_command, (list, str)):
            command = self.analyzer_command
            object.__setattr__(
                self,
                "analyzer_command",
                tuple(command.split() if isinstance(command, str) else command),
            )
        if self.exit_grace < 0:
            raise ConfigError("exit_grace must not be negative")
        self.host_port()

    def host_port(self) -> tuple[str, int]:
        """Split addr into (host, port)."""
        host, sep, port = self.addr.rpartition(":")
        if not sep:
            raise ConfigError(f"Address {self.addr!r} must be host:port")
        try:
            return host or "127.0.0.1", int(port)
        except ValueError as e:
            raise ConfigError(f"Invalid port in address {self.addr!r}") from e


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")

    known = {f.name for f in fields(ServerConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown configuration keys in {path}: {sorted(unknown)}")
    return data


def _read_environment() -> dict[str, Any]:
    values: dict[str, Any] = {}
    if "GOCOMPLETE_DEBUG" in os.environ:
        values["debug"] = get_env_flag("GOCOMPLETE_DEBUG")
    if os.environ.get("GOCOMPLETE_SOCK"):
        values["sock"] = os.environ["GOCOMPLETE_SOCK"]
    if os.environ.get("GOCOMPLETE_ADDR"):
        values["addr"] = os.environ["GOCOMPLETE_ADDR"]
    return values


def load_config(path: Path | str | None = None, **overrides: Any) -> ServerConfig:
    """
    Build the daemon configuration.

    Args:
        path: Optional YAML configuration file
        **overrides: Command-line values; None means "not given"

    Returns:
        ServerConfig

    Raises:
        ConfigError: If the file or any value is invalid
    """
    values: dict[str, Any] = {}
    if path is not None:
        values.update(_read_config_file(Path(path)))
    values.update(_read_environment())
    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return replace(ServerConfig(), **values)
    except TypeError as e:
        raise ConfigError(str(e)) from e


def configure_logging(debug: bool = False) -> None:
    """Configure logging for all modules.

    Args:
        debug: Whether to enable debug logging
    """
    log_level = logging.DEBUG if debug else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers to avoid duplicate messages
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    root_logger.addHandler(handler)
