"""
Command line interface.

    gocomplete serve          run the completion daemon
    gocomplete autocomplete   ask the daemon for completions, start it if needed
    gocomplete exit           stop the daemon
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import subprocess
import sys
from typing import Optional

import click

from gocomplete.config import ConfigError, ServerConfig, configure_logging, load_config
from gocomplete.resolver import AnalyzerClient, ModelError, StaticResolver, SymbolResolver
from gocomplete.server import CompletionClient, CompletionServer, ProtocolError, ServerError
from gocomplete.suggest import AutoCompleteReply, AutoCompleteRequest, Suggester
from gocomplete.suggest.formatters import FORMATTERS, get_formatter

logger = logging.getLogger(__name__)

# Attempts to reach a freshly started daemon, and the pause between them
CONNECT_ATTEMPTS = 10
CONNECT_DELAY = 0.1

# Errors meaning nothing listens on the socket
NO_DAEMON_ERRORS = (ConnectionRefusedError, FileNotFoundError)


def build_resolver(config: ServerConfig) -> SymbolResolver:
    """
    Pick the resolver backend the configuration asks for.

    Raises:
        ConfigError: If neither a model nor an analyzer is configured
    """
    if config.analyzer_command:
        client = AnalyzerClient(list(config.analyzer_command), timeout=config.analyzer_timeout)
        if not client.is_available():
            logger.warning("Analyzer %s not found on PATH", config.analyzer_command[0])
        return client
    if config.model_path:
        return StaticResolver.from_file(config.model_path)
    raise ConfigError("No resolver configured: pass --model or --analyzer")


def parse_offset(offset: str, data: bytes) -> int:
    """
    Convert an OFFSET argument to a byte offset into data.

    "123" is a byte offset; "c123" counts characters of the UTF-8 text.
    """
    try:
        if offset[:1] in ("c", "C"):
            chars = int(offset[1:])
            return len(data.decode("utf-8", errors="replace")[:chars].encode("utf-8"))
        return int(offset)
    except ValueError as e:
        raise click.BadParameter(f"{offset!r} is not an offset", param_hint="OFFSET") from e


def _start_daemon(config: ServerConfig, config_path: Optional[str]) -> None:
    """Launch a detached daemon with the same socket settings."""
    args = [sys.executable, "-m", "gocomplete", "serve", "--sock", config.sock, "--addr", config.addr]
    if config_path:
        args += ["--config", config_path]
    if config.model_path:
        args += ["--model", config.model_path]
    if config.analyzer_command:
        args += ["--analyzer", " ".join(config.analyzer_command)]

    logger.debug("Starting daemon: %s", args)
    subprocess.Popen(
        args,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
        cwd=os.getcwd(),
    )


async def _auto_complete(
    config: ServerConfig, request: AutoCompleteRequest, config_path: Optional[str]
) -> AutoCompleteReply:
    client = CompletionClient(config)
    try:
        return await client.auto_complete(request)
    except NO_DAEMON_ERRORS:
        if config.sock != "unix":
            raise

    _start_daemon(config, config_path)
    for attempt in range(CONNECT_ATTEMPTS):
        await asyncio.sleep(CONNECT_DELAY)
        try:
            return await client.auto_complete(request)
        except NO_DAEMON_ERRORS:
            logger.debug("Daemon not up yet (attempt %d)", attempt + 1)
    return await client.auto_complete(request)


@click.group()
@click.version_option(package_name="gocomplete")
def main() -> None:
    """Autocompletion daemon for Go source code."""


@main.command()
@click.option("--sock", type=click.Choice(["unix", "tcp"]), help="Socket type (defaults to unix)")
@click.option("--addr", help="Address for the tcp socket (defaults to 127.0.0.1:37373)")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML configuration file")
@click.option("--model", type=click.Path(exists=True, dir_okay=False), help="YAML symbol model")
@click.option("--analyzer", help="External analyzer command line")
@click.option("--debug", is_flag=True, help="Log every request")
def serve(
    sock: Optional[str],
    addr: Optional[str],
    config_path: Optional[str],
    model: Optional[str],
    analyzer: Optional[str],
    debug: bool,
) -> None:
    """Run the completion daemon.

    Examples:
        gocomplete serve --model symbols.yaml
        gocomplete serve --sock tcp --addr 127.0.0.1:4000 --analyzer "go-analyzer rpc"
    """
    if model and analyzer:
        raise click.UsageError("--model and --analyzer are mutually exclusive")

    try:
        config = load_config(
            config_path,
            sock=sock,
            addr=addr,
            model_path=model,
            analyzer_command=analyzer,
            debug=debug or None,
        )
        configure_logging(config.debug)
        resolver = build_resolver(config)
    except (ConfigError, ModelError) as e:
        raise click.ClickException(str(e)) from e

    server = CompletionServer(config, Suggester(resolver, debug=config.debug))
    try:
        asyncio.run(server.serve_forever())
    except ServerError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@click.option(
    "--in",
    "input_file",
    type=click.File("rb"),
    default="-",
    help="Read the buffer from FILE instead of stdin",
)
@click.option(
    "-f",
    "--format",
    "format_name",
    type=click.Choice(sorted(FORMATTERS)),
    default="nice",
    show_default=True,
    help="Output format",
)
@click.option("--builtin", is_flag=True, help="Propose predeclared identifiers")
@click.option("--sock", type=click.Choice(["unix", "tcp"]), help="Socket type (defaults to unix)")
@click.option("--addr", help="Address for the tcp socket")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML configuration file")
@click.option("--debug", is_flag=True, help="Log client activity")
@click.argument("args", nargs=-1, required=True)
def autocomplete(
    input_file,
    format_name: str,
    builtin: bool,
    sock: Optional[str],
    addr: Optional[str],
    config_path: Optional[str],
    debug: bool,
    args: tuple[str, ...],
) -> None:
    """Print completions at OFFSET.

    Usage: gocomplete autocomplete [FILENAME] OFFSET
    """
    if len(args) > 2:
        raise click.UsageError("Expected [FILENAME] OFFSET")
    filename = os.path.abspath(args[0]) if len(args) == 2 else ""
    offset = args[-1]

    try:
        config = load_config(config_path, sock=sock, addr=addr, debug=debug or None)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    configure_logging(config.debug)

    data = input_file.read()
    cursor = parse_offset(offset, data)

    request = AutoCompleteRequest(filename=filename, data=data, cursor=cursor, builtin=builtin)
    try:
        reply = asyncio.run(_auto_complete(config, request, config_path))
    except asyncio.TimeoutError as e:
        raise click.ClickException("The daemon did not answer in time") from e
    except (OSError, ProtocolError) as e:
        raise click.ClickException(f"Cannot reach the daemon: {e}") from e

    out = io.StringIO()
    get_formatter(format_name)(out, reply.candidates, reply.prefix_len)
    click.echo(out.getvalue(), nl=False)


@main.command(name="exit")
@click.option("--sock", type=click.Choice(["unix", "tcp"]), help="Socket type (defaults to unix)")
@click.option("--addr", help="Address for the tcp socket")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML configuration file")
def exit_command(sock: Optional[str], addr: Optional[str], config_path: Optional[str]) -> None:
    """Stop the daemon."""
    try:
        config = load_config(config_path, sock=sock, addr=addr)
        asyncio.run(CompletionClient(config).exit())
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    except (OSError, ProtocolError) as e:
        raise click.ClickException(f"Cannot reach the daemon: {e}") from e


if __name__ == "__main__":
    main()
