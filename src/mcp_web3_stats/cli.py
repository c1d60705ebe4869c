"""Command line entry point."""

import logging
import sys

import anyio
import click

from mcp_web3_stats.app import create_server
from mcp_web3_stats.server.auth import AuthConfig, generate_api_key
from mcp_web3_stats.settings import Web3StatsSettings
from mcp_web3_stats.utilities.logging import configure_logging
from mcp_web3_stats.version import VERSION

logger = logging.getLogger(__name__)

TRANSPORT_CHOICES = ["stdio", "http", "sse-legacy", "hybrid", "sse"]
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

MODE_DESCRIPTIONS = {
    "http": "modern Streamable HTTP transport",
    "sse-legacy": "legacy SSE transport",
    "hybrid": "hybrid HTTP/SSE transport",
}

EPILOG = """\b
Environment:
  DUNE_API_KEY       Required API key for the Dune API (https://docs.sim.dune.com/)
  MCP_TRANSPORT      Default transport (http)
  MCP_BIND_HOST      Bind address for the HTTP modes (::)
  PORT / MCP_PORT    Port for the HTTP modes (3000)
  MCP_AUTH_ENABLED   Require credentials on HTTP requests
  MCP_API_KEYS       Comma-separated API keys
  MCP_BASIC_AUTH     Comma-separated user:password pairs
"""


def log_banner(mode: str, settings: Web3StatsSettings, auth: AuthConfig) -> None:
    host = f"[{settings.host}]" if ":" in settings.host else settings.host
    base = f"http://{host}:{settings.port}"
    logger.info("MCP Web3 Stats v%s started with %s", VERSION, MODE_DESCRIPTIONS[mode])
    logger.info("Server running at %s/", base)
    if mode in ("http", "hybrid"):
        logger.info("  MCP:     %s/mcp", base)
    if mode in ("sse-legacy", "hybrid"):
        logger.info("  SSE:     %s/sse", base)
        logger.info("  Message: %s/message", base)
    logger.info("  Health:  %s/health", base)
    if auth.enabled:
        methods = []
        if auth.api_keys:
            methods.append("Bearer Token, X-API-Key")
        if auth.basic_credentials:
            methods.append("Basic Auth")
        logger.info("Authentication: ENABLED (%s)", ", ".join(methods) or "custom")
    else:
        logger.warning("Authentication: DISABLED (development mode)")


@click.command(epilog=EPILOG, context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--transport",
    type=click.Choice(TRANSPORT_CHOICES),
    default=None,
    help="Transport to serve (default: MCP_TRANSPORT or http). 'sse' is a deprecated alias of 'http'.",
)
@click.option("--port", type=int, default=None, help="Port for the HTTP transports")
@click.option("--host", default=None, help="Bind address for the HTTP transports")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None, help="Log level")
@click.option("--generate-api-key", "print_api_key", is_flag=True, help="Print a new random API key and exit")
@click.version_option(VERSION, "-v", "--version", message="MCP Web3 Stats v%(version)s")
def main(
    transport: str | None,
    port: int | None,
    host: str | None,
    log_level: str | None,
    print_api_key: bool,
) -> None:
    """MCP Web3 Stats - MCP Server for Dune API and Blockscout to analyze blockchain data."""
    if print_api_key:
        click.echo(generate_api_key())
        return

    overrides: dict[str, object] = {key: value for key, value in (("port", port), ("host", host)) if value is not None}
    if log_level:
        overrides["log_level"] = log_level.upper()
    settings = Web3StatsSettings().model_copy(update=overrides)
    configure_logging(settings.log_level)

    mode = transport or settings.transport
    if mode == "sse":
        click.echo('Warning: "sse" is deprecated. Using modern "http" transport.', err=True)
        click.echo("For legacy SSE support, use --transport sse-legacy", err=True)
        mode = "http"

    if settings.dune_api_key is None or not settings.dune_api_key.get_secret_value():
        click.echo("FATAL ERROR: DUNE_API_KEY is not set in the environment variables.", err=True)
        sys.exit(1)

    mcp = create_server(settings)
    try:
        if mode == "stdio":
            logger.info("MCP Web3 Stats v%s started and listening on stdio.", VERSION)
            anyio.run(mcp.run_stdio_async)
        else:
            auth = AuthConfig.from_settings()
            log_banner(mode, settings, auth)
            anyio.run(mcp.run_http_async, mode, auth)
    except KeyboardInterrupt:
        logger.info("Shutting down server...")

