"""Exceptions raised by the Web3 Stats server."""

from typing import Any

from mcp_web3_stats.types import INTERNAL_ERROR, INVALID_PARAMS, ErrorData


class Web3StatsError(Exception):
    """Base error for the Web3 Stats server."""


class ConfigurationError(Web3StatsError):
    """Required configuration is missing or invalid."""


class ToolError(Web3StatsError):
    """Error in tool operations. Reported to the client as an ``isError`` tool result."""


class InvalidSignature(Web3StatsError):
    """Invalid signature for use as a tool, resource or prompt function."""


class RequestError(Web3StatsError):
    """A request that must be answered with a JSON-RPC error envelope."""

    default_code: int = INTERNAL_ERROR
    error: ErrorData

    def __init__(self, message: str, code: int | None = None, data: Any | None = None):
        super().__init__(message)
        self.error = ErrorData(code=self.default_code if code is None else code, message=message, data=data)


class ResourceError(RequestError):
    """Error in resource operations.

    Defaults to INTERNAL_ERROR (-32603); use RESOURCE_NOT_FOUND (-32002) when
    the URI is unknown.
    """


class PromptError(RequestError):
    """Unknown prompt or missing prompt arguments."""

    default_code = INVALID_PARAMS


class UpstreamAPIError(Web3StatsError):
    """A third-party data API answered with a non-2xx status or could not be reached.

    ``status_code`` is 0 when no HTTP response was received at all.
    """

    def __init__(self, service: str, status_code: int, reason: str, body: str = "", *, network: str | None = None):
        self.service = service
        self.network = network
        self.status_code = status_code
        self.reason = reason
        self.body = body
        where = f" ({network})" if network else ""
        super().__init__(f"{service} Error{where}: {status_code} {reason}. Details: {body}")


class UnsupportedChainError(Web3StatsError):
    """The requested chain id has no configured block explorer."""

    def __init__(self, chain_id: str, supported: list[str]):
        self.chain_id = chain_id
        self.supported = supported
        super().__init__(f"Unsupported chain ID: {chain_id}. Supported chains: {', '.join(supported)}")
