"""Protocol-level session state produced by the initialize handshake."""

from __future__ import annotations

from dataclasses import dataclass

from mcp_web3_stats.types import ClientCapabilities, Implementation


@dataclass(frozen=True)
class SessionInfo:
    """Immutable result of a completed handshake.

    Transport-level state (streams, registry entry) lives with the adapters.
    """

    client_info: Implementation
    client_capabilities: ClientCapabilities
    protocol_version: str
