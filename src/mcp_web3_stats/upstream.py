"""Authenticated GET clients for the two upstream data services.

Both clients share one ``httpx.AsyncClient`` owned by the server lifespan.
Non-2xx responses and transport failures surface as ``UpstreamAPIError``;
nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

import httpx

from mcp_web3_stats.exceptions import UnsupportedChainError, UpstreamAPIError

logger = logging.getLogger(__name__)

DUNE_BASE_URL: Final[str] = "https://api.sim.dune.com"
DEFAULT_TIMEOUT: Final[float] = 30.0

QueryValue = str | int | bool | Sequence[str | int] | None


@dataclass(frozen=True)
class BlockscoutNetwork:
    name: str
    url: str


BLOCKSCOUT_NETWORKS: Final[dict[str, BlockscoutNetwork]] = {
    "1": BlockscoutNetwork("Ethereum", "https://eth.blockscout.com"),
    "10": BlockscoutNetwork("Optimism", "https://optimism.blockscout.com"),
    "56": BlockscoutNetwork("BNB Smart Chain", "https://bscxplorer.com"),
    "100": BlockscoutNetwork("Gnosis", "https://gnosis.blockscout.com"),
    "137": BlockscoutNetwork("Polygon", "https://polygon.blockscout.com"),
    "250": BlockscoutNetwork("Fantom", "https://ftmscan.com"),
    "8453": BlockscoutNetwork("Base", "https://base.blockscout.com"),
    "42161": BlockscoutNetwork("Arbitrum", "https://arbitrum.blockscout.com"),
    "43114": BlockscoutNetwork("Avalanche", "https://snowtrace.io"),
}


def build_query(params: Mapping[str, QueryValue] | None) -> list[tuple[str, str]]:
    """Render query parameters the way the upstream APIs expect them.

    ``None`` values are dropped, booleans become ``true``/``false`` and
    sequences are comma-joined.
    """
    query: list[tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            query.append((key, "true" if value else "false"))
        elif isinstance(value, str | int):
            query.append((key, str(value)))
        else:
            query.append((key, ",".join(str(item) for item in value)))
    return query


def create_http_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


async def _get_json(
    http: httpx.AsyncClient,
    url: str,
    *,
    service: str,
    params: list[tuple[str, str]],
    headers: dict[str, str],
    network: str | None = None,
) -> Any:
    try:
        response = await http.get(url, params=params, headers=headers)
    except httpx.HTTPError as exc:
        raise UpstreamAPIError(service, 0, type(exc).__name__, str(exc), network=network) from exc

    if response.is_error:
        logger.debug("%s answered %s for %s", service, response.status_code, response.request.url.path)
        raise UpstreamAPIError(service, response.status_code, response.reason_phrase, response.text, network=network)

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamAPIError(
            service, response.status_code, "Invalid JSON", response.text[:200], network=network
        ) from exc


class DuneClient:
    """Client for the Dune Sim API.

    Paths carry their own version prefix (``/v1/evm/...`` or ``/beta/svm/...``).
    """

    service: Final[str] = "Dune API"

    def __init__(self, api_key: str, *, http: httpx.AsyncClient, base_url: str = DUNE_BASE_URL) -> None:
        self._api_key = api_key
        self._http = http
        self._base_url = base_url.rstrip("/")

    async def get(self, path: str, params: Mapping[str, QueryValue] | None = None) -> Any:
        return await _get_json(
            self._http,
            f"{self._base_url}{path}",
            service=self.service,
            params=build_query(params),
            headers={"X-Sim-Api-Key": self._api_key, "Accept": "application/json"},
        )


class BlockscoutClient:
    """Client for the per-chain Blockscout explorers (REST API v2)."""

    service: Final[str] = "Blockscout API"

    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        networks: Mapping[str, BlockscoutNetwork] = BLOCKSCOUT_NETWORKS,
    ) -> None:
        self._http = http
        self.networks = dict(networks)

    def network(self, chain_id: str | int) -> BlockscoutNetwork:
        network = self.networks.get(str(chain_id))
        if network is None:
            raise UnsupportedChainError(str(chain_id), list(self.networks))
        return network

    async def get(self, chain_id: str | int, path: str, params: Mapping[str, QueryValue] | None = None) -> Any:
        network = self.network(chain_id)
        return await _get_json(
            self._http,
            f"{network.url}/api/v2{path}",
            service=self.service,
            params=build_query(params),
            headers={"Accept": "application/json"},
            network=network.name,
        )
