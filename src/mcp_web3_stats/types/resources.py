"""Types for resources.

URIs are kept as plain strings: custom schemes such as ``web3-stats://`` must
round-trip byte for byte.
"""

from typing import Annotated

from pydantic import Field

from mcp_web3_stats.types.base import MCPModel, RequestParams, Result


class Resource(MCPModel):
    """A known resource that the server is capable of reading."""

    uri: str
    name: str
    description: str | None = None
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None


class TextResourceContents(MCPModel):
    uri: str
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None
    text: str


class ListResourcesResult(Result):
    resources: list[Resource]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class ReadResourceRequestParams(RequestParams):
    uri: str


class ReadResourceResult(Result):
    contents: list[TextResourceContents]
