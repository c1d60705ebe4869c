"""Static and computed resources."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

import pydantic_core
from pydantic import BaseModel, Field

from mcp_web3_stats.catalog.func_metadata import FuncMetadata, func_metadata
from mcp_web3_stats.exceptions import InvalidSignature, ResourceError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.types import RESOURCE_NOT_FOUND, Resource as ResourceDefinition, TextResourceContents

logger = logging.getLogger(__name__)


class Resource(BaseModel):
    """A resource backed by a function.

    The function takes no arguments apart from an optional ``RequestContext``.
    It may return a string (sent as is), a ``TextResourceContents`` (sent as
    is, for results whose MIME type differs from the declared one) or any
    JSON-serializable value (sent as indented JSON).
    """

    uri: str = Field(description="URI of the resource")
    name: str = Field(description="Name of the resource")
    description: str | None = Field(None, description="Description of the resource")
    mime_type: str = Field(default="application/json", description="MIME type of the resource content")
    fn: Callable[..., Any] = Field(exclude=True)
    fn_metadata: FuncMetadata

    @classmethod
    def from_function(
        cls,
        fn: Callable[..., Any],
        uri: str,
        name: str,
        description: str | None = None,
        mime_type: str = "application/json",
    ) -> Resource:
        metadata = func_metadata(fn)
        if metadata.arg_model.model_fields:
            raise InvalidSignature(f"Resource function {fn.__name__} cannot take arguments")
        return cls(
            uri=uri,
            name=name,
            description=description or inspect.cleandoc(fn.__doc__ or "") or None,
            mime_type=mime_type,
            fn=fn,
            fn_metadata=metadata,
        )

    def to_definition(self) -> ResourceDefinition:
        return ResourceDefinition(uri=self.uri, name=self.name, description=self.description, mime_type=self.mime_type)

    async def read(self, context: RequestContext | None = None) -> TextResourceContents:
        try:
            result = await self.fn_metadata.call_fn_with_arg_validation(self.fn, {}, context)
        except ResourceError:
            raise
        except Exception as e:
            logger.exception("Error reading resource %s", self.uri)
            raise ResourceError(f"Error reading resource {self.uri}: {e}") from e

        if isinstance(result, TextResourceContents):
            return result
        if isinstance(result, str):
            text = result
        else:
            text = pydantic_core.to_json(result, fallback=str, indent=2).decode()
        return TextResourceContents(uri=self.uri, mime_type=self.mime_type, text=text)


class ResourceManager:
    """Manages the server's resources."""

    def __init__(self, warn_on_duplicate_resources: bool = True) -> None:
        self._resources: dict[str, Resource] = {}
        self.warn_on_duplicate_resources = warn_on_duplicate_resources

    def add_resource(self, resource: Resource) -> Resource:
        logger.debug("Adding resource %s", resource.uri)
        existing = self._resources.get(resource.uri)
        if existing:
            if self.warn_on_duplicate_resources:
                logger.warning(f"Resource already exists: {resource.uri}")
            return existing
        self._resources[resource.uri] = resource
        return resource

    def list_resources(self) -> list[Resource]:
        return list(self._resources.values())

    def get_resource(self, uri: str) -> Resource:
        """Get a resource by exact URI; an unknown URI is a -32002 error."""
        if resource := self._resources.get(uri):
            return resource
        raise ResourceError(f"Resource not found: {uri}", RESOURCE_NOT_FOUND)
