"""Prompt templates rendered from functions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from mcp_web3_stats.catalog.func_metadata import FuncMetadata, func_metadata
from mcp_web3_stats.exceptions import PromptError
from mcp_web3_stats.server.context import RequestContext
from mcp_web3_stats.types import INTERNAL_ERROR, ContentBlock, PromptArgument, PromptMessage, TextContent
from mcp_web3_stats.types import Prompt as PromptDefinition

logger = logging.getLogger(__name__)


class Message(BaseModel):
    """Base class for all prompt messages."""

    role: Literal["user", "assistant"]
    content: ContentBlock

    def __init__(self, content: str | ContentBlock, **kwargs: Any):
        if isinstance(content, str):
            content = TextContent(text=content)
        super().__init__(content=content, **kwargs)

    def to_prompt_message(self) -> PromptMessage:
        return PromptMessage(role=self.role, content=self.content)


class UserMessage(Message):
    """A message from the user."""

    role: Literal["user", "assistant"] = "user"

    def __init__(self, content: str | ContentBlock, **kwargs: Any):
        super().__init__(content=content, **kwargs)


class AssistantMessage(Message):
    """A message from the assistant."""

    role: Literal["user", "assistant"] = "assistant"

    def __init__(self, content: str | ContentBlock, **kwargs: Any):
        super().__init__(content=content, **kwargs)


class Prompt(BaseModel):
    """A prompt template that can be rendered with parameters."""

    name: str = Field(description="Name of the prompt")
    description: str | None = Field(None, description="Description of what the prompt does")
    arguments: list[PromptArgument] = Field(
        default_factory=list, description="Arguments that can be passed to the prompt"
    )
    fn: Callable[..., Sequence[Message]] = Field(exclude=True)
    fn_metadata: FuncMetadata

    @classmethod
    def from_function(
        cls,
        fn: Callable[..., Sequence[Message]],
        name: str | None = None,
        description: str | None = None,
    ) -> Prompt:
        """Create a Prompt from a function returning a sequence of messages.

        Argument names and descriptions come from the function's parameters,
        using their aliases where they have one.
        """
        func_name = name or fn.__name__
        if func_name == "<lambda>":
            raise ValueError("You must provide a name for lambda functions")

        metadata = func_metadata(fn)
        parameters = metadata.parameters_schema()
        required = set(parameters.get("required", []))
        arguments = [
            PromptArgument(name=param_name, description=param.get("description"), required=param_name in required)
            for param_name, param in parameters.get("properties", {}).items()
        ]
        return cls(
            name=func_name,
            description=description or inspect.cleandoc(fn.__doc__ or "") or None,
            arguments=arguments,
            fn=fn,
            fn_metadata=metadata,
        )

    def to_definition(self) -> PromptDefinition:
        return PromptDefinition(name=self.name, description=self.description, arguments=self.arguments or None)

    async def render(
        self, arguments: dict[str, Any] | None = None, context: RequestContext | None = None
    ) -> list[PromptMessage]:
        """Render the prompt with arguments."""
        provided = set(arguments or {})
        missing = sorted(arg.name for arg in self.arguments if arg.required and arg.name not in provided)
        if missing:
            raise PromptError(f"Missing required arguments for prompt {self.name}: {', '.join(missing)}")

        try:
            result = await self.fn_metadata.call_fn_with_arg_validation(self.fn, arguments or {}, context)
        except ValidationError as e:
            raise PromptError(f"Invalid arguments for prompt {self.name}: {e}") from e
        except Exception as e:
            logger.exception("Error rendering prompt %s", self.name)
            raise PromptError(f"Error rendering prompt {self.name}: {e}", INTERNAL_ERROR) from e

        return [message.to_prompt_message() for message in result]


class PromptManager:
    """Manages the server's prompts."""

    def __init__(self, warn_on_duplicate_prompts: bool = True) -> None:
        self._prompts: dict[str, Prompt] = {}
        self.warn_on_duplicate_prompts = warn_on_duplicate_prompts

    def add_prompt(self, prompt: Prompt) -> Prompt:
        existing = self._prompts.get(prompt.name)
        if existing:
            if self.warn_on_duplicate_prompts:
                logger.warning(f"Prompt already exists: {prompt.name}")
            return existing
        self._prompts[prompt.name] = prompt
        return prompt

    def get_prompt(self, name: str) -> Prompt | None:
        return self._prompts.get(name)

    def list_prompts(self) -> list[Prompt]:
        return list(self._prompts.values())

    async def render_prompt(
        self, name: str, arguments: dict[str, Any] | None = None, context: RequestContext | None = None
    ) -> list[PromptMessage]:
        prompt = self.get_prompt(name)
        if not prompt:
            raise PromptError(f"Unknown prompt: {name}")
        return await prompt.render(arguments, context)
