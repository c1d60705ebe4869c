"""Argument models derived from function signatures."""

import inspect
from collections.abc import Callable
from typing import Annotated, Any, get_type_hints

from pydantic import BaseModel, ConfigDict, WithJsonSchema, create_model

from mcp_web3_stats.exceptions import InvalidSignature
from mcp_web3_stats.server.context import RequestContext


class ArgModelBase(BaseModel):
    """A model representing the arguments to a function.

    Fields may carry a wire alias (``walletAddress``) while the function
    receives the Python name (``wallet_address``); both spellings validate.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def model_dump_one_level(self) -> dict[str, Any]:
        """Return the model's fields one level deep, keyed by Python name."""
        return {field_name: getattr(self, field_name) for field_name in self.__class__.model_fields}


class FuncMetadata(BaseModel):
    arg_model: Annotated[type[ArgModelBase], WithJsonSchema(None)]
    context_kwarg: str | None = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def parameters_schema(self) -> dict[str, Any]:
        return self.arg_model.model_json_schema(by_alias=True)

    async def call_fn_with_arg_validation(
        self,
        fn: Callable[..., Any],
        arguments: dict[str, Any],
        context: RequestContext | None,
    ) -> Any:
        """Validate ``arguments`` against the model, inject the context and call ``fn``.

        Raises pydantic's ValidationError when the arguments do not fit.
        """
        kwargs = self.arg_model.model_validate(arguments).model_dump_one_level()
        if self.context_kwarg is not None:
            kwargs[self.context_kwarg] = context
        result = fn(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result


def _is_context(annotation: Any) -> bool:
    return annotation is RequestContext or annotation == RequestContext | None


def func_metadata(func: Callable[..., Any]) -> FuncMetadata:
    """Build an argument model from ``func``'s signature.

    A parameter annotated with ``RequestContext`` is excluded from the model
    and filled in at call time. ``Annotated[..., Field(...)]`` metadata
    (aliases, descriptions, bounds) carries through to the JSON schema.
    """
    try:
        hints = get_type_hints(func, include_extras=True)
    except NameError as exc:
        raise InvalidSignature(f"Cannot resolve annotations of {func.__name__}: {exc}") from exc

    fields: dict[str, Any] = {}
    context_kwarg: str | None = None
    for param in inspect.signature(func).parameters.values():
        if param.name.startswith("_"):
            raise InvalidSignature(f"Parameter {param.name} of {func.__name__} cannot start with '_'")
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise InvalidSignature(f"Function {func.__name__} cannot take *args or **kwargs")

        annotation = hints.get(param.name, Any)
        if _is_context(annotation):
            context_kwarg = param.name
            continue
        default = param.default if param.default is not inspect.Parameter.empty else ...
        fields[param.name] = (annotation, default)

    arg_model = create_model(f"{func.__name__}Arguments", __base__=ArgModelBase, **fields)
    return FuncMetadata(arg_model=arg_model, context_kwarg=context_kwarg)
