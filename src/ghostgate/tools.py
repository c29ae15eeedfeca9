from __future__ import annotations

import inspect
import json
import typing
from collections.abc import Mapping
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError, create_model


class Tool:
    """A model-facing tool: name, description, handler and input model."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        input_model: Optional[type[BaseModel]],
    ):
        self.name = name
        self.description = description
        self.func = func
        self.input_model = input_model

    @property
    def parameters_schema(self) -> str:
        """Returns JSON Schema for tool parameters."""
        if self.input_model:
            return json.dumps(self.input_model.model_json_schema(), separators=(",", ":"))
        return "{}"

    def bind(self, instance: Any) -> Tool:
        """Return a copy whose handler is bound to ``instance``."""
        return Tool(
            name=self.name,
            description=self.description,
            func=self.func.__get__(instance, type(instance)),
            input_model=self.input_model,
        )

    async def invoke(self, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        """Validate ``arguments`` and call the handler.

        Invalid arguments are returned as an error string rather than raised,
        so the model sees what went wrong.
        """
        args = dict(arguments or {})
        if self.input_model:
            try:
                args = self.input_model(**args).model_dump()
            except ValidationError as e:
                return f"Error: invalid arguments for '{self.name}': {e}"

        result = self.func(**args)
        if inspect.isawaitable(result):
            result = await result
        return result


def _model_from_signature(func: Callable[..., Any]) -> Optional[type[BaseModel]]:
    """Build the input Pydantic model from a function signature."""
    sig = inspect.signature(func)
    hints = typing.get_type_hints(func)
    fields = {}
    for name, param in sig.parameters.items():
        if name == "self":
            continue
        ann = hints.get(
            name,
            str if param.default is inspect.Parameter.empty else type(param.default),
        )
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (ann, default)
    return create_model(f"{func.__name__.capitalize()}Input", **fields) if fields else None


def tool(name: str, description: str = ""):
    """Decorator to declare a function or method as a model-facing tool.

    Args:
        name: Tool name as the model sees it (e.g., "activate_ghost_tool")
        description: What the tool does

    Example:
        class Session:
            @tool("echo", description="Echo a message")
            async def echo(self, text: str) -> str:
                return text

        tools = collect_tools(Session())
    """

    def wrapper(func: Callable[..., Any]):
        func.__ghostgate_tool__ = Tool(
            name=name,
            description=description or func.__doc__ or "",
            func=func,
            input_model=_model_from_signature(func),
        )
        return func

    return wrapper


def collect_tools(instance: Any) -> list[Tool]:
    """Bound tools declared with @tool on the class of ``instance``."""
    tools = []
    for attr in vars(type(instance)).values():
        declared = getattr(attr, "__ghostgate_tool__", None)
        if declared is not None:
            tools.append(declared.bind(instance))
    return tools


__all__ = ["Tool", "tool", "collect_tools"]
