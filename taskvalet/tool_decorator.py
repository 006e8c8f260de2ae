"""
@tool decorator — build ToolDefinition instances from typed async functions.

Inspects the function signature and type hints to build the parameter
schema, then wraps the function into the executor signature expected by
ToolDefinition (``async def executor(params: dict, context: ToolContext) -> ToolResult``).

Usage::

    from typing import Annotated, Literal, Optional
    from taskvalet.tool_decorator import tool
    from taskvalet.tools import ToolContext, ToolResult

    @tool
    async def create_task(
        title: Annotated[str, "Clean task title (start with verb for actions)"],
        type: Annotated[Literal["action", "project", "waiting", "someday", "agenda"], "GTD task type"],
        due_date: Annotated[Optional[str], "Due date in ISO format (YYYY-MM-DD)"] = None,
        *,
        context: ToolContext,
    ) -> ToolResult:
        \"\"\"Create a new task.\"\"\"
        ...

    # create_task is now a ToolDefinition
    # create_task.parameters["required"] == ["title", "type"]

Functions may return a ToolResult, or any other value which becomes
``ToolResult.ok(data=value)``.
"""

from __future__ import annotations

import inspect
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from .tools.models import ToolContext, ToolDefinition, ToolResult

# ---------------------------------------------------------------------------
# Annotation inspection
# ---------------------------------------------------------------------------

_NoneType = type(None)


def _strip_annotated(annotation: Any) -> Tuple[Any, Optional[str]]:
    """Split ``Annotated[T, "desc", ...]`` into ``(T, "desc")``."""
    if get_origin(annotation) is not Annotated:
        return annotation, None
    base, *metadata = get_args(annotation)
    description = next((m for m in metadata if isinstance(m, str)), None)
    return base, description


def _optional_inner(annotation: Any) -> Optional[Any]:
    """Return ``X`` for ``Optional[X]``, else None."""
    if get_origin(annotation) is not Union:
        return None
    args = get_args(annotation)
    if _NoneType not in args:
        return None
    non_none = [a for a in args if a is not _NoneType]
    return non_none[0] if len(non_none) == 1 else Union[tuple(non_none)]


_SCALAR_TYPES = {bool: "boolean", str: "string", int: "integer", float: "number"}


def _python_type_to_json_schema(annotation: Any) -> Dict[str, Any]:
    """Map a Python type annotation to a restricted JSON Schema dict."""
    base, _ = _strip_annotated(annotation)

    inner = _optional_inner(base)
    if inner is not None:
        return _python_type_to_json_schema(inner)

    origin = get_origin(base)

    # Literal["a", "b"] -> enum
    if origin is Literal:
        values = list(get_args(base))
        schema = _python_type_to_json_schema(type(values[0])) if values else {"type": "string"}
        schema["enum"] = values
        return schema

    if base in _SCALAR_TYPES:
        return {"type": _SCALAR_TYPES[base]}

    if list in (base, origin):
        item_args = get_args(base)
        if item_args:
            return {"type": "array", "items": _python_type_to_json_schema(item_args[0])}
        return {"type": "array"}

    if dict in (base, origin):
        return {"type": "object"}

    return {"type": "string"}



def _tool_parameters(func: Callable) -> List[inspect.Parameter]:
    return [
        p for name, p in inspect.signature(func).parameters.items()
        if name != "context"
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


def _build_json_schema(func: Callable) -> Dict[str, Any]:
    """Build ``{"type": "object", ...}`` from *func*'s signature."""
    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception:
        hints = {}

    properties: Dict[str, Any] = {}
    required: List[str] = []

    for param in _tool_parameters(func):
        annotation = hints.get(param.name, param.annotation)
        if annotation is inspect.Parameter.empty:
            annotation = str

        prop_schema = _python_type_to_json_schema(annotation)
        base, desc = _strip_annotated(annotation)
        if desc:
            prop_schema["description"] = desc
        properties[param.name] = prop_schema

        has_default = param.default is not inspect.Parameter.empty
        if not has_default and _optional_inner(base) is None:
            required.append(param.name)

    return {"type": "object", "properties": properties, "required": required}


def _coerce(value: Any, schema: Dict[str, Any]) -> Any:
    """Turn numeric strings into numbers where the schema wants one."""
    if not isinstance(value, str):
        return value
    try:
        if schema.get("type") == "integer":
            number = float(value)
            return int(number) if number.is_integer() else number
        if schema.get("type") == "number":
            return float(value)
    except ValueError:
        pass
    return value


def _build_wrapper(func: Callable, schema: Dict[str, Any]) -> Callable:
    """Create an executor with the ToolDefinition-expected signature."""
    params = _tool_parameters(func)
    properties = schema["properties"]
    required = set(schema["required"])

    async def wrapper(args: Dict[str, Any], context: ToolContext) -> ToolResult:
        kwargs: Dict[str, Any] = {}
        for param in params:
            if param.name in args:
                kwargs[param.name] = _coerce(args[param.name], properties.get(param.name, {}))
            elif param.default is not inspect.Parameter.empty:
                kwargs[param.name] = param.default
            elif param.name not in required:
                # Optional[X] without a default
                kwargs[param.name] = None
        result = await func(**kwargs, context=context)
        if isinstance(result, ToolResult):
            return result
        return ToolResult.ok(data=result)

    wrapper.__name__ = getattr(func, "__name__", "tool")
    return wrapper


# ---------------------------------------------------------------------------
# Public decorator
# ---------------------------------------------------------------------------


def tool(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Any:
    """Decorator that converts a typed async function into a :class:`ToolDefinition`.

    Supports both bare ``@tool`` and parameterised ``@tool(name="...")``
    usage. The decorated name is replaced by a ``ToolDefinition`` instance.
    """

    def _make_tool(fn: Callable) -> ToolDefinition:
        tool_name = name or fn.__name__
        doc = inspect.getdoc(fn) or ""
        tool_description = description or (doc.split("\n")[0].strip() if doc else tool_name)
        schema = _build_json_schema(fn)

        return ToolDefinition(
            name=tool_name,
            description=tool_description,
            parameters=schema,
            executor=_build_wrapper(fn, schema),
        )

    if func is not None:
        return _make_tool(func)

    return _make_tool
