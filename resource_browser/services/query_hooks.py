from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from sqlalchemy import Select

from resource_browser.services.errors import ConfigurationError


@dataclass(frozen=True)
class Plain:
    query: Select


@dataclass(frozen=True)
class WithOptions:
    query: Select
    options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WithPostProcess:
    query: Select
    transform: Callable[[Any], Any]


HookResult = Union[Plain, WithOptions, WithPostProcess]


def normalize_hook_result(value: Any) -> HookResult:
    """Accept a hook return value as a tagged variant or its tuple shorthand.

    ``query`` -> Plain, ``(query, dict)`` -> WithOptions and
    ``(query, callable)`` -> WithPostProcess.
    """
    if isinstance(value, (Plain, WithOptions, WithPostProcess)):
        return value
    if isinstance(value, tuple):
        if len(value) != 2:
            raise ConfigurationError("Query hook must return a query or a (query, extra) pair")
        query, extra = value
        if isinstance(extra, dict):
            return WithOptions(query=query, options=dict(extra))
        if callable(extra):
            return WithPostProcess(query=query, transform=extra)
        raise ConfigurationError("Query hook extra must be execution options or a callable")
    return Plain(query=value)


def apply_hook(hook: Callable | None, context: Any, resource: Any, query: Select) -> HookResult:
    if hook is None:
        return Plain(query=query)
    return normalize_hook_result(hook(context, resource, query))


def hook_options(result: HookResult) -> dict[str, Any]:
    if isinstance(result, WithOptions):
        return dict(result.options)
    return {}


def post_process(result: HookResult, records: Any) -> Any:
    if isinstance(result, WithPostProcess):
        return result.transform(records)
    return records
