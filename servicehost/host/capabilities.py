"""Optional lifecycle capabilities of a hosted object.

A hosted object is any object. It may implement any subset of the
protocols below; missing capabilities degrade to a logged diagnostic
(start/stop) or are simply absent (with_args/close).
"""

import collections.abc
import inspect
import typing
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol, Sequence, runtime_checkable

from loguru import logger


@runtime_checkable
class Starter(Protocol):
    def start(self) -> None: ...


@runtime_checkable
class Stopper(Protocol):
    def stop(self) -> None: ...


@runtime_checkable
class ArgumentReceiver(Protocol):
    def with_args(self, args: Sequence[str]) -> None: ...


@runtime_checkable
class Disposer(Protocol):
    def close(self) -> None: ...


LifecycleFn = Callable[[Any], None]
ArgsFn = Callable[[Any, Sequence[str]], None]

_STRING_SEQUENCE_ORIGINS = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)


@dataclass(frozen=True)
class Capabilities:
    """Lifecycle functions bound for one hosted type."""

    start: LifecycleFn
    stop: LifecycleFn
    with_args: ArgsFn | None = None
    dispose: LifecycleFn | None = None


def _required_params(fn: Callable) -> list[inspect.Parameter] | None:
    """Required parameters of a bound method, or None if there is no signature."""
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    return [
        p for p in signature.parameters.values()
        if p.default is inspect.Parameter.empty
        and p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


def _failing(message: str) -> LifecycleFn:
    def report(instance: Any) -> None:
        logger.error(message)
    return report


def bind_lifecycle_method(cls: type, name: str) -> LifecycleFn:
    """
    Bind a public method taking no arguments.

    If it is missing or needs arguments, return a function that logs why
    instead of raising, so a malformed hosted object is reported clearly.
    """
    attr = inspect.getattr_static(cls, name, None)
    if attr is None or not callable(getattr(cls, name, None)):
        logger.warning(f"Service method NOT found: {name}")
        return _failing(f"Method not found {cls.__name__}.{name}")

    def invoke(instance: Any) -> None:
        getattr(instance, name)()

    if isinstance(attr, (staticmethod, classmethod)):
        params = _required_params(getattr(cls, name))
    else:
        params = _required_params(attr)
        params = params[1:] if params else params  # drop self
    if params:
        return _failing(f"Cannot invoke {cls.__name__}.{name} because it has parameters")
    return invoke


def _accepts_strings(annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty or annotation is Any:
        return True
    if isinstance(annotation, str):
        return any(word in annotation for word in ("Sequence", "Iterable", "list", "tuple", "Collection"))
    origin = typing.get_origin(annotation) or annotation
    if origin not in _STRING_SEQUENCE_ORIGINS:
        return False
    args = typing.get_args(annotation)
    return not args or args[0] in (str, Any)


def bind_with_args(cls: type) -> ArgsFn | None:
    """Bind with_args(args) if it takes exactly one sequence-of-strings parameter."""
    fn = getattr(cls, "with_args", None)
    if fn is None or not callable(fn):
        return None
    params = _required_params(fn)
    if params is None:
        return None
    if not isinstance(inspect.getattr_static(cls, "with_args", None), staticmethod):
        params = params[1:]
    if len(params) != 1 or not _accepts_strings(params[0].annotation):
        return None

    def invoke(instance: Any, args: Sequence[str]) -> None:
        instance.with_args(list(args))

    return invoke


def bind_dispose(cls: type) -> LifecycleFn | None:
    """Bind close(), falling back to the context-manager exit."""
    if callable(getattr(cls, "close", None)):
        return lambda instance: instance.close()
    if callable(getattr(cls, "__exit__", None)):
        return lambda instance: instance.__exit__(None, None, None)
    return None


def probe(
    cls: type,
    start: LifecycleFn | None = None,
    stop: LifecycleFn | None = None,
) -> Capabilities:
    """Resolve the lifecycle functions of a hosted type. Explicit start/stop take precedence."""
    return Capabilities(
        start=start or bind_lifecycle_method(cls, "start"),
        stop=stop or bind_lifecycle_method(cls, "stop"),
        with_args=bind_with_args(cls),
        dispose=bind_dispose(cls),
    )


def describe(instance: Any) -> Iterable[str]:
    """Names of the capability protocols an instance satisfies."""
    for proto in (Starter, Stopper, ArgumentReceiver, Disposer):
        if isinstance(instance, proto):
            yield proto.__name__
