"""Exception types and error reporting helpers."""

import traceback


class ServiceHostError(Exception):
    """Base class for servicehost errors."""


class ConfigurationError(ServiceHostError):
    """Raised when a service configuration cannot be launched."""


def _walk(exc: BaseException, seen: set[int]) -> list[BaseException]:
    """Flatten an exception into the list of exceptions to report."""
    if id(exc) in seen:
        return []
    seen.add(id(exc))

    if isinstance(exc, BaseExceptionGroup):
        flat: list[BaseException] = []
        for inner in exc.exceptions:
            flat.extend(_walk(inner, seen))
        return flat

    chain = [exc]
    cause = exc.__cause__ or (None if exc.__suppress_context__ else exc.__context__)
    if cause is not None:
        chain.extend(_walk(cause, seen))
    return chain


def aggregate_messages(exc: BaseException) -> str:
    """Build one readable report from an exception, its causes and any group members.

    Each exception is rendered with its own traceback (without the chained
    "During handling..." sections, which are reported as separate entries).
    """
    parts = []
    for e in _walk(exc, set()):
        text = "".join(traceback.format_exception(type(e), e, e.__traceback__, chain=False))
        parts.append(text.rstrip())
    return "\n\n".join(parts)
