"""Flat command-line token parsing and per-option dispatch."""

from dataclasses import dataclass
from typing import Callable, Iterable

OptionHandler = Callable[[str | None], None]


def _unquote(text: str) -> str:
    return text.strip('"')


@dataclass(frozen=True)
class ParsedArg:
    """A command-line token split into key and optional value."""

    key: str
    value: str | None = None

    @classmethod
    def parse(cls, token: str) -> "ParsedArg":
        """Split on the first '='. No '=' means no value, not an empty one."""
        key, sep, value = token.partition("=")
        return cls(_unquote(key), _unquote(value) if sep else None)

    def __str__(self) -> str:
        return self.key if self.value is None else f"{self.key}={self.value}"


def parse_args(tokens: Iterable[str] | None) -> list[ParsedArg]:
    """Parse a sequence of command-line tokens."""
    if tokens is None:
        return []
    return [ParsedArg.parse(token) for token in tokens]


class ArgOptions:
    """
    Dispatches parsed arguments to registered option handlers.

    Keys are matched case-insensitively. Arguments without a handler are
    skipped; they belong to the hosted object.
    """

    def __init__(self, args: Iterable[str] | None = None):
        self.parsed_args = parse_args(args)
        self._handlers: dict[str, OptionHandler] = {}

    def on(self, key: str, handler: OptionHandler, *aliases: str) -> "ArgOptions":
        """Register a handler for key and its aliases. A later registration replaces an earlier one."""
        for name in (key, *aliases):
            self._handlers[name.lower()] = handler
        return self

    def handles(self, key: str) -> bool:
        return key.lower() in self._handlers

    def execute(self) -> None:
        """Invoke the handler of every argument whose key is registered, in argument order."""
        for arg in self.parsed_args:
            handler = self._handlers.get(arg.key.lower())
            if handler is not None:
                handler(arg.value)

    def unhandled(self) -> list[ParsedArg]:
        """Arguments no handler is registered for."""
        return [arg for arg in self.parsed_args if not self.handles(arg.key)]
