"""Contract-level index over parsed ABI operations."""

from __future__ import annotations

import json
import logging
from typing import IO, Any, Iterable, Iterator

from ..errors import AbiDecodeError, InvalidNameError
from .operation import Constructor, Event, Fallback, Function, parse_operations

logger = logging.getLogger(__name__)


class Contract:
    """Constructor, functions, events and fallback flag of one contract.

    Built once from an ordered stream of operations and read-only afterwards.
    Functions are keyed by name alone, so a later overload replaces an
    earlier one. Events keep every entry sharing a name in document order.
    """

    __slots__ = ("_constructor", "_functions", "_events", "_fallback")

    def __init__(
        self,
        constructor: Constructor | None = None,
        functions: dict[str, Function] | None = None,
        events: dict[str, list[Event]] | None = None,
        fallback: bool = False,
    ):
        self._constructor = constructor
        self._functions = dict(functions or {})
        self._events = {name: tuple(entries) for name, entries in (events or {}).items() if entries}
        self._fallback = fallback

    @classmethod
    def from_operations(cls, operations: Iterable[Any]) -> "Contract":
        """Fold operations, in order, into a new contract.

        Errors raised while producing ``operations`` propagate unchanged.
        """
        constructor: Constructor | None = None
        functions: dict[str, Function] = {}
        events: dict[str, list[Event]] = {}
        fallback = False

        for operation in operations:
            if isinstance(operation, Constructor):
                constructor = operation
            elif isinstance(operation, Function):
                if operation.name in functions:
                    logger.debug(
                        "Function %s replaces %s",
                        operation.signature,
                        functions[operation.name].signature,
                    )
                functions[operation.name] = operation
            elif isinstance(operation, Event):
                events.setdefault(operation.name, []).append(operation)
            elif isinstance(operation, Fallback):
                fallback = True
            else:
                raise AbiDecodeError(f"Not an ABI operation: {operation!r}")

        logger.debug(
            "Built contract: constructor=%s functions=%d events=%d fallback=%s",
            constructor is not None,
            len(functions),
            sum(len(entries) for entries in events.values()),
            fallback,
        )
        return cls(constructor, functions, events, fallback)

    @classmethod
    def from_abi(cls, abi: Any) -> "Contract":
        """Build from a decoded ABI document: a list of entries or ``{"abi": [...]}``."""
        if isinstance(abi, dict) and "abi" in abi:
            abi = abi["abi"]
        if not isinstance(abi, list):
            raise AbiDecodeError(f"ABI must be a JSON array, got {type(abi).__name__}")
        return cls.from_operations(parse_operations(abi))

    @classmethod
    def loads(cls, text: str) -> "Contract":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise AbiDecodeError(f"Invalid ABI JSON: {exc}") from exc
        return cls.from_abi(payload)

    @classmethod
    def load(cls, handle: IO[str]) -> "Contract":
        """Load a contract from an open JSON file."""
        return cls.loads(handle.read())

    def constructor(self) -> Constructor | None:
        return self._constructor

    def function(self, name: str) -> Function:
        try:
            return self._functions[name]
        except KeyError:
            raise InvalidNameError(name) from None

    def event(self, name: str) -> Event:
        """Return the first event named ``name``."""
        for event in self._events.get(name, ()):
            return event
        raise InvalidNameError(name)

    def events_by_name(self, name: str) -> tuple[Event, ...]:
        try:
            return self._events[name]
        except KeyError:
            raise InvalidNameError(name) from None

    def functions(self) -> Iterator[Function]:
        for name in sorted(self._functions):
            yield self._functions[name]

    def events(self) -> Iterator[Event]:
        for name in sorted(self._events):
            yield from self._events[name]

    def fallback(self) -> bool:
        return self._fallback

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Contract):
            return NotImplemented
        return (
            self._constructor == other._constructor
            and self._functions == other._functions
            and self._events == other._events
            and self._fallback == other._fallback
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Contract(constructor={self._constructor is not None}, "
            f"functions={sorted(self._functions)}, "
            f"events={sorted(self._events)}, fallback={self._fallback})"
        )
