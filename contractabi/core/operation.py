"""Typed ABI entries and the per-entry parser that produces them."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from ..errors import AbiDecodeError

FALLBACK_KINDS = ("fallback", "receive")
_TUPLE_TYPE = re.compile(r"^tuple((?:\[\d*\])*)$")


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    components: tuple[Param, ...] = ()
    internal_type: str | None = None

    @property
    def canonical_type(self) -> str:
        """Type as it appears in a signature, with tuples expanded."""
        match = _TUPLE_TYPE.match(self.type)
        if match is None:
            return self.type
        inner = ",".join(component.canonical_type for component in self.components)
        return f"({inner}){match.group(1)}"


@dataclass(frozen=True)
class EventParam(Param):
    indexed: bool = False


@dataclass(frozen=True)
class Constructor:
    inputs: tuple[Param, ...] = ()


@dataclass(frozen=True)
class Function:
    name: str
    inputs: tuple[Param, ...] = ()
    outputs: tuple[Param, ...] = ()
    state_mutability: str = "nonpayable"

    @property
    def constant(self) -> bool:
        return self.state_mutability in ("view", "pure")

    @property
    def signature(self) -> str:
        return _signature(self.name, self.inputs)


@dataclass(frozen=True)
class Event:
    name: str
    inputs: tuple[EventParam, ...] = ()
    anonymous: bool = False

    @property
    def signature(self) -> str:
        return _signature(self.name, self.inputs)


@dataclass(frozen=True)
class Fallback:
    kind: str = "fallback"


Operation = Constructor | Function | Event | Fallback


def _signature(name: str, params: Iterable[Param]) -> str:
    return f"{name}({','.join(param.canonical_type for param in params)})"


def _require_mapping(raw: Any, what: str) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise AbiDecodeError(f"Expected {what} object, got {type(raw).__name__}")
    return raw


def _parse_param(raw: Any, *, event: bool = False) -> Param:
    raw = _require_mapping(raw, "parameter")
    kind = raw.get("type")
    if not isinstance(kind, str) or not kind:
        raise AbiDecodeError(f"Parameter {raw.get('name', '')!r} is missing a type")
    components = tuple(_parse_param(item) for item in raw.get("components") or ())
    fields = {
        "name": str(raw.get("name") or ""),
        "type": kind,
        "components": components,
        "internal_type": raw.get("internalType"),
    }
    if event:
        return EventParam(indexed=bool(raw.get("indexed", False)), **fields)
    return Param(**fields)


def _parse_params(raw: Any, *, event: bool = False) -> tuple:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise AbiDecodeError("Parameter list must be an array")
    return tuple(_parse_param(item, event=event) for item in raw)


def _state_mutability(raw: dict[str, Any]) -> str:
    # Pre-0.4.16 compilers only emit the constant/payable flags.
    if "stateMutability" in raw:
        return str(raw["stateMutability"])
    if raw.get("constant"):
        return "view"
    if raw.get("payable"):
        return "payable"
    return "nonpayable"


def _require_name(raw: dict[str, Any], kind: str) -> str:
    name = raw.get("name")
    if not isinstance(name, str):
        raise AbiDecodeError(f"ABI {kind} entry is missing a name")
    return name


def parse_operation(raw: Any) -> Operation:
    """Decode a single ABI JSON entry into its typed operation.

    A missing ``type`` means ``function``. Unknown tags such as ``error``
    raise :class:`AbiDecodeError`.
    """
    raw = _require_mapping(raw, "ABI entry")
    tag = raw.get("type", "function")

    if tag == "constructor":
        return Constructor(inputs=_parse_params(raw.get("inputs")))
    if tag == "function":
        return Function(
            name=_require_name(raw, tag),
            inputs=_parse_params(raw.get("inputs")),
            outputs=_parse_params(raw.get("outputs")),
            state_mutability=_state_mutability(raw),
        )
    if tag == "event":
        return Event(
            name=_require_name(raw, tag),
            inputs=_parse_params(raw.get("inputs"), event=True),
            anonymous=bool(raw.get("anonymous", False)),
        )
    if tag in FALLBACK_KINDS:
        return Fallback(kind=tag)
    raise AbiDecodeError(f"Unknown ABI entry type: {tag!r}")


def parse_operations(entries: Iterable[Any]) -> Iterator[Operation]:
    """Lazily decode entries in document order."""
    for raw in entries:
        yield parse_operation(raw)
