"""Contract ABI model."""

from .contract import Contract
from .operation import (
    Constructor,
    Event,
    EventParam,
    Fallback,
    Function,
    Operation,
    Param,
    parse_operation,
    parse_operations,
)

__all__ = [
    "Constructor",
    "Contract",
    "Event",
    "EventParam",
    "Fallback",
    "Function",
    "Operation",
    "Param",
    "parse_operation",
    "parse_operations",
]
