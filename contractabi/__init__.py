"""Indexed, queryable view of a smart contract's ABI."""

from .core import Constructor, Contract, Event, EventParam, Fallback, Function, Param
from .errors import AbiDecodeError, ContractAbiError, InvalidNameError

__version__ = "0.1.0"

__all__ = [
    "AbiDecodeError",
    "Constructor",
    "Contract",
    "ContractAbiError",
    "Event",
    "EventParam",
    "Fallback",
    "Function",
    "InvalidNameError",
    "Param",
]
