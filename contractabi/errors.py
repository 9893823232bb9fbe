"""Error types raised while building and querying contract ABIs."""

from __future__ import annotations


class ContractAbiError(Exception):
    """Base class for every error raised by contractabi."""


class AbiDecodeError(ContractAbiError, ValueError):
    """An ABI document or entry could not be decoded into operations."""


class InvalidNameError(ContractAbiError, LookupError):
    """A function or event name is not present in the contract."""

    def __init__(self, name: str):
        super().__init__("Invalid name")
        self.name = name
