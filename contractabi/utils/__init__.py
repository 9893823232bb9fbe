"""Utility helpers for contractabi."""

from .abi_resolver import resolve_abi_path, resolve_abi_payload, resolve_contract

__all__ = ["resolve_abi_path", "resolve_abi_payload", "resolve_contract"]
