"""Resolve contract ABIs by address, via the on-disk cache or Etherscan."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
import time
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import keyring
import requests
from keyring.errors import KeyringError

from ..core import Contract

logger = logging.getLogger(__name__)

DEFAULT_CHAIN_ID = 1
DEFAULT_ETHERSCAN_BASE_URL = "https://api.etherscan.io/api"
KEYRING_SERVICE = "contractabi"
ABI_ROOT = Path("abi")
ADDRESS_ABI_ROOT = ABI_ROOT / "address"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class _RateLimiter:
    """Sliding-window limiter, 3 calls per second by default."""

    def __init__(self, max_calls: int = 3, period_seconds: float = 1.0):
        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._stamps: deque[float] = deque()
        self._lock = threading.Lock()

    def _reserve(self) -> float:
        with self._lock:
            now = time.monotonic()
            while self._stamps and now - self._stamps[0] >= self.period_seconds:
                self._stamps.popleft()
            if len(self._stamps) < self.max_calls:
                self._stamps.append(now)
                return 0.0
            return self.period_seconds - (now - self._stamps[0])

    def acquire(self) -> None:
        wait = self._reserve()
        while wait > 0:
            time.sleep(wait)
            wait = self._reserve()


_RATE_LIMITER = _RateLimiter()
_PAYLOAD_CACHE: dict[tuple[int, str], dict[str, Any]] = {}
_PATH_CACHE: dict[tuple[int, str], Path] = {}
_CONTRACT_CACHE: dict[tuple[int, str], Contract] = {}
_ATTEMPTED_FETCHES: set[tuple[int, str]] = set()


def clear_caches() -> None:
    _PAYLOAD_CACHE.clear()
    _PATH_CACHE.clear()
    _CONTRACT_CACHE.clear()
    _ATTEMPTED_FETCHES.clear()


def normalize_address(address: str) -> str:
    address = address.strip().lower()
    if not address.startswith("0x"):
        raise ValueError(f"Invalid address format: {address}")
    return address


def get_default_chain_id() -> int:
    return int(os.getenv("ETHERSCAN_CHAIN_ID", str(DEFAULT_CHAIN_ID)))


def get_etherscan_api_key() -> str | None:
    """API key from the environment, else from the system keyring."""
    api_key = os.getenv("ETHERSCAN_API_KEY")
    if api_key:
        return api_key
    try:
        return keyring.get_password(KEYRING_SERVICE, "ETHERSCAN_API_KEY")
    except KeyringError as exc:
        logger.debug("Keyring lookup for ETHERSCAN_API_KEY failed: %s", exc)
        return None


def _cache_paths(chain_id: int, address: str) -> tuple[Path, Path]:
    folder = ADDRESS_ABI_ROOT / str(chain_id)
    address = normalize_address(address)
    return folder / f"{address}.json", folder / f"{address}.meta.json"


def read_abi_payload(path: Path) -> dict[str, Any]:
    """Read an ABI file holding either a bare array or an ``{"abi": [...]}`` object."""
    with open(path, encoding="utf-8") as handle:
        parsed = json.load(handle)
    if isinstance(parsed, list):
        return {"abi": parsed}
    if isinstance(parsed, dict) and "abi" in parsed:
        return parsed
    raise ValueError(f"Unexpected ABI payload in {path}")


def _store(
    chain_id: int,
    address: str,
    payload: dict[str, Any],
    *,
    source: str,
    target_address: str,
    implementation: str | None = None,
    name_hint: str | None = None,
) -> Path:
    # Building first keeps undecodable ABIs out of the cache.
    contract = Contract.from_abi(payload)

    abi_path, meta_path = _cache_paths(chain_id, address)
    abi_path.parent.mkdir(parents=True, exist_ok=True)
    with open(abi_path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)

    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    metadata = {
        "chainId": chain_id,
        "address": normalize_address(address),
        "abiTargetAddress": normalize_address(target_address),
        "isProxy": implementation is not None,
        "implementation": normalize_address(implementation) if implementation else None,
        "nameHint": name_hint,
        "source": source,
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
        "abiSha256": hashlib.sha256(canonical.encode("utf-8")).hexdigest(),
        "functions": sum(1 for _ in contract.functions()),
        "events": sum(1 for _ in contract.events()),
        "fallback": contract.fallback(),
    }
    with open(meta_path, "w", encoding="utf-8") as handle:
        json.dump(metadata, handle, indent=2)

    _CONTRACT_CACHE[(chain_id, normalize_address(address))] = contract
    return abi_path


def _etherscan_get(action: str, *, chain_id: int, address: str, api_key: str) -> dict[str, Any]:
    _RATE_LIMITER.acquire()
    response = requests.get(
        os.getenv("ETHERSCAN_BASE_URL", DEFAULT_ETHERSCAN_BASE_URL),
        params={
            "module": "contract",
            "action": action,
            "address": normalize_address(address),
            "apikey": api_key,
            "chainid": chain_id,
        },
        timeout=20,
    )
    response.raise_for_status()
    return response.json()


def _proxy_implementation(source_data: dict[str, Any]) -> str | None:
    result = source_data.get("result")
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        return None
    implementation = (result[0].get("Implementation") or "").strip()
    if not implementation or implementation.lower() == ZERO_ADDRESS:
        return None
    return implementation


def _fetch_from_etherscan(chain_id: int, address: str, name_hint: str | None) -> Path:
    key = (chain_id, address)
    if key in _ATTEMPTED_FETCHES:
        raise RuntimeError(f"ABI fetch already attempted for {address} on chain {chain_id} during this run")
    _ATTEMPTED_FETCHES.add(key)

    api_key = get_etherscan_api_key()
    if not api_key:
        raise RuntimeError("Missing ABI and no ETHERSCAN_API_KEY configured")

    logger.info("ABI cache miss, fetching from Etherscan: %s chainId=%s", address, chain_id)
    source_data = _etherscan_get("getsourcecode", chain_id=chain_id, address=address, api_key=api_key)
    implementation = _proxy_implementation(source_data)
    target = implementation or address
    if implementation:
        logger.info("Proxy detected, implementation=%s", normalize_address(implementation))

    abi_data = _etherscan_get("getabi", chain_id=chain_id, address=target, api_key=api_key)
    result = abi_data.get("result")
    if str(abi_data.get("status", "")) != "1" or not isinstance(result, str):
        reason = result or abi_data.get("message") or "Unknown Etherscan error"
        raise RuntimeError(f"Failed to fetch ABI from Etherscan for {address}: {reason}")

    try:
        abi = json.loads(result)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid ABI payload returned by Etherscan for {address}") from exc
    if not abi:
        raise RuntimeError(f"Failed to fetch ABI from Etherscan for {address}: empty ABI response")

    return _store(
        chain_id,
        address,
        {"abi": abi},
        source="etherscan",
        target_address=target,
        implementation=implementation,
        name_hint=name_hint,
    )


def resolve_abi_path(chain_id: int, address: str, name_hint: str | None = None) -> Path:
    """Locate the cached ABI file for ``address``, populating the cache if needed.

    Lookup order: in-process cache, ``abi/address/<chain>/<address>.json``,
    ``abi/<name_hint>.json`` (or ``abi/_<name_hint>.json``), then Etherscan.
    """
    address = normalize_address(address)
    key = (chain_id, address)
    if key in _PATH_CACHE:
        return _PATH_CACHE[key]

    abi_path, _ = _cache_paths(chain_id, address)
    if abi_path.exists():
        logger.info("ABI cache hit: %s", abi_path.as_posix())
    else:
        abi_path = _from_name_hint(chain_id, address, name_hint) or _fetch_from_etherscan(chain_id, address, name_hint)
    _PATH_CACHE[key] = abi_path
    return abi_path


def _from_name_hint(chain_id: int, address: str, name_hint: str | None) -> Path | None:
    if not name_hint:
        return None
    for candidate in (ABI_ROOT / f"{name_hint}.json", ABI_ROOT / f"_{name_hint}.json"):
        if candidate.exists():
            logger.info("ABI resolved by name hint: %s", candidate.as_posix())
            return _store(
                chain_id,
                address,
                read_abi_payload(candidate),
                source="name-cache",
                target_address=address,
                name_hint=name_hint,
            )
    return None


def resolve_abi_payload(chain_id: int, address: str, name_hint: str | None = None) -> dict[str, Any]:
    address = normalize_address(address)
    key = (chain_id, address)
    if key not in _PAYLOAD_CACHE:
        _PAYLOAD_CACHE[key] = read_abi_payload(resolve_abi_path(chain_id, address, name_hint))
    return _PAYLOAD_CACHE[key]


def resolve_contract(chain_id: int, address: str, name_hint: str | None = None) -> Contract:
    """Resolve and index the ABI deployed at ``address``."""
    address = normalize_address(address)
    key = (chain_id, address)
    if key in _CONTRACT_CACHE:
        return _CONTRACT_CACHE[key]
    payload = resolve_abi_payload(chain_id, address, name_hint)
    # A fresh fetch has already indexed the payload while caching it.
    if key not in _CONTRACT_CACHE:
        _CONTRACT_CACHE[key] = Contract.from_abi(payload)
    return _CONTRACT_CACHE[key]
