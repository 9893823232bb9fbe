"""Command line entry point: summarise an ABI file or a deployed contract."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from .core import Contract
from .errors import ContractAbiError
from .utils import abi_resolver


def summarize(contract: Contract) -> dict[str, Any]:
    constructor = contract.constructor()
    return {
        "constructor": None if constructor is None else [param.canonical_type for param in constructor.inputs],
        "functions": [function.signature for function in contract.functions()],
        "events": [event.signature for event in contract.events()],
        "fallback": contract.fallback(),
    }


def _describe(args: argparse.Namespace) -> Contract:
    with Path(args.path).open(encoding="utf-8") as handle:
        return Contract.load(handle)


def _resolve(args: argparse.Namespace) -> Contract:
    chain_id = args.chain_id if args.chain_id is not None else abi_resolver.get_default_chain_id()
    return abi_resolver.resolve_contract(chain_id, args.address, args.name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="contractabi", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    describe = commands.add_parser("describe", help="summarise a local ABI JSON file")
    describe.add_argument("path")
    describe.set_defaults(handler=_describe)

    resolve = commands.add_parser("resolve", help="resolve the ABI for a contract address")
    resolve.add_argument("address")
    resolve.add_argument("--chain-id", type=int, default=None)
    resolve.add_argument("--name", default=None, help="ABI name hint, e.g. ERC20")
    resolve.set_defaults(handler=_resolve)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        contract = args.handler(args)
    except (ContractAbiError, OSError, RuntimeError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(summarize(contract), indent=2))
    return 0
