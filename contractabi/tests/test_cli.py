import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from contractabi import cli
from contractabi.core import Contract
from contractabi.utils import abi_resolver


def test_describe_prints_summary(tmp_path, capsys):
    abi_file = tmp_path / "token.json"
    abi_file.write_text(
        json.dumps(
            [
                {"type": "constructor", "inputs": [{"name": "supply", "type": "uint256"}]},
                {"type": "function", "name": "transfer", "inputs": [{"name": "to", "type": "address"}]},
                {"type": "event", "name": "Transfer", "inputs": []},
                {"type": "event", "name": "Transfer", "inputs": [{"name": "v", "type": "uint8"}]},
            ]
        ),
        encoding="utf-8",
    )

    assert cli.main(["describe", str(abi_file)]) == 0

    summary = json.loads(capsys.readouterr().out)
    assert summary == {
        "constructor": ["uint256"],
        "functions": ["transfer(address)"],
        "events": ["Transfer()", "Transfer(uint8)"],
        "fallback": False,
    }


def test_describe_reports_decode_errors(tmp_path, capsys):
    abi_file = tmp_path / "broken.json"
    abi_file.write_text('[{"type": "bogus"}]', encoding="utf-8")

    assert cli.main(["describe", str(abi_file)]) == 1
    assert "Unknown ABI entry type" in capsys.readouterr().err


def test_resolve_uses_default_chain_id(monkeypatch, capsys):
    monkeypatch.setenv("ETHERSCAN_CHAIN_ID", "137")
    requested = []

    def _resolve_contract(chain_id, address, name_hint):
        requested.append((chain_id, address, name_hint))
        return Contract.from_abi([{"type": "fallback"}])

    monkeypatch.setattr(abi_resolver, "resolve_contract", _resolve_contract)

    assert cli.main(["resolve", "0xabc", "--name", "ERC20"]) == 0

    assert requested == [(137, "0xabc", "ERC20")]
    assert json.loads(capsys.readouterr().out)["fallback"] is True
