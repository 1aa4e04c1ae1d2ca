"""Operational JSON artifacts: randomness endpoints and deployed addresses."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping

from web3 import Web3

from core import get_logger
from core.exceptions import ConfigurationError
from ledger.chain import to_address

logger = get_logger(__name__)

# network name -> section of the QRNG file
NETWORK_SECTIONS = {
    "hardhat": "testnets",
    "localhost": "testnets",
    "goerli": "testnets",
    "sepolia": "testnets",
    "optimism-goerli": "testnets",
    "mainnet": "mainnets",
    "arbitrum": "mainnets",
    "optimism": "mainnets",
    "polygon": "mainnets",
}


@dataclass(frozen=True)
class QrngEndpoints:
    airnode: str
    xpub: str
    endpoint_id_uint256: str
    endpoint_id_uint256_array: str


def load_json_file(path: str) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot load {path}: {exc}") from exc


def write_json_file(data: Mapping[str, Any], path: str, mode: str = "w") -> Dict[str, Any]:
    """Write ``data`` to ``path``.

    Args:
        data: Object to export
        path: Target file, parent folders are created
        mode: ``"w"`` to write a clean file, ``"a"`` to merge into the existing one

    Returns:
        The object actually written
    """
    if mode == "a":
        previous = load_json_file(path) if Path(path).exists() else {}
    elif mode == "w":
        previous = {}
    else:
        raise ConfigurationError(f"Invalid mode: {mode}")
    output = {**previous, **data}
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(output, indent=2), encoding="utf-8")
    logger.info(f"File written to: {target}")
    return output


def load_qrng_endpoints(path: str, network: str) -> QrngEndpoints:
    """Read the QRNG provider data for ``network``.

    Raises:
        ConfigurationError: Unknown network or incomplete file
    """
    section = NETWORK_SECTIONS.get(network)
    if section is None:
        raise ConfigurationError(f"Unsupported network: {network}")
    data = load_json_file(path).get(section)
    if not data:
        raise ConfigurationError(f"{path} has no {section} section")
    try:
        return QrngEndpoints(
            airnode=to_address(data["airnode"]),
            xpub=data["xpub"],
            endpoint_id_uint256=data["endpointIdUint256"],
            endpoint_id_uint256_array=data["endpointIdUint256Array"],
        )
    except KeyError as exc:
        raise ConfigurationError(f"{path} [{section}] is missing {exc.args[0]}") from exc


def derive_sponsor_wallet(xpub: str, airnode: str, sponsor: str) -> str:
    """Deterministic stand-in for the sponsor wallet derived from the airnode xpub."""
    digest = Web3.solidity_keccak(
        ["string", "address", "address"], [xpub, to_address(airnode), to_address(sponsor)]
    )
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())


def addresses_path(folder: str, network: str) -> str:
    return str(Path(folder) / f"{network}.json")
