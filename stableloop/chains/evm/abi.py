"""Call-data encoding and return-data decoding for read-only contract calls."""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

ZERO_ADDRESS = "0x" + "0" * 40


@lru_cache(maxsize=None)
def selector(signature: str) -> bytes:
    """4-byte selector for e.g. ``"balances(uint256)"``."""
    return function_signature_to_4byte_selector(signature)


def _arg_types(signature: str) -> list[str]:
    inner = signature[signature.index("(") + 1 : signature.rindex(")")]
    return [t.strip() for t in inner.split(",")] if inner.strip() else []


def _prepare(arg_type: str, value: Any) -> Any:
    if arg_type == "address":
        return to_checksum_address(value)
    return value


def encode_call(signature: str, args: tuple[Any, ...] = ()) -> str:
    types = _arg_types(signature)
    if len(types) != len(args):
        raise ValueError(f"{signature} expects {len(types)} args, got {len(args)}")
    payload = encode(types, [_prepare(t, a) for t, a in zip(types, args)])
    return "0x" + (selector(signature) + payload).hex()


def decode_result(returns: tuple[str, ...], data: str) -> tuple[Any, ...]:
    """Decode hex return data; empty data (no contract, or a bare revert) raises ValueError."""
    h = data[2:] if data.startswith("0x") else data
    raw = bytes.fromhex(h)
    if not raw:
        raise ValueError("empty return data")
    return tuple(decode(list(returns), raw))


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()
