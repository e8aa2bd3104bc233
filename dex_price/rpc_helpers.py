#!/usr/bin/env python3
"""
RPC Helpers — ABI Word Codec, JSON-RPC Client and ChainReader
=============================================================

Low-level EVM read primitives consumed by the oracle, pool locator and
price extractor:

  • ABI encoding/decoding of static words (address, uint, int, bool)
  • JSON-RPC client (eth_call over httpx)
  • ChainReader protocol + RpcChainReader, the descriptor-driven caller

All constants reference the Ethereum ABI specification:
  https://docs.soliditylang.org/en/latest/abi-spec.html

Terminology:
  • Word:  32 bytes = 256 bits = 64 hex characters
  • Slot:  Position of a 32-byte word in an ABI response
  • Q96:   2^96  — fixed-point denominator for sqrtPriceX96
  • Q256:  2^256 — two's complement boundary for int256
"""

import logging
import re
from typing import Any, Protocol, Sequence

import httpx

from dex_price.contracts import ContractInterface, MethodSpec

logger = logging.getLogger(__name__)

# ── ABI Word Constants ──────────────────────────────────────────────────

ABI_WORD_HEX = 64            # 32 bytes × 2 hex chars = 64 hex characters
ADDRESS_HEX = 40              # 20 bytes × 2 = 40 hex characters
ADDRESS_PAD_HEX = 24          # Left padding in a 32-byte slot = 64 - 40 = 24 hex chars
SIGN_BIT = 1 << 255           # Two's complement sign bit for int256

# ── Uniswap V3 Fixed-Point Constants ───────────────────────────────────
# Ref: Uniswap V3 Whitepaper §6.1: https://uniswap.org/whitepaper-v3.pdf

Q96 = 2 ** 96                # sqrtPriceX96 denominator (FixedPoint96.RESOLUTION)
Q256 = 2 ** 256              # int256 overflow boundary (two's complement wrap)

ZERO_ADDRESS = "0x" + "0" * ADDRESS_HEX

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def is_address(value: Any) -> bool:
    """True for a 0x-prefixed 20-byte hex string (any letter case)."""
    return isinstance(value, str) and _ADDRESS_RE.fullmatch(value) is not None


# ── ABI Encoding ────────────────────────────────────────────────────────

def encode_address(addr: str) -> str:
    """ABI-encode an address as 32 bytes (left-padded, no 0x prefix).

    >>> encode_address('0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2')
    '000000000000000000000000c02aaa39b223fe8d0a0e5c4f27ead9083c756cc2'
    """
    if not is_address(addr):
        raise ValueError(f"Invalid address: {addr}")
    return addr.lower()[2:].zfill(ABI_WORD_HEX)


def encode_uint24(val: int) -> str:
    """ABI-encode a uint24 as 32 bytes (for fee tier parameter).

    >>> encode_uint24(3000)
    '0000000000000000000000000000000000000000000000000000000000000bb8'
    """
    if val < 0 or val >= 1 << 24:
        raise ValueError(f"uint24 out of range: {val}")
    return format(val, f'0{ABI_WORD_HEX}x')


_ENCODERS = {
    "address": encode_address,
    "uint24": encode_uint24,
}


def encode_call(method: MethodSpec, args: Sequence[Any]) -> str:
    """Build 0x-prefixed calldata: selector followed by one word per argument."""
    if len(args) != len(method.inputs):
        raise ValueError(
            f"{method.name}() takes {len(method.inputs)} argument(s), got {len(args)}"
        )
    words = []
    for abi_type, value in zip(method.inputs, args):
        try:
            encoder = _ENCODERS[abi_type]
        except KeyError:
            raise ValueError(f"Unsupported input type: {abi_type}") from None
        words.append(encoder(value))
    return method.selector + "".join(words)


# ── ABI Decoding ────────────────────────────────────────────────────────

def decode_uint(hex_data: str, slot: int = 0) -> int:
    """Decode uint256 from ABI response at 32-byte slot offset.

    Args:
        hex_data: Hex string (without 0x prefix).
        slot: Which 32-byte word to read (0-indexed).
    """
    start = slot * ABI_WORD_HEX
    word = hex_data[start:start + ABI_WORD_HEX]
    if len(word) != ABI_WORD_HEX:
        raise ValueError(f"ABI response too short for slot {slot}")
    return int(word, 16)


def decode_int(hex_data: str, slot: int = 0) -> int:
    """Decode int256 (two's complement) from ABI response."""
    val = decode_uint(hex_data, slot)
    if val >= SIGN_BIT:
        return val - Q256
    return val


def decode_address(hex_data: str, slot: int = 0) -> str:
    """Decode address (last 20 bytes of 32-byte slot), lowercase."""
    decode_uint(hex_data, slot)  # bounds check
    start = slot * ABI_WORD_HEX
    return "0x" + hex_data[start + ADDRESS_PAD_HEX:start + ABI_WORD_HEX].lower()


def decode_bool(hex_data: str, slot: int = 0) -> bool:
    return decode_uint(hex_data, slot) != 0


def _decode_word(abi_type: str, hex_data: str, slot: int) -> Any:
    if abi_type == "address":
        return decode_address(hex_data, slot)
    if abi_type == "bool":
        return decode_bool(hex_data, slot)
    if abi_type.startswith("uint"):
        return decode_uint(hex_data, slot)
    if abi_type.startswith("int"):
        return decode_int(hex_data, slot)
    raise ValueError(f"Unsupported output type: {abi_type}")


def decode_result(method: MethodSpec, hex_data: str) -> Any:
    """Decode an eth_call result by the method's declared outputs.

    A single output comes back as the bare value; several outputs come
    back as a dict keyed by output name (e.g. slot0()["sqrtPriceX96"]).
    """
    if len(method.outputs) == 1:
        _, abi_type = method.outputs[0]
        return _decode_word(abi_type, hex_data, 0)
    return {
        name: _decode_word(abi_type, hex_data, slot)
        for slot, (name, abi_type) in enumerate(method.outputs)
    }


# ── JSON-RPC Client ─────────────────────────────────────────────────────

async def eth_call(rpc_url: str, to: str, data: str, timeout: float = 20) -> str:
    """
    Execute eth_call on an EVM node.

    Args:
        rpc_url: JSON-RPC endpoint URL (e.g. https://1rpc.io/eth)
        to: Contract address (0x...)
        data: ABI-encoded calldata (0x + selector + params)
        timeout: HTTP timeout in seconds

    Returns:
        Hex response string (without 0x prefix).

    Raises:
        RuntimeError: If RPC returns an error or empty response.
        httpx.HTTPError: On transport failure or non-2xx status.
    """
    payload = {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "eth_call",
        "params": [{"to": to, "data": data}, "latest"],
    }
    async with httpx.AsyncClient(timeout=timeout) as client:
        resp = await client.post(rpc_url, json=payload)
        resp.raise_for_status()
        result = resp.json()
        if "error" in result:
            raise RuntimeError(f"RPC error: {result['error'].get('message', result['error'])}")
        raw = result.get("result", "0x")
        if raw == "0x" or len(raw) < 4:
            raise RuntimeError("Empty response — contract may not exist at this address")
        return raw[2:]  # strip 0x prefix


# ── ChainReader ─────────────────────────────────────────────────────────

class ChainReader(Protocol):
    """Read-only contract caller consumed by the pricing components."""

    async def call(
        self,
        address: str,
        interface: ContractInterface,
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        ...


class RpcChainReader:
    """
    ChainReader backed by a public JSON-RPC endpoint.

    Usage:
        reader = RpcChainReader("https://1rpc.io/eth")
        pair = await reader.call(factory, UNISWAP_V2_FACTORY, "getPair", [token, weth])
    """

    def __init__(self, rpc_url: str, timeout: float = 20):
        self.rpc_url = rpc_url
        self.timeout = timeout

    async def call(
        self,
        address: str,
        interface: ContractInterface,
        method: str,
        args: Sequence[Any] = (),
    ) -> Any:
        spec = interface.method(method)
        calldata = encode_call(spec, args)
        logger.debug("eth_call %s.%s @ %s", interface.name, method, address)
        raw = await eth_call(self.rpc_url, address, calldata, timeout=self.timeout)
        return decode_result(spec, raw)

    def __repr__(self) -> str:
        return f"RpcChainReader({self.rpc_url!r})"
