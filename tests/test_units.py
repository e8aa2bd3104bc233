"""
Unit Tests for DEX Price Support Modules
=========================================

Covers:
  - rpc_helpers.py     (ABI encoding/decoding, eth_call, RpcChainReader)
  - contracts.py       (interface descriptors)
  - central_config.py  (NetworkConfig validation, presets, load_config)
  - errors.py          (tagged errors, cause chain)
  - concurrency.py     (join_all settle-then-raise semantics)
  - commands.py / run.py (CLI parsing, dispatch, exit codes)

All tests are offline — no network calls. Mock-based where needed.
"""

import asyncio
import json
from dataclasses import FrozenInstanceError
from unittest.mock import patch, MagicMock, AsyncMock

import pytest

# ═══════════════════════════════════════════════════════════════════════════
# 1. rpc_helpers.py
# ═══════════════════════════════════════════════════════════════════════════

from dex_price.contracts import (
    CHAINLINK_AGGREGATOR,
    UNISWAP_V2_FACTORY,
    UNISWAP_V2_PAIR,
    UNISWAP_V3_FACTORY,
    UNISWAP_V3_POOL,
    MethodSpec,
)
from dex_price.rpc_helpers import (
    Q96,
    ZERO_ADDRESS,
    RpcChainReader,
    decode_address,
    decode_int,
    decode_result,
    decode_uint,
    encode_address,
    encode_call,
    encode_uint24,
    eth_call,
    is_address,
)

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
TOKEN = "0x34F5C9449Bae9b1D96044690164BD66f2f604c1e"


def _word(value: int) -> str:
    return format(value, "064x")


def _mock_rpc(payload):
    """Patch httpx.AsyncClient so post() returns a response with the given JSON."""
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status = MagicMock()
    patcher = patch("dex_price.rpc_helpers.httpx.AsyncClient")
    MockClient = patcher.start()
    mock_client = AsyncMock()
    mock_client.post.return_value = mock_response
    MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    MockClient.return_value.__aexit__ = AsyncMock(return_value=False)
    return patcher, mock_client


class TestIsAddress:
    @pytest.mark.parametrize("addr", [WETH, TOKEN, ZERO_ADDRESS])
    def test_valid(self, addr):
        assert is_address(addr) is True

    @pytest.mark.parametrize("addr", ["", "0x123", WETH[2:], WETH + "00", "0x" + "g" * 40, None])
    def test_invalid(self, addr):
        assert is_address(addr) is False


class TestEncoding:
    def test_address_lowercased_and_padded(self):
        assert encode_address(TOKEN) == "0" * 24 + TOKEN[2:].lower()

    def test_address_invalid(self):
        with pytest.raises(ValueError, match="Invalid address"):
            encode_address("0x1234")

    def test_uint24_fee(self):
        assert encode_uint24(3000) == "0" * 61 + "bb8"
        assert encode_uint24(500) == "0" * 61 + "1f4"

    def test_uint24_out_of_range(self):
        with pytest.raises(ValueError):
            encode_uint24(1 << 24)


class TestEncodeCall:
    def test_get_pair(self):
        data = encode_call(UNISWAP_V2_FACTORY.method("getPair"), [TOKEN, WETH])
        assert data == "0xe6a43905" + encode_address(TOKEN) + encode_address(WETH)

    def test_get_pool_with_fee(self):
        data = encode_call(UNISWAP_V3_FACTORY.method("getPool"), [TOKEN, WETH, 10000])
        assert data.startswith("0x1698ee82")
        assert data.endswith(_word(10000))
        assert len(data) == 10 + 3 * 64

    def test_no_args(self):
        assert encode_call(UNISWAP_V3_POOL.method("slot0"), []) == "0x3850c7bd"

    def test_arg_count_mismatch(self):
        with pytest.raises(ValueError, match="takes 2 argument"):
            encode_call(UNISWAP_V2_FACTORY.method("getPair"), [TOKEN])

    def test_unsupported_type(self):
        spec = MethodSpec("f", "0x00000000", ("string",), ())
        with pytest.raises(ValueError, match="Unsupported input type"):
            encode_call(spec, ["x"])

    def test_uint256_input_not_encodable(self):
        spec = MethodSpec("f", "0x00000000", ("uint256",), ())
        with pytest.raises(ValueError, match="Unsupported input type"):
            encode_call(spec, [1])

    @pytest.mark.parametrize("interface, methods", [
        (UNISWAP_V2_PAIR, {"token0", "getReserves"}),
        (UNISWAP_V3_POOL, {"slot0"}),
        (CHAINLINK_AGGREGATOR, {"latestAnswer"}),
    ])
    def test_interfaces_list_only_called_methods(self, interface, methods):
        assert set(interface.methods) == methods


class TestDecoding:
    def test_uint_slot_offset(self):
        data = _word(7) + _word(9)
        assert decode_uint(data, 1) == 9

    def test_uint_short_response(self):
        with pytest.raises(ValueError, match="too short"):
            decode_uint("00" * 10, 0)

    def test_int_negative(self):
        assert decode_int("f" * 64) == -1

    def test_address_lowercase(self):
        data = "0" * 24 + TOKEN[2:].upper()
        assert decode_address(data) == TOKEN.lower()

    def test_single_output_bare_value(self):
        data = "0" * 24 + WETH[2:]
        assert decode_result(UNISWAP_V2_PAIR.method("token0"), data) == WETH

    def test_get_reserves_named(self):
        data = _word(1000) + _word(4) + _word(1700000000)
        out = decode_result(UNISWAP_V2_PAIR.method("getReserves"), data)
        assert out == {"reserve0": 1000, "reserve1": 4, "blockTimestampLast": 1700000000}

    def test_slot0_negative_tick(self):
        data = _word(Q96) + "f" * 64 + _word(1) + _word(1) + _word(1) + _word(0) + _word(1)
        out = decode_result(UNISWAP_V3_POOL.method("slot0"), data)
        assert out["sqrtPriceX96"] == Q96
        assert out["tick"] == -1
        assert out["unlocked"] is True

    def test_latest_answer(self):
        assert decode_result(CHAINLINK_AGGREGATOR.method("latestAnswer"), _word(123456789012)) == 123456789012


class TestEthCallMocked:
    """Test eth_call with mocked httpx responses."""

    def test_successful_call(self):
        patcher, client = _mock_rpc({"jsonrpc": "2.0", "id": 1, "result": "0x" + "0" * 63 + "1"})
        try:
            result = asyncio.run(eth_call("http://fake", "0xAddr", "0xData"))
        finally:
            patcher.stop()
        assert result == "0" * 63 + "1"
        payload = client.post.call_args.kwargs["json"]
        assert payload["method"] == "eth_call"
        assert payload["params"] == [{"to": "0xAddr", "data": "0xData"}, "latest"]

    def test_rpc_error_raises(self):
        patcher, _ = _mock_rpc({"jsonrpc": "2.0", "id": 1, "error": {"message": "execution reverted"}})
        try:
            with pytest.raises(RuntimeError, match="RPC error"):
                asyncio.run(eth_call("http://fake", "0xAddr", "0xData"))
        finally:
            patcher.stop()

    def test_empty_response_raises(self):
        patcher, _ = _mock_rpc({"jsonrpc": "2.0", "id": 1, "result": "0x"})
        try:
            with pytest.raises(RuntimeError, match="Empty response"):
                asyncio.run(eth_call("http://fake", "0xAddr", "0xData"))
        finally:
            patcher.stop()


class TestRpcChainReader:
    def test_call_encodes_and_decodes(self):
        pair = "0x" + "ab" * 20
        patcher, client = _mock_rpc({"jsonrpc": "2.0", "id": 1, "result": "0x" + "0" * 24 + pair[2:]})
        try:
            reader = RpcChainReader("http://fake", timeout=5)
            result = asyncio.run(reader.call(
                "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f", UNISWAP_V2_FACTORY, "getPair", [TOKEN, WETH],
            ))
        finally:
            patcher.stop()
        assert result == pair
        payload = client.post.call_args.kwargs["json"]
        assert payload["params"][0]["data"] == "0xe6a43905" + encode_address(TOKEN) + encode_address(WETH)

    def test_unknown_method(self):
        reader = RpcChainReader("http://fake")
        with pytest.raises(KeyError, match="no method"):
            asyncio.run(reader.call(WETH, UNISWAP_V2_PAIR, "slot0"))


# ═══════════════════════════════════════════════════════════════════════════
# 2. central_config.py
# ═══════════════════════════════════════════════════════════════════════════

from dex_price.central_config import (
    DEFAULT_FEE_TIERS,
    ETHEREUM_MAINNET,
    NETWORKS,
    PROJECT_NAME,
    PROJECT_VERSION,
    RPC_URL_ENV,
    RPC_URLS,
    NetworkConfig,
    load_config,
)


def _cfg(**overrides):
    fields = dict(
        name="test",
        rpc_url="http://fake",
        constant_product_factory=ETHEREUM_MAINNET.constant_product_factory,
        concentrated_liquidity_factory=ETHEREUM_MAINNET.concentrated_liquidity_factory,
        oracle=ETHEREUM_MAINNET.oracle,
        reference_asset=ETHEREUM_MAINNET.reference_asset,
    )
    fields.update(overrides)
    return NetworkConfig(**fields)


class TestCentralConfig:
    def test_project_version_non_empty(self):
        assert PROJECT_VERSION

    def test_project_name(self):
        assert PROJECT_NAME == "DEX Price"

    def test_mainnet_preset(self):
        assert ETHEREUM_MAINNET.reference_asset == WETH
        assert ETHEREUM_MAINNET.fee_tiers == (500, 3000, 10000)
        assert ETHEREUM_MAINNET.oracle_decimals == 8
        assert ETHEREUM_MAINNET.rpc_url == RPC_URLS["ethereum"]
        assert NETWORKS["ethereum"] is ETHEREUM_MAINNET

    def test_frozen(self):
        with pytest.raises(FrozenInstanceError):
            ETHEREUM_MAINNET.oracle = WETH

    def test_default_fee_tiers_ascending(self):
        assert list(DEFAULT_FEE_TIERS) == sorted(DEFAULT_FEE_TIERS)

    def test_invalid_address_rejected(self):
        with pytest.raises(ValueError, match="oracle"):
            _cfg(oracle="0x1234")

    def test_empty_fee_tiers_rejected(self):
        with pytest.raises(ValueError, match="fee_tiers"):
            _cfg(fee_tiers=())

    @pytest.mark.parametrize("tiers", [(10000, 3000, 500), (500, 3000, 3000), (3000, 500)])
    def test_unordered_fee_tiers_rejected(self, tiers):
        with pytest.raises(ValueError, match="strictly ascending"):
            _cfg(fee_tiers=tiers)

    def test_fee_tiers_list_becomes_tuple(self):
        assert _cfg(fee_tiers=[500, 3000]).fee_tiers == (500, 3000)

    def test_addresses_not_normalized(self):
        mixed = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
        assert _cfg(reference_asset=mixed).reference_asset == mixed


class TestLoadConfig:
    def test_default_is_mainnet(self, monkeypatch):
        monkeypatch.delenv(RPC_URL_ENV, raising=False)
        with patch("dex_price.central_config.load_dotenv"):
            assert load_config() is ETHEREUM_MAINNET

    def test_explicit_rpc_wins(self, monkeypatch):
        monkeypatch.setenv(RPC_URL_ENV, "http://env")
        with patch("dex_price.central_config.load_dotenv"):
            cfg = load_config("ethereum", rpc_url="http://explicit")
        assert cfg.rpc_url == "http://explicit"
        assert cfg.reference_asset == WETH

    def test_env_rpc(self, monkeypatch):
        monkeypatch.setenv(RPC_URL_ENV, "http://env")
        with patch("dex_price.central_config.load_dotenv"):
            assert load_config("Ethereum").rpc_url == "http://env"

    def test_unknown_network(self):
        with pytest.raises(ValueError, match="Unsupported network"):
            load_config("solana")


# ═══════════════════════════════════════════════════════════════════════════
# 3. errors.py
# ═══════════════════════════════════════════════════════════════════════════

from dex_price.errors import (
    ErrorKind,
    OracleUnavailable,
    PoolLookupFailed,
    PriceError,
    PriceExtractionFailed,
    PriceResolutionFailed,
)


class TestErrors:
    @pytest.mark.parametrize("cls,kind", [
        (OracleUnavailable, ErrorKind.ORACLE_UNAVAILABLE),
        (PoolLookupFailed, ErrorKind.POOL_LOOKUP_FAILED),
        (PriceExtractionFailed, ErrorKind.PRICE_EXTRACTION_FAILED),
        (PriceResolutionFailed, ErrorKind.PRICE_RESOLUTION_FAILED),
    ])
    def test_kinds(self, cls, kind):
        err = cls()
        assert err.kind is kind
        assert isinstance(err, PriceError)
        assert isinstance(err, RuntimeError)

    def test_message_includes_cause(self):
        err = PoolLookupFailed("Failed to get Uniswap V2 pool address", cause=ValueError("bad"))
        assert str(err) == "Failed to get Uniswap V2 pool address: bad"

    def test_no_cause(self):
        assert str(PriceResolutionFailed()) == "Failed to get price information"
        assert PriceResolutionFailed().root_cause is None

    def test_root_cause_walks_chain(self):
        root = ConnectionError("down")
        err = PriceResolutionFailed(cause=OracleUnavailable(cause=root))
        assert err.root_cause is root
        assert "down" in str(err)


# ═══════════════════════════════════════════════════════════════════════════
# 4. concurrency.py
# ═══════════════════════════════════════════════════════════════════════════

from dex_price.concurrency import join_all


class TestJoinAll:
    def test_results_in_order(self):
        async def val(x, delay):
            await asyncio.sleep(delay)
            return x

        assert asyncio.run(join_all(val(1, 0.02), val(2, 0), val(3, 0.01))) == [1, 2, 3]

    def test_runs_concurrently(self):
        events = []

        async def step(name):
            events.append(f"{name}-start")
            await asyncio.sleep(0)
            events.append(f"{name}-end")

        asyncio.run(join_all(step("a"), step("b")))
        assert events.index("b-start") < events.index("a-end")

    def test_failure_after_all_settle(self):
        finished = []

        async def fail():
            raise ValueError("first")

        async def slow():
            await asyncio.sleep(0.02)
            finished.append("slow")
            return 1

        with pytest.raises(ValueError, match="first"):
            asyncio.run(join_all(fail(), slow()))
        assert finished == ["slow"]

    def test_first_failure_in_argument_order(self):
        async def fail(msg, delay):
            await asyncio.sleep(delay)
            raise RuntimeError(msg)

        with pytest.raises(RuntimeError, match="early-arg"):
            asyncio.run(join_all(fail("early-arg", 0.02), fail("late-arg", 0)))


# ═══════════════════════════════════════════════════════════════════════════
# 5. commands.py / run.py
# ═══════════════════════════════════════════════════════════════════════════

from run import create_parser, main
from price_checker import PriceQuote


class TestParser:
    def test_subcommands(self):
        parser = create_parser()
        args = parser.parse_args(["price", TOKEN, "--json", "--rpc", "http://x"])
        assert args.command == "price"
        assert args.token == TOKEN
        assert args.json is True
        assert args.rpc == "http://x"
        assert args.network == "ethereum"

    def test_pools(self):
        args = create_parser().parse_args(["pools", TOKEN])
        assert args.command == "pools"

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()


def _fake_checker(quote=None, error=None):
    checker = MagicMock()
    checker.config = ETHEREUM_MAINNET
    if error is not None:
        checker.get_price = AsyncMock(side_effect=error)
    else:
        checker.get_price = AsyncMock(return_value=quote)
    return checker


class TestCliDispatch:
    def test_invalid_token_exit_1(self, capsys):
        assert main(["price", "0x123"]) == 1
        assert "Invalid address" in capsys.readouterr().out

    def test_pools_non_hex_token_exit_1(self, capsys):
        with patch("dex_price.commands._checker") as checker:
            assert main(["pools", "0x" + "g" * 40]) == 1
        checker.assert_not_called()
        assert "Invalid address" in capsys.readouterr().out

    def test_mixed_case_token_accepted(self, capsys):
        quote = PriceQuote(None, None, reference_fiat_rate=2500.0)
        with patch("dex_price.commands._checker", return_value=_fake_checker(quote)):
            assert main(["price", TOKEN]) == 0
        assert "Invalid address" not in capsys.readouterr().out

    def test_price_json(self, capsys):
        quote = PriceQuote(0.004, 10.0, reference_fiat_rate=2500.0, constant_product_pool="0x" + "a2" * 20)
        with patch("dex_price.commands._checker", return_value=_fake_checker(quote)):
            assert main(["price", TOKEN, "--json"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["price_in_reference_asset"] == 0.004
        assert out["price_in_fiat"] == 10.0
        assert out["token"] == TOKEN

    def test_price_not_found(self, capsys):
        quote = PriceQuote(None, None, reference_fiat_rate=2500.0)
        with patch("dex_price.commands._checker", return_value=_fake_checker(quote)):
            assert main(["price", TOKEN]) == 0
        assert "No WETH pool" in capsys.readouterr().out

    def test_price_error_exit_2(self, capsys):
        err = PriceResolutionFailed(cause=RuntimeError("RPC error: down"))
        with patch("dex_price.commands._checker", return_value=_fake_checker(error=err)):
            assert main(["price", TOKEN]) == 2
        assert "Failed to get price information" in capsys.readouterr().out

    def test_unknown_network_exit_1(self, capsys):
        assert main(["info", "--network", "solana"]) == 1
        assert "Unsupported network" in capsys.readouterr().out

    def test_info(self, capsys):
        assert main(["info", "--rpc", "http://x"]) == 0
        out = capsys.readouterr().out
        assert "500, 3000, 10000" in out
        assert "http://x" in out
