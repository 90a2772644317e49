"""Tests for blockchain balance providers."""

from datetime import date, datetime, timezone
from decimal import Decimal

import httpx
import pytest

from backoffice.data_sources.blockchain import (
    EtherscanProvider,
    ProviderError,
    ProviderNotConfigured,
    TronGridProvider,
)
from backoffice.data_sources.blockchain.base import Transfer, summarize_transfers
from backoffice.data_sources.blockchain.trongrid import TRC20_TOKENS

WALLET = "TXYZopYRdj2D9XRtbG411XZZ3kM5VkAeBf"
EVM_WALLET = "0x1111111111111111111111111111111111111111"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _ts(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestSummarizeTransfers:
    def test_incoming_outgoing_and_cutoff(self):
        transfers = [
            Transfer("other", WALLET, Decimal("100"), _ts(2024, 5, 1, 9)),
            Transfer(WALLET, "other", Decimal("30.5"), _ts(2024, 5, 1, 23, 59)),
            Transfer("other", WALLET, Decimal("1000"), _ts(2024, 5, 2, 0, 1)),
        ]

        summary = summarize_transfers(transfers, WALLET, date(2024, 5, 1))

        assert summary.total_incoming == 100.0
        assert summary.total_outgoing == 30.5
        assert summary.net_amount == 69.5
        assert summary.transfer_count == 2

    def test_addresses_compared_case_insensitively(self):
        transfers = [Transfer("x", EVM_WALLET.upper(), Decimal("1"), _ts(2024, 1, 1))]

        summary = summarize_transfers(transfers, EVM_WALLET, date(2024, 1, 1))

        assert summary.total_incoming == 1.0

    def test_self_transfer_nets_to_zero(self):
        transfers = [Transfer(WALLET, WALLET, Decimal("5"), _ts(2024, 1, 1))]

        summary = summarize_transfers(transfers, WALLET, date(2024, 1, 1))

        assert summary.net_amount == 0.0
        assert summary.transfer_count == 1


class TestTronGridProvider:
    """Tests for TronGridProvider."""

    @pytest.mark.asyncio
    async def test_trx_balance_in_sun(self):
        def handler(request):
            assert request.url.path == f"/v1/accounts/{WALLET}"
            return httpx.Response(200, json={"success": True, "data": [{"balance": 12_500_000}]})

        provider = TronGridProvider(api_key="k", client=_client(handler))

        assert await provider.get_balance(WALLET, "TRX") == 12.5

    @pytest.mark.asyncio
    async def test_trc20_balance(self):
        usdt = TRC20_TOKENS["USDT"].address

        def handler(request):
            assert request.headers["TRON-PRO-API-KEY"] == "k"
            return httpx.Response(200, json={
                "success": True,
                "data": [{"balance": 0, "trc20": [{usdt: "2500000"}]}],
            })

        provider = TronGridProvider(api_key="k", client=_client(handler))

        assert await provider.get_balance(WALLET, "usdt") == 2.5

    @pytest.mark.asyncio
    async def test_inactive_account_is_zero(self):
        provider = TronGridProvider(client=_client(
            lambda request: httpx.Response(200, json={"success": True, "data": []})
        ))

        assert await provider.get_balance(WALLET, "USDT") == 0.0

    @pytest.mark.asyncio
    async def test_http_error_becomes_provider_error(self):
        provider = TronGridProvider(client=_client(lambda request: httpx.Response(503)))

        with pytest.raises(ProviderError):
            await provider.get_balance(WALLET, "TRX")

    @pytest.mark.asyncio
    async def test_unsupported_currency(self):
        provider = TronGridProvider(client=_client(lambda request: httpx.Response(200, json={})))

        with pytest.raises(ProviderError, match="Unsupported Tron currency"):
            await provider.get_balance(WALLET, "DOGE")

    @pytest.mark.asyncio
    async def test_historical_follows_fingerprint(self):
        pages = {
            None: {
                "success": True,
                "data": [{
                    "from": "TOther", "to": WALLET, "value": "5000000",
                    "block_timestamp": int(_ts(2024, 5, 1, 10).timestamp() * 1000),
                    "token_info": {"decimals": 6},
                }],
                "meta": {"fingerprint": "next"},
            },
            "next": {
                "success": True,
                "data": [{
                    "from": WALLET, "to": "TOther", "value": "1000000",
                    "block_timestamp": int(_ts(2024, 5, 1, 11).timestamp() * 1000),
                    "token_info": {"decimals": 6},
                }],
                "meta": {},
            },
        }

        def handler(request):
            assert request.url.path.endswith("/transactions/trc20")
            return httpx.Response(200, json=pages[request.url.params.get("fingerprint")])

        provider = TronGridProvider(client=_client(handler))

        summary = await provider.get_historical_balance(WALLET, "USDT", "tron", date(2024, 5, 1))

        assert summary.total_incoming == 5.0
        assert summary.total_outgoing == 1.0
        assert summary.net_amount == 4.0


class TestEtherscanProvider:
    """Tests for EtherscanProvider."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
        provider = EtherscanProvider(client=_client(lambda request: httpx.Response(200, json={})))

        with pytest.raises(ProviderNotConfigured):
            await provider.get_balance(EVM_WALLET, "ETH", "ethereum")

    @pytest.mark.asyncio
    async def test_native_balance_uses_chain_id(self):
        def handler(request):
            params = request.url.params
            assert params["chainid"] == "56"
            assert params["action"] == "balance"
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": "1500000000000000000"})

        provider = EtherscanProvider(api_key="k", client=_client(handler))

        assert await provider.get_balance(EVM_WALLET, "BNB", "bsc") == 1.5

    @pytest.mark.asyncio
    async def test_token_balance(self):
        def handler(request):
            params = request.url.params
            assert params["action"] == "tokenbalance"
            assert params["chainid"] == "1"
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": "42000000"})

        provider = EtherscanProvider(api_key="k", client=_client(handler))

        assert await provider.get_balance(EVM_WALLET, "USDT", "ethereum") == 42.0

    @pytest.mark.asyncio
    async def test_api_error_raises(self):
        provider = EtherscanProvider(api_key="k", client=_client(
            lambda request: httpx.Response(200, json={"status": "0", "message": "NOTOK", "result": "Invalid API Key"})
        ))

        with pytest.raises(ProviderError, match="Invalid API Key"):
            await provider.get_balance(EVM_WALLET, "ETH", "ethereum")

    @pytest.mark.asyncio
    async def test_no_transactions_is_empty_history(self):
        provider = EtherscanProvider(api_key="k", client=_client(
            lambda request: httpx.Response(200, json={"status": "0", "message": "No transactions found", "result": []})
        ))

        summary = await provider.get_historical_balance(EVM_WALLET, "ETH", "ethereum", date(2024, 1, 1))

        assert summary.net_amount == 0.0
        assert summary.transfer_count == 0

    @pytest.mark.asyncio
    async def test_history_skips_failed_and_later_transactions(self):
        day = _ts(2024, 3, 1, 12)
        rows = [
            {"from": "0xother", "to": EVM_WALLET, "value": "2000000000000000000",
             "timeStamp": str(int(day.timestamp())), "isError": "0"},
            {"from": EVM_WALLET, "to": "0xother", "value": "1000000000000000000",
             "timeStamp": str(int(day.timestamp())), "isError": "1"},
            {"from": "0xother", "to": EVM_WALLET, "value": "9000000000000000000",
             "timeStamp": str(int(_ts(2024, 3, 5).timestamp())), "isError": "0"},
        ]

        def handler(request):
            assert request.url.params["action"] == "txlist"
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": rows})

        provider = EtherscanProvider(api_key="k", client=_client(handler))

        summary = await provider.get_historical_balance(EVM_WALLET, "ETH", "ethereum", date(2024, 3, 1))

        assert summary.total_incoming == 2.0
        assert summary.total_outgoing == 0.0

    def test_supported_chains(self):
        provider = EtherscanProvider(api_key="k")

        assert provider.supports("ethereum")
        assert provider.supports("bsc")
        assert not provider.supports("tron")
