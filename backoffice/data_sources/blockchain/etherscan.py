"""
Etherscan v2 client for Ethereum and BNB Smart Chain balances.

One API key covers every chain; the chain is selected with ``chainid``.
API: https://docs.etherscan.io/etherscan-v2
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import httpx

from backoffice.data_sources.blockchain.base import (
    BlockchainProvider,
    ProviderError,
    ProviderNotConfigured,
    TokenContract,
    Transfer,
    from_base_units,
)

logger = logging.getLogger(__name__)

CHAIN_IDS: Dict[str, int] = {
    "ethereum": 1,
    "bsc": 56,
}

NATIVE_CURRENCIES: Dict[str, Tuple[str, int]] = {
    "ethereum": ("ETH", 18),
    "bsc": ("BNB", 18),
}

TOKENS: Dict[str, Dict[str, TokenContract]] = {
    "ethereum": {
        "USDT": TokenContract("0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
        "USDC": TokenContract("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
    },
    "bsc": {
        "USDT": TokenContract("0x55d398326f99059fF775485246999027B3197955", 18),
        "USDC": TokenContract("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18),
    },
}

# Etherscan caps page * offset at 10,000 records
PAGE_SIZE = 1000
MAX_PAGES = 10


class EtherscanProvider(BlockchainProvider):
    """EVM balances via the Etherscan v2 multichain API (API key required)."""

    chains = tuple(CHAIN_IDS)
    name = "Etherscan"

    def __init__(
        self,
        base_url: str = "https://api.etherscan.io/v2/api",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            base_url,
            api_key=api_key or os.getenv("ETHERSCAN_API_KEY"),
            timeout=timeout,
            client=client,
        )

    async def _call(self, blockchain: str, params: Dict[str, Any]) -> Any:
        if not self.api_key:
            raise ProviderNotConfigured("ETHERSCAN_API_KEY is not set")

        chain = blockchain.lower()
        if chain not in CHAIN_IDS:
            raise ProviderError(f"Unsupported EVM chain: {blockchain}")

        query = {"chainid": CHAIN_IDS[chain], **params, "apikey": self.api_key}
        payload = await self._get_json(self.base_url, params=query)

        if not isinstance(payload, dict):
            raise ProviderError(f"Etherscan returned unexpected payload: {payload!r}")

        if str(payload.get("status")) == "1":
            return payload.get("result")

        message = str(payload.get("message", ""))
        result = payload.get("result")
        if message.startswith("No transactions found") or result == []:
            return []
        raise ProviderError(f"Etherscan error: {message}: {result}")

    def _resolve_currency(self, blockchain: str, currency: str) -> Optional[TokenContract]:
        """None for the chain's native coin, the token contract otherwise."""
        chain = blockchain.lower()
        symbol = currency.upper()
        native_symbol, _ = NATIVE_CURRENCIES.get(chain, ("", 18))
        if symbol == native_symbol:
            return None
        token = TOKENS.get(chain, {}).get(symbol)
        if token is None:
            raise ProviderError(f"Unsupported currency {currency} on {blockchain}")
        return token

    async def get_balance(self, address: str, currency: str, blockchain: str) -> float:
        token = self._resolve_currency(blockchain, currency)

        if token is None:
            _, decimals = NATIVE_CURRENCIES[blockchain.lower()]
            raw = await self._call(blockchain, {
                "module": "account",
                "action": "balance",
                "address": address,
                "tag": "latest",
            })
            return float(from_base_units(raw or 0, decimals))

        raw = await self._call(blockchain, {
            "module": "account",
            "action": "tokenbalance",
            "contractaddress": token.address,
            "address": address,
            "tag": "latest",
        })
        return float(from_base_units(raw or 0, token.decimals))

    async def get_transfers(
        self,
        address: str,
        currency: str,
        blockchain: str,
        until: datetime,
    ) -> List[Transfer]:
        """Native or token transfers touching address, up to until."""
        token = self._resolve_currency(blockchain, currency)

        params: Dict[str, Any] = {
            "module": "account",
            "address": address,
            "startblock": 0,
            "endblock": 99999999,
            "sort": "asc",
            "offset": PAGE_SIZE,
        }
        if token is None:
            params["action"] = "txlist"
            _, decimals = NATIVE_CURRENCIES[blockchain.lower()]
        else:
            params["action"] = "tokentx"
            params["contractaddress"] = token.address
            decimals = token.decimals

        cutoff = int(until.timestamp())
        transfers: List[Transfer] = []

        for page in range(1, MAX_PAGES + 1):
            rows = await self._call(blockchain, {**params, "page": page}) or []
            for row in rows:
                timestamp = int(row.get("timeStamp", 0))
                if timestamp > cutoff:
                    return transfers
                if row.get("isError") == "1":
                    continue
                row_decimals = int(row.get("tokenDecimal") or decimals)
                transfers.append(Transfer(
                    from_address=row.get("from", ""),
                    to_address=row.get("to", ""),
                    amount=from_base_units(row.get("value", 0), row_decimals),
                    timestamp=datetime.fromtimestamp(timestamp, tz=timezone.utc),
                ))
            if len(rows) < PAGE_SIZE:
                break
        else:
            logger.warning(f"Etherscan history for {address} truncated at {MAX_PAGES} pages")

        return transfers
