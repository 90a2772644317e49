"""
TronGrid client for TRX and TRC-20 balances.

API: https://developers.tron.network/reference/get-account-info-by-address
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from backoffice.data_sources.blockchain.base import (
    BlockchainProvider,
    ProviderError,
    TokenContract,
    Transfer,
    from_base_units,
)

logger = logging.getLogger(__name__)

TRX_DECIMALS = 6

TRC20_TOKENS: Dict[str, TokenContract] = {
    "USDT": TokenContract("TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t", 6),
    "USDC": TokenContract("TEkxiTehnzSmSe2XqrBj4w32RUN966rdz8", 6),
}

PAGE_SIZE = 200
MAX_PAGES = 20


class TronGridProvider(BlockchainProvider):
    """Tron mainnet balances via TronGrid (API key optional, raises rate limits)."""

    chains = ("tron",)
    name = "TronGrid"

    def __init__(
        self,
        base_url: str = "https://api.trongrid.io",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            base_url,
            api_key=api_key or os.getenv("TRONGRID_API_KEY"),
            timeout=timeout,
            client=client,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["TRON-PRO-API-KEY"] = self.api_key
        return headers

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload = await self._get_json(f"{self.base_url}{path}", params=params, headers=self._headers())
        if not isinstance(payload, dict) or payload.get("success") is False:
            error = payload.get("error") if isinstance(payload, dict) else payload
            raise ProviderError(f"TronGrid error: {error}")
        return payload

    async def get_balance(self, address: str, currency: str, blockchain: str = "tron") -> float:
        """
        Current TRX or TRC-20 balance.

        An account that was never activated has no data and a zero balance.
        """
        symbol = currency.upper()
        if symbol != "TRX" and symbol not in TRC20_TOKENS:
            raise ProviderError(f"Unsupported Tron currency: {currency}")

        payload = await self._get(f"/v1/accounts/{address}")
        accounts = payload.get("data") or []
        if not accounts:
            logger.debug(f"Tron account {address} not found, balance is 0")
            return 0.0

        account = accounts[0]
        if symbol == "TRX":
            return float(from_base_units(account.get("balance", 0), TRX_DECIMALS))

        token = TRC20_TOKENS[symbol]
        for holding in account.get("trc20", []):
            if token.address in holding:
                return float(from_base_units(holding[token.address], token.decimals))
        return 0.0

    async def get_transfers(
        self,
        address: str,
        currency: str,
        blockchain: str,
        until: datetime,
    ) -> List[Transfer]:
        """TRC-20 transfers touching address, confirmed before until."""
        token = TRC20_TOKENS.get(currency.upper())
        if token is None:
            raise ProviderError(f"Historical balances are only available for TRC-20 tokens, not {currency}")

        params: Dict[str, Any] = {
            "contract_address": token.address,
            "max_timestamp": int(until.timestamp() * 1000),
            "limit": PAGE_SIZE,
            "only_confirmed": "true",
        }

        transfers: List[Transfer] = []
        for _ in range(MAX_PAGES):
            payload = await self._get(f"/v1/accounts/{address}/transactions/trc20", params=params)
            for item in payload.get("data") or []:
                decimals = int((item.get("token_info") or {}).get("decimals", token.decimals))
                transfers.append(Transfer(
                    from_address=item.get("from", ""),
                    to_address=item.get("to", ""),
                    amount=from_base_units(item.get("value", 0), decimals),
                    timestamp=datetime.fromtimestamp(item["block_timestamp"] / 1000, tz=timezone.utc),
                ))

            fingerprint = (payload.get("meta") or {}).get("fingerprint")
            if not fingerprint:
                break
            params["fingerprint"] = fingerprint
        else:
            logger.warning(f"TronGrid history for {address} truncated at {MAX_PAGES} pages")

        return transfers
