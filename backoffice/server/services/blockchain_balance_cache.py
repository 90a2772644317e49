"""
Blockchain balance cache service.

Wraps provider balance lookups with the shared cache:
- current balances use a short TTL since they change with every transfer
- historical (end-of-day) balances use a long TTL once the day has closed

Provider failures never propagate: a failed lookup yields a zero balance
flagged with the error, and an unsupported chain yields zero without error
logging beyond a warning.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union

import httpx

from backoffice.config.settings import get_blockchain_config
from backoffice.data_sources.blockchain import (
    BlockchainProvider,
    EtherscanProvider,
    HistoricalBalance,
    TronGridProvider,
)
from backoffice.utils.cache import (
    ReadThroughCache,
    RedisCacheClient,
    balance_key,
    balance_pattern,
    historical_balance_key,
)

logger = logging.getLogger(__name__)

CHAIN_ALIASES = {
    "eth": "ethereum",
    "trx": "tron",
    "bnb": "bsc",
    "binance-smart-chain": "bsc",
    "binance": "bsc",
}


def normalize_chain(blockchain: str) -> str:
    chain = blockchain.strip().lower()
    return CHAIN_ALIASES.get(chain, chain)


def _short(address: str) -> str:
    return f"{address[:10]}..." if len(address) > 10 else address


class WalletRef(Protocol):
    address: str
    currency: str
    blockchain: str


@dataclass
class BalanceResult:
    """Outcome of one balance lookup."""
    address: str
    blockchain: str
    currency: str
    balance: float
    cached: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "blockchain": self.blockchain,
            "currency": self.currency,
            "balance": self.balance,
            "cached": self.cached,
            "error": self.error,
        }


class BlockchainBalanceCacheService:
    """Cached balance lookups across the configured providers."""

    def __init__(
        self,
        cache: RedisCacheClient,
        providers: Sequence[BlockchainProvider],
        current_ttl: int = 300,
        historical_ttl: int = 3600,
    ):
        self.cache = cache
        self.read_through = ReadThroughCache(cache)
        self.providers = list(providers)
        self.current_ttl = current_ttl
        self.historical_ttl = historical_ttl

    @classmethod
    def from_config(
        cls,
        cache: RedisCacheClient,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "BlockchainBalanceCacheService":
        """Build the service with TronGrid and Etherscan from config.yaml settings."""
        config = get_blockchain_config()
        timeout = float(config.get("request_timeout", 10.0))
        providers = [
            TronGridProvider(
                base_url=config.get("trongrid_base_url", "https://api.trongrid.io"),
                timeout=timeout,
                client=client,
            ),
            EtherscanProvider(
                base_url=config.get("etherscan_base_url", "https://api.etherscan.io/v2/api"),
                timeout=timeout,
                client=client,
            ),
        ]
        return cls(
            cache,
            providers,
            current_ttl=int(config.get("current_balance_ttl", 300)),
            historical_ttl=int(config.get("historical_balance_ttl", 3600)),
        )

    def provider_for(self, blockchain: str) -> Optional[BlockchainProvider]:
        chain = normalize_chain(blockchain)
        for provider in self.providers:
            if provider.supports(chain):
                return provider
        return None

    async def close(self) -> None:
        for provider in self.providers:
            await provider.close()

    # ==================== Current balances ====================

    async def get_balance_result(
        self,
        address: str,
        currency: str,
        blockchain: str,
    ) -> BalanceResult:
        """
        Current balance with cache and error details.

        Returns:
            BalanceResult; balance is 0 with error set when the chain is
            unsupported or the provider failed
        """
        chain = normalize_chain(blockchain)
        symbol = currency.upper()
        provider = self.provider_for(chain)

        if provider is None:
            logger.warning(f"Unsupported blockchain for balance fetching: {blockchain}")
            return BalanceResult(
                address, chain, symbol, 0.0,
                error=f"Unsupported blockchain: {blockchain}",
            )

        key = balance_key(address, chain, symbol)
        try:
            lookup = await self.read_through.get_or_fetch(
                key,
                lambda: provider.get_balance(address, symbol, chain),
                ttl=self.current_ttl,
            )
        except Exception as e:
            logger.error(f"Balance fetch failed for {_short(address)} {symbol} on {chain}: {e}")
            return BalanceResult(address, chain, symbol, 0.0, error=str(e))

        logger.debug(
            f"Balance {'HIT' if lookup.cached else 'MISS'} for {_short(address)} {symbol} on {chain}"
        )
        return BalanceResult(address, chain, symbol, float(lookup.value), cached=lookup.cached)

    async def get_current_balance(self, address: str, currency: str, blockchain: str) -> float:
        """Current balance; 0 for unsupported chains or failed lookups."""
        result = await self.get_balance_result(address, currency, blockchain)
        return result.balance

    # ==================== Historical balances ====================

    async def get_historical_balance(
        self,
        address: str,
        blockchain: str,
        currency: str,
        as_of: Union[date, datetime],
    ) -> Optional[HistoricalBalance]:
        """
        Transfer totals up to the end of as_of, cached per calendar day.

        Days that have not closed yet are cached with the current-balance TTL.

        Returns:
            HistoricalBalance, or None if unsupported or the provider failed
        """
        chain = normalize_chain(blockchain)
        symbol = currency.upper()
        provider = self.provider_for(chain)
        if provider is None:
            logger.warning(f"Unsupported blockchain for historical balance: {blockchain}")
            return None

        day = as_of.date() if isinstance(as_of, datetime) else as_of
        today = datetime.now(timezone.utc).date()
        ttl = self.historical_ttl if day < today else self.current_ttl

        async def fetch() -> Dict[str, Any]:
            summary = await provider.get_historical_balance(address, symbol, chain, day)
            return summary.to_dict()

        key = historical_balance_key(address, chain, symbol, day)
        try:
            lookup = await self.read_through.get_or_fetch(key, fetch, ttl=ttl)
        except Exception as e:
            logger.error(
                f"Historical balance fetch failed for {_short(address)} {symbol} "
                f"on {chain} at {day.isoformat()}: {e}"
            )
            return None

        return HistoricalBalance.from_dict(lookup.value)

    # ==================== Invalidation / prefetch ====================

    async def invalidate_cache(
        self,
        address: str,
        blockchain: str,
        currency: Optional[str] = None,
    ) -> int:
        """
        Drop cached current balances for a wallet.

        Args:
            currency: Only this currency; every currency when omitted

        Returns:
            Number of entries deleted
        """
        chain = normalize_chain(blockchain)
        try:
            if currency:
                return int(await self.cache.delete(balance_key(address, chain, currency)))
            return await self.cache.delete_pattern(balance_pattern(address, chain))
        except Exception as e:
            logger.error(f"Error invalidating blockchain balance cache for {_short(address)}: {e}")
            return 0

    async def _prefetch_one(self, wallet: WalletRef) -> BalanceResult:
        try:
            return await self.get_balance_result(wallet.address, wallet.currency, wallet.blockchain)
        except Exception as e:
            logger.error(f"Failed to prefetch balance for {_short(wallet.address)}: {e}")
            return BalanceResult(
                wallet.address, normalize_chain(wallet.blockchain), wallet.currency.upper(),
                0.0, error=str(e),
            )

    async def prefetch_balances(self, wallets: Sequence[WalletRef]) -> List[BalanceResult]:
        """
        Fetch and cache balances for many wallets concurrently.

        Each lookup is isolated; a failure yields a zero, error-flagged result.
        """
        if not wallets:
            return []

        results = await asyncio.gather(*(self._prefetch_one(wallet) for wallet in wallets))
        failed = sum(1 for result in results if result.error)
        logger.info(f"Prefetched {len(results)} wallet balances ({failed} failed)")
        return list(results)
