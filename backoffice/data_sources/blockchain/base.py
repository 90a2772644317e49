"""
Shared types and HTTP plumbing for blockchain balance providers.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import httpx

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """A provider request failed or returned an error payload."""


class ProviderNotConfigured(ProviderError):
    """The provider needs an API key that is not set."""


@dataclass(frozen=True)
class TokenContract:
    address: str
    decimals: int


@dataclass(frozen=True)
class Transfer:
    """One value movement touching a wallet."""
    from_address: str
    to_address: str
    amount: Decimal
    timestamp: datetime


@dataclass(frozen=True)
class HistoricalBalance:
    """Transfer totals for a wallet up to a point in time."""
    net_amount: float
    total_incoming: float
    total_outgoing: float
    transfer_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "netAmount": self.net_amount,
            "totalIncoming": self.total_incoming,
            "totalOutgoing": self.total_outgoing,
            "transferCount": self.transfer_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalBalance":
        return cls(
            net_amount=float(data.get("netAmount", 0)),
            total_incoming=float(data.get("totalIncoming", 0)),
            total_outgoing=float(data.get("totalOutgoing", 0)),
            transfer_count=int(data.get("transferCount", 0)),
        )


def end_of_day(as_of: Union[date, datetime]) -> datetime:
    """Latest UTC instant covered by as_of (a date covers the whole day)."""
    if isinstance(as_of, datetime):
        return as_of if as_of.tzinfo else as_of.replace(tzinfo=timezone.utc)
    return datetime.combine(as_of, time.max, tzinfo=timezone.utc)


def from_base_units(raw: Union[str, int], decimals: int) -> Decimal:
    return Decimal(str(raw)) / (Decimal(10) ** decimals)


def summarize_transfers(
    transfers: Iterable[Transfer],
    address: str,
    as_of: Union[date, datetime],
) -> HistoricalBalance:
    """
    Total the incoming and outgoing amounts of a wallet up to as_of.

    Addresses are compared case-insensitively. A self-transfer counts on both
    sides and nets to zero. Transfers after as_of are ignored.
    """
    wallet = address.strip().lower()
    cutoff = end_of_day(as_of)

    incoming = Decimal(0)
    outgoing = Decimal(0)
    count = 0
    for transfer in transfers:
        if transfer.timestamp > cutoff:
            continue
        touched = False
        if transfer.to_address.lower() == wallet:
            incoming += transfer.amount
            touched = True
        if transfer.from_address.lower() == wallet:
            outgoing += transfer.amount
            touched = True
        count += touched

    return HistoricalBalance(
        net_amount=float(incoming - outgoing),
        total_incoming=float(incoming),
        total_outgoing=float(outgoing),
        transfer_count=count,
    )


class BlockchainProvider:
    """
    Base class for async balance providers.

    Subclasses declare the chains they serve and implement get_balance and
    get_transfers. The httpx client is created lazily unless one is injected.
    """

    chains: Tuple[str, ...] = ()
    name = "provider"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def supports(self, blockchain: str) -> bool:
        return blockchain.lower() in self.chains

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                limits=httpx.Limits(max_keepalive_connections=10),
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        client = await self._get_client()
        try:
            response = await client.get(url, params=params, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name} request timed out: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"{self.name} request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"{self.name} returned invalid JSON: {e}") from e

    async def get_balance(self, address: str, currency: str, blockchain: str) -> float:
        raise NotImplementedError

    async def get_transfers(
        self,
        address: str,
        currency: str,
        blockchain: str,
        until: datetime,
    ) -> List[Transfer]:
        raise NotImplementedError

    async def get_historical_balance(
        self,
        address: str,
        currency: str,
        blockchain: str,
        as_of: Union[date, datetime],
    ) -> HistoricalBalance:
        """Summarize the wallet's transfers in currency up to as_of."""
        transfers = await self.get_transfers(address, currency, blockchain, end_of_day(as_of))
        return summarize_transfers(transfers, address, as_of)
