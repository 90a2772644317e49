"""
Pydantic models for blockchain balance endpoints.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class WalletBalanceRequest(BaseModel):
    """Wallet + currency to look up."""
    address: str = Field(..., min_length=20, max_length=128, description="Wallet address")
    currency: str = Field(..., min_length=2, max_length=10, description="Token symbol (TRX, USDT, ETH...)")
    blockchain: str = Field(..., min_length=2, max_length=32, description="Chain name (tron, ethereum, bsc)")

    class Config:
        json_schema_extra = {
            "example": {
                "address": "TXYZopYRdj2D9XRtbG411XZZ3kM5VkAeBf",
                "currency": "USDT",
                "blockchain": "tron",
            }
        }


class HistoricalBalanceRequest(WalletBalanceRequest):
    as_of: date = Field(..., alias="asOfDate", description="End-of-day date (YYYY-MM-DD)")

    class Config:
        populate_by_name = True


class PrefetchBalancesRequest(BaseModel):
    wallets: List[WalletBalanceRequest] = Field(..., min_length=1, max_length=100)


class InvalidateBalanceRequest(BaseModel):
    address: str = Field(..., min_length=20, max_length=128)
    blockchain: str = Field(..., min_length=2, max_length=32)
    currency: Optional[str] = Field(None, description="Only this currency; all when omitted")


class BalanceResponse(BaseModel):
    address: str
    blockchain: str
    currency: str
    balance: float
    cached: bool
    error: Optional[str] = None


class HistoricalBalanceResponse(BaseModel):
    address: str
    blockchain: str
    currency: str
    as_of: date = Field(..., alias="asOfDate")
    net_amount: Optional[float] = Field(None, alias="netAmount")
    total_incoming: Optional[float] = Field(None, alias="totalIncoming")
    total_outgoing: Optional[float] = Field(None, alias="totalOutgoing")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class PrefetchBalancesResponse(BaseModel):
    balances: List[BalanceResponse]
    total: int
    failed: int
