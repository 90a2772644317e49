"""Blockchain balance providers."""

from backoffice.data_sources.blockchain.base import (
    BlockchainProvider,
    HistoricalBalance,
    ProviderError,
    ProviderNotConfigured,
    TokenContract,
    Transfer,
    summarize_transfers,
)
from backoffice.data_sources.blockchain.etherscan import EtherscanProvider
from backoffice.data_sources.blockchain.trongrid import TronGridProvider

__all__ = [
    "BlockchainProvider",
    "EtherscanProvider",
    "HistoricalBalance",
    "ProviderError",
    "ProviderNotConfigured",
    "TokenContract",
    "Transfer",
    "TronGridProvider",
    "summarize_transfers",
]
