"""
Data Ingestion - Collectors Package.

This package contains all event source modules.
Each source is responsible for one external provider.

Sources:
- pumpportal_ws: Real-time launches and migrations via WebSocket
- helius_rpc: PumpSwap AMM migrations via Helius RPC polling
- moralis_graduated: Graduated tokens from the Moralis indexer
- twitter_search: Launch announcements from Twitter recent search
"""

from data_ingestion.collectors.base import EventSource, HttpPollingSource, PayloadHandler
from data_ingestion.collectors.helius_rpc import HeliusMigrationSource
from data_ingestion.collectors.moralis_graduated import MoralisGraduatedSource
from data_ingestion.collectors.pumpportal_ws import PumpPortalSource
from data_ingestion.collectors.twitter_search import TwitterSearchSource


__all__ = [
    "EventSource",
    "HttpPollingSource",
    "PayloadHandler",
    "PumpPortalSource",
    "HeliusMigrationSource",
    "MoralisGraduatedSource",
    "TwitterSearchSource",
]
