"""Provider adapters, one independent class per external data source.

Every adapter implements :class:`~invest_workflows.core.protocols.ProviderAdapter`
and composes a :class:`~invest_workflows.providers.http.ProviderClient`.
"""

from __future__ import annotations

from invest_workflows.providers.adapters.alpha_vantage import AlphaVantageAdapter
from invest_workflows.providers.adapters.bloomberg import BloombergAdapter
from invest_workflows.providers.adapters.cnbc import CNBCAdapter
from invest_workflows.providers.adapters.finviz import FinvizAdapter
from invest_workflows.providers.adapters.fmp import FMPAdapter
from invest_workflows.providers.adapters.fred import FREDAdapter
from invest_workflows.providers.adapters.marketbeat import MarketBeatAdapter
from invest_workflows.providers.adapters.morningstar import MorningstarAdapter
from invest_workflows.providers.adapters.polygon import PolygonAdapter
from invest_workflows.providers.adapters.reuters import ReutersAdapter
from invest_workflows.providers.adapters.sec_edgar import SECEdgarAdapter
from invest_workflows.providers.adapters.simplywallst import SimplyWallStAdapter
from invest_workflows.providers.adapters.tipranks import TipRanksAdapter
from invest_workflows.providers.adapters.tradingview import TradingViewAdapter
from invest_workflows.providers.adapters.yahoo import YahooFinanceAdapter

ADAPTER_CLASSES = (
    AlphaVantageAdapter,
    FMPAdapter,
    PolygonAdapter,
    FREDAdapter,
    SECEdgarAdapter,
    YahooFinanceAdapter,
    FinvizAdapter,
    CNBCAdapter,
    BloombergAdapter,
    MorningstarAdapter,
    ReutersAdapter,
    SimplyWallStAdapter,
    TradingViewAdapter,
    TipRanksAdapter,
    MarketBeatAdapter,
)
"""Every built-in adapter class, in the order the registry builds them."""

__all__ = [
    "ADAPTER_CLASSES",
    "AlphaVantageAdapter",
    "BloombergAdapter",
    "CNBCAdapter",
    "FMPAdapter",
    "FREDAdapter",
    "FinvizAdapter",
    "MarketBeatAdapter",
    "MorningstarAdapter",
    "PolygonAdapter",
    "ReutersAdapter",
    "SECEdgarAdapter",
    "SimplyWallStAdapter",
    "TipRanksAdapter",
    "TradingViewAdapter",
    "YahooFinanceAdapter",
]
