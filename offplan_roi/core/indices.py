"""Economic index tables used for monetary correction and appreciation.

An ``IndexRateProvider`` resolves the monthly rate of an index family
(CUB, IPCA, IGP-M, INCC) or of a manual rate for any simulated month. The
historical tables are fetched once from a PostgREST endpoint (the
``indices_economicos`` table, one row per month ordered by ``id``) and the
provider falls back to a built-in 12-month cycle when the source is not
configured, unreachable, slow or empty. Fallback is logged, never raised.

Rates in the tables are monthly percentages (0.59 means 0.59 %); lookups
return decimals (0.0059).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import httpx


logger = logging.getLogger(__name__)


CUB_NACIONAL = "CUB_NACIONAL"
IPCA = "IPCA"
IGP_M = "IGP_M"
INCC_NACIONAL = "INCC_NACIONAL"

KNOWN_FAMILIES: Tuple[str, ...] = (CUB_NACIONAL, IPCA, IGP_M, INCC_NACIONAL)

# May/24 .. Apr/25, repeated indefinitely
FALLBACK_TABLE: Mapping[str, Tuple[float, ...]] = MappingProxyType(
    {
        CUB_NACIONAL: (0.59, 0.93, 0.69, 0.64, 0.61, 0.67, 0.44, 0.51, 0.71, 0.51, 0.38, 0.59),
        IPCA: (0.46, 0.21, 0.12, -0.02, 0.44, 0.24, 0.39, 0.52, 0.42, 0.83, 0.16, 0.43),
        IGP_M: (0.89, 0.81, 0.61, 0.29, 0.62, 1.52, 1.30, 0.94, 0.27, 1.06, -0.34, 0.24),
        INCC_NACIONAL: (0.59, 0.93, 0.69, 0.64, 0.61, 0.67, 0.44, 0.51, 0.71, 0.51, 0.38, 0.59),
    }
)

FALLBACK_PERIODS: Tuple[str, ...] = (
    "Mai/24", "Jun/24", "Jul/24", "Ago/24", "Set/24", "Out/24",
    "Nov/24", "Dez/24", "Jan/25", "Fev/25", "Mar/25", "Abr/25",
)

# column of each family in the remote rows
REMOTE_COLUMNS: Mapping[str, str] = MappingProxyType(
    {
        CUB_NACIONAL: "cub_nacional",
        IPCA: "ipca",
        IGP_M: "igpm",
        INCC_NACIONAL: "incc",
    }
)

_ALIASES = {
    "CUB": CUB_NACIONAL,
    "INCC": INCC_NACIONAL,
    "IGPM": IGP_M,
}


# ------------------------- Correction sources ------------------------- #
@dataclass(frozen=True)
class ManualRate:
    """Fixed monthly rate in percent, identical for every month."""

    percent: Optional[float] = None


@dataclass(frozen=True)
class IndexFamily:
    name: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", normalize_family(self.name))


CorrectionSource = Union[ManualRate, IndexFamily]


def normalize_family(name: str) -> str:
    key = str(name).strip().upper().replace("-", "_").replace(" ", "_")
    return _ALIASES.get(key, key)


def parse_source(mode: Union[str, CorrectionSource, None], manual_percent: Optional[float] = None) -> CorrectionSource:
    """Build a correction source from the loosely typed modes used by forms.

    ``"manual"`` (any casing) or ``None`` gives a ``ManualRate``; anything
    else is treated as an index family name (``"cub"`` maps to CUB_NACIONAL).
    """
    if isinstance(mode, (ManualRate, IndexFamily)):
        return mode
    if mode is None or str(mode).strip().lower() == "manual":
        return ManualRate(manual_percent)
    return IndexFamily(str(mode))


def describe_source(source: CorrectionSource) -> str:
    if isinstance(source, ManualRate):
        return f"MANUAL ({source.percent or 0.0:.2f}% a.m.)"
    return source.name


# ------------------------- Provider ------------------------- #
class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"


RowFetcher = Callable[[], Awaitable[List[Dict[str, Any]]]]


def table_from_rows(rows: Sequence[Mapping[str, Any]]) -> Tuple[Dict[str, Tuple[float, ...]], Tuple[str, ...]]:
    """Turn remote rows into per-family rate sequences and period labels.

    Rows are ordered by ``id`` when present; missing or null values count as 0.
    """
    ordered = sorted(rows, key=lambda r: r.get("id", 0) or 0)
    table = {
        family: tuple(float(row.get(column) or 0.0) for row in ordered)
        for family, column in REMOTE_COLUMNS.items()
    }
    periods = tuple(str(row.get("mes_ano", "")) for row in ordered)
    return table, periods


class IndexRateProvider:
    """Monthly index rates with a single remote load and a built-in fallback.

    Construct one per process and hand it to every consumer. ``ensure_loaded``
    may be awaited by any number of callers: they share one in-flight load.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 8.0,
        table_name: str = "indices_economicos",
        fetch_rows: Optional[RowFetcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.api_key = api_key
        self.timeout = float(timeout)
        self.table_name = table_name
        self._fetch_rows = fetch_rows
        self._transport = transport

        self._state = LoadState.UNLOADED
        self._source: Optional[str] = None
        self._table: Mapping[str, Tuple[float, ...]] = FALLBACK_TABLE
        self._periods: Tuple[str, ...] = FALLBACK_PERIODS
        self._inflight: Optional[asyncio.Future] = None
        self._warned_unloaded = False
        self.fetch_count = 0

    @classmethod
    def with_fallback(cls) -> "IndexRateProvider":
        provider = cls()
        provider.load_fallback()
        return provider

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def source(self) -> Optional[str]:
        """``"remote"`` or ``"fallback"`` once loaded, else ``None``."""
        return self._source

    @property
    def is_loaded(self) -> bool:
        return self._state is LoadState.LOADED

    @property
    def table(self) -> Mapping[str, Tuple[float, ...]]:
        return MappingProxyType(dict(self._table))

    @property
    def periods(self) -> Tuple[str, ...]:
        return self._periods

    # Loading
    async def ensure_loaded(self) -> None:
        if self._state is LoadState.LOADED:
            return
        if self._inflight is None:
            self._state = LoadState.LOADING
            self._inflight = asyncio.ensure_future(self._load())
        # shield: a cancelled caller must not cancel the shared load
        await asyncio.shield(self._inflight)

    def load_fallback(self) -> None:
        self._install(FALLBACK_TABLE, FALLBACK_PERIODS, "fallback")

    async def _load(self) -> None:
        if self._fetch_rows is None and not self.base_url:
            logger.info("No index source configured, using built-in historical table")
            self.load_fallback()
            return

        try:
            self.fetch_count += 1
            rows = await asyncio.wait_for(self._fetch(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Index source timed out after %.1fs, using built-in historical table", self.timeout)
            self.load_fallback()
            return
        except Exception as exc:
            logger.warning("Could not load indices from remote source, using fallback: %s", exc)
            self.load_fallback()
            return

        if not rows:
            logger.warning("Index source returned no rows, using built-in historical table")
            self.load_fallback()
            return

        try:
            table, periods = table_from_rows(rows)
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("Malformed index rows from remote source, using fallback: %s", exc)
            self.load_fallback()
            return
        logger.info("Loaded %d monthly index rows from remote source", len(rows))
        self._install(table, periods, "remote")

    async def _fetch(self) -> List[Dict[str, Any]]:
        if self._fetch_rows is not None:
            return list(await self._fetch_rows())

        headers = {}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.get(
                f"{self.base_url}/rest/v1/{self.table_name}",
                params={"select": "*", "order": "id.asc"},
                headers=headers,
            )
            resp.raise_for_status()
            data = resp.json()
        if not isinstance(data, list):
            raise ValueError(f"Unexpected index payload: {type(data).__name__}")
        return data

    def _install(self, table: Mapping[str, Tuple[float, ...]], periods: Tuple[str, ...], source: str) -> None:
        self._table = MappingProxyType(dict(table))
        self._periods = tuple(periods)
        self._source = source
        self._state = LoadState.LOADED

    # Lookups
    def rates_for(self, family: str) -> Tuple[float, ...]:
        if self._state is not LoadState.LOADED:
            if not self._warned_unloaded:
                logger.warning("Index rates requested before loading, using built-in historical table")
                self._warned_unloaded = True
            return tuple(FALLBACK_TABLE.get(family, ()))
        return tuple(self._table.get(family, ()))

    def monthly_rate(self, source: CorrectionSource, simulated_month: int, cycle_offset: int = 0) -> float:
        """Decimal rate of ``source`` for a 0-based simulated month."""
        if isinstance(source, ManualRate):
            return source.percent / 100 if source.percent else 0.0

        rates = self.rates_for(source.name)
        if not rates:
            logger.debug("No rates for index family %s, returning 0", source.name)
            return 0.0
        position = (cycle_offset + simulated_month) % len(rates)
        return rates[position] / 100

    def cumulative_factor(self, source: CorrectionSource, months: int, cycle_offset: int = 0) -> float:
        """Product of (1 + rate) over simulated months 0..months-1."""
        factor = 1.0
        for month in range(max(0, months)):
            factor *= 1 + self.monthly_rate(source, month, cycle_offset)
        return factor

    def accumulated_percent(self, source: CorrectionSource, months: int = 12, cycle_offset: int = 0) -> float:
        return (self.cumulative_factor(source, months, cycle_offset) - 1) * 100
