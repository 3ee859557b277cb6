from __future__ import annotations

import os
import yaml
from pathlib import Path
from typing import Any, Dict

# Project root (parent of this file)
BASE_DIR = Path(__file__).resolve().parent


def _load_yaml(path: Path = BASE_DIR / "config.yaml") -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


CFG = _load_yaml()

_PURCHASE: Dict[str, Any] = CFG.get("purchase") or {}
_INDICES: Dict[str, Any] = CFG.get("indices") or {}
_RISK: Dict[str, Any] = CFG.get("risk_policy") or {}
_SALE: Dict[str, Any] = CFG.get("sale") or {}

# Purchase plan
PROPERTY_VALUE: float = float(_PURCHASE.get("property_value", 500_000))
DOWN_PAYMENT_VALUE: float = float(_PURCHASE.get("down_payment_value", 50_000))
INSTALLMENTS_VALUE: float = float(_PURCHASE.get("installments_value", 3_000))
INSTALLMENTS_COUNT: int = int(_PURCHASE.get("installments_count", 36))
REINFORCEMENT_VALUE: float = float(_PURCHASE.get("reinforcement_value", 20_000))
REINFORCEMENT_FREQUENCY: int = int(_PURCHASE.get("reinforcement_frequency", 6))
FINAL_MONTHS_WITHOUT_REINFORCEMENT: int = int(_PURCHASE.get("final_months_without_reinforcement", 0))
RENTAL_RATE_PERCENT: float = float(_PURCHASE.get("rental_rate_percent", 0.5))

# Indices
CORRECTION_MODE: str = str(_INDICES.get("correction_mode", "CUB_NACIONAL"))
MANUAL_CORRECTION_RATE: float = float(_INDICES.get("manual_correction_rate", 0.5))  # % per month
APPRECIATION_MODE: str = str(_INDICES.get("appreciation_mode", "manual"))
MANUAL_APPRECIATION_RATE: float = float(_INDICES.get("manual_appreciation_rate", 1.0))  # % per month
CYCLE_OFFSET: int = int(_INDICES.get("cycle_offset", 0))
INDEX_SOURCE_URL: str = os.environ.get("OFFPLAN_INDEX_URL", str(_INDICES.get("source_url") or ""))
INDEX_SOURCE_KEY: str = os.environ.get("OFFPLAN_INDEX_KEY", str(_INDICES.get("source_key") or ""))
INDEX_SOURCE_TIMEOUT: float = float(_INDICES.get("timeout_seconds", 8.0))

# Resale search
RESALE_THRESHOLD_PERCENT: float = float(CFG.get("resale_threshold_percent", 10.0))
RAPID_HORIZON_FRACTION: float = float(_RISK.get("rapid_horizon_fraction", 1 / 3))
RAPID_THRESHOLD_PERCENT: float = float(_RISK.get("rapid_threshold_percent", 10.0))
BALANCED_HORIZON_FRACTION: float = float(_RISK.get("balanced_horizon_fraction", 2 / 3))
PROFIT_WEIGHT: float = float(_RISK.get("profit_weight", 0.5))
ROI_WEIGHT: float = float(_RISK.get("roi_weight", 0.5))

# Sale costs (fractions)
INCLUDE_COMMISSION: bool = bool(_SALE.get("include_commission", False))
COMMISSION_RATE: float = float(_SALE.get("commission_rate", 6.0)) / 100.0
INCLUDE_TAX: bool = bool(_SALE.get("include_tax", False))
CAPITAL_GAINS_TAX_RATE: float = float(_SALE.get("capital_gains_tax_rate", 15.0)) / 100.0
