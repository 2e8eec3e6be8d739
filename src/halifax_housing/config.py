import logging
import os
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field

CONFIG_PATH = "config/report_config.yaml"

logger = logging.getLogger(__name__)


class Band(BaseModel):
    """Inclusive price and area limits for the price-per-area sample."""
    min_price: float = 50_000
    max_price: float = 2_000_000
    min_sqft: float = 400
    max_sqft: float = 5_000


class ReportConfig(BaseModel):
    """
    Everything the report needs besides the data: palette, regional naming,
    filter bands and the thresholds used by the fitters.
    Passed explicitly to each stage that needs it.
    """
    status_colors: Dict[str, str] = Field(default_factory=lambda: {
        "For Sale": "#3b82f6",
        "Sold": "#10b981",
        "Pending": "#f59e0b",
        "Withdrawn": "#94a3b8",
        "Cancelled": "#ef4444",
        "Expired": "#8b5cf6",
    })
    # Forward sortation area -> Halifax Peninsula neighbourhood
    peninsula_names: Dict[str, str] = Field(default_factory=lambda: {
        "B3H": "South End",
        "B3J": "Downtown",
        "B3K": "North End",
        "B3L": "West End",
    })
    excluded_location_bins: List[str] = Field(default_factory=lambda: ["Rest of Province"])

    ppsf_types: List[str] = Field(default_factory=lambda: ["Residential", "Condominium"])
    bands: Dict[str, Band] = Field(default_factory=dict)
    default_band: Band = Field(default_factory=Band)

    assessment_year: int = 2021
    assessment_cap: float = 2_000_000
    sale_price_cap: float = 2_500_000

    # Region filter and inclusive price band for time on market; None means no limit
    tom_location_bins: Optional[List[str]] = Field(
        default_factory=lambda: ["Halifax Peninsula", "Dartmouth"])
    tom_price_band: Optional[Tuple[float, float]] = (100_000, 1_500_000)

    loess_min_obs: int = 20
    loess_frac: float = 2 / 3
    max_price_change: float = 0.5
    recent_change_days: int = 7

    table_rows: int = 15
    history_count: int = 20
    title: str = "Halifax Real Estate Report"
    output_path: str = "site/index.html"

    def band_for(self, location_bin: str) -> Band:
        return self.bands.get(location_bin, self.default_band)

    def status_color(self, status: str) -> str:
        return self.status_colors.get(status, "#64748b")

    def neighbourhood(self, postal_code: Optional[str]) -> Optional[str]:
        """Peninsula neighbourhood for a postal code, or None off-peninsula."""
        if not postal_code or not isinstance(postal_code, str):
            return None
        return self.peninsula_names.get(postal_code.replace(" ", "").upper()[:3])


def load_config(path: Optional[str] = CONFIG_PATH) -> ReportConfig:
    """
    Loads the YAML report config. A missing file falls back to defaults;
    a malformed one raises.
    """
    if not path or not os.path.exists(path):
        logger.info(f"No config at {path}, using defaults.")
        return ReportConfig()
    with open(path, 'r') as f:
        raw = yaml.safe_load(f) or {}
    return ReportConfig(**raw)
