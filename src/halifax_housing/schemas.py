from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any
import pandas as pd


class Status(str, Enum):
    """Listing status as scraped from the MLS feed."""
    FOR_SALE = "For Sale"
    SOLD = "Sold"
    PENDING = "Pending"
    WITHDRAWN = "Withdrawn"
    CANCELLED = "Cancelled"
    EXPIRED = "Expired"


class Direction(str, Enum):
    """Effect of a status event on active inventory."""
    ENTER = "enter"
    EXIT = "exit"
    IGNORED = "ignored"


_DIRECTIONS = {
    Status.FOR_SALE: Direction.ENTER,
    Status.SOLD: Direction.EXIT,
    Status.EXPIRED: Direction.EXIT,
    Status.WITHDRAWN: Direction.EXIT,
    Status.CANCELLED: Direction.EXIT,
    Status.PENDING: Direction.IGNORED,
}


def direction_for(status: Any) -> Direction:
    """
    Maps a status (enum member or its string value) to an inventory direction.
    Raises ValueError for anything outside the Status enumeration.
    """
    return _DIRECTIONS[Status(status)]


def _clean_date(v: Any) -> Optional[str]:
    if v is None or pd.isna(v) or str(v).strip() == "":
        return None
    try:
        dt = pd.to_datetime(str(v).strip())
    except (ValueError, TypeError):
        return None
    if pd.isna(dt):
        return None
    return dt.isoformat()


def _clean_number(v: Any) -> Optional[float]:
    if v is None or pd.isna(v) or str(v).strip() == "":
        return None
    try:
        return float(str(v).replace("$", "").replace(",", "").strip())
    except ValueError:
        return None


class PropertyRecord(BaseModel):
    """
    Static attributes of a scraped property.
    Numeric fields tolerate currency formatting ("$350,000").
    """
    pid: str = Field(..., description="Property ID from the listing source")
    address: Optional[str] = None
    unit: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    sqft: Optional[float] = None
    assessment_value: Optional[float] = None
    assessment_year: Optional[int] = None
    type: Optional[str] = None
    url: Optional[str] = None

    @field_validator('sqft', 'assessment_value', 'assessment_year', mode='before')
    @classmethod
    def clean_numeric(cls, v: Any) -> Optional[float]:
        return _clean_number(v)

    @field_validator('assessment_year', mode='after')
    @classmethod
    def whole_year(cls, v: Optional[float]) -> Optional[int]:
        return None if v is None else int(v)

    @field_validator('postal_code', mode='before')
    @classmethod
    def normalize_postal_code(cls, v: Any) -> Optional[str]:
        if v is None or pd.isna(v):
            return None
        return str(v).replace(" ", "").upper() or None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore"
    }


class UpdateRecord(BaseModel):
    """One scrape-time observation of a property's status and price."""
    pid: str
    timestamp: str
    status: Status
    price: Optional[float] = None
    list_date: Optional[str] = None
    mls_number: Optional[str] = None

    @field_validator('timestamp', 'list_date', mode='before')
    @classmethod
    def standardize_date(cls, v: Any) -> Optional[str]:
        return _clean_date(v)

    @field_validator('price', mode='before')
    @classmethod
    def clean_price(cls, v: Any) -> Optional[float]:
        return _clean_number(v)

    model_config = {
        "extra": "ignore"
    }


class GeocodeRecord(BaseModel):
    address: str
    location_bin: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {
        "extra": "ignore"
    }
