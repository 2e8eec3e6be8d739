import logging
from typing import Optional, Tuple
import numpy as np
import pandas as pd
from halifax_housing.schemas import Status

logger = logging.getLogger(__name__)

MAX_PRICE_CHANGE = 0.5
HEADLINE_STATUSES = [Status.SOLD.value, Status.FOR_SALE.value]


def price_changes(listings: pd.DataFrame, max_change: float = MAX_PRICE_CHANGE) -> pd.DataFrame:
    """
    Relative price change at each event versus the property's previous event.

    The first event of each property has no prior price and is dropped, as
    are unchanged prices, undefined ratios (previous price of zero) and
    changes of at least `max_change` in magnitude.
    """
    df = listings.sort_values(['pid', 'timestamp'], kind='mergesort').copy()
    df['prev_price'] = df.groupby('pid')['price'].shift(1)
    with np.errstate(divide='ignore', invalid='ignore'):
        df['pct_change'] = (df['price'] - df['prev_price']) / df['prev_price']
    df['pct_change'] = df['pct_change'].replace([np.inf, -np.inf], np.nan)

    df = df.dropna(subset=['pct_change'])
    df = df[df['pct_change'] != 0]
    df = df[df['pct_change'].abs() < max_change]

    logger.info(f"{len(df)} price change events")
    return df.sort_values('timestamp', kind='mergesort').reset_index(drop=True)


def recent_change_by_status(changes: pd.DataFrame, now: Optional[pd.Timestamp] = None,
                            days: int = 7) -> Tuple[pd.Series, str]:
    """
    Mean price change over the trailing window for Sold and For Sale events.

    Returns:
        (means indexed by status, headline label)
    """
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)
    window = changes[(changes['timestamp'] > now - pd.Timedelta(days=days)) &
                     (changes['timestamp'] <= now) &
                     (changes['status'].isin(HEADLINE_STATUSES))]
    means = window.groupby('status')['pct_change'].mean().reindex(HEADLINE_STATUSES)

    parts = []
    for status, value in means.items():
        parts.append(f"{status}: {'n/a' if pd.isna(value) else f'{value:+.1%}'}")
    label = f"Last {days} days mean price change | " + " | ".join(parts)
    return means, label
