import logging
from typing import Iterable, Optional
import numpy as np
import pandas as pd
from halifax_housing.schemas import Direction, direction_for

logger = logging.getLogger(__name__)

FREQUENCIES = ('D', 'W')


def classify_directions(statuses: pd.Series) -> pd.Series:
    """Element-wise direction_for; unknown statuses raise ValueError."""
    return statuses.map(lambda s: direction_for(s).value)


def bucket_start(timestamps: pd.Series, freq: str) -> pd.Series:
    """Day, or ISO week (Monday start), containing each timestamp."""
    if freq == 'D':
        return timestamps.dt.floor('D')
    if freq == 'W':
        return timestamps.dt.to_period('W-SUN').dt.start_time
    raise ValueError(f"Unsupported bucket frequency: {freq}")


def turnover(listings: pd.DataFrame, freq: str = 'W', now: Optional[pd.Timestamp] = None) -> pd.DataFrame:
    """
    Counts listings entering and leaving active inventory per bucket.

    Args:
        listings: Deduplicated listing events with 'pid', 'timestamp' and 'status'.
        freq: 'D' for daily buckets, 'W' for ISO weeks.
        now: Reference time for the incomplete current week. Defaults to now.

    Returns:
        DataFrame with bucket, entrances, exits, net_change.
    """
    columns = ['bucket', 'entrances', 'exits', 'net_change']
    if listings.empty:
        return pd.DataFrame(columns=columns)

    df = listings[['pid', 'timestamp', 'status']].sort_values('timestamp', kind='mergesort')
    df['direction'] = classify_directions(df['status'])
    df = df[df['direction'] != Direction.IGNORED.value].copy()
    # Repricing keeps the status; only changes of status move inventory
    previous = df.groupby('pid')['status'].shift()
    df = df[df['status'] != previous].copy()
    df['bucket'] = bucket_start(pd.to_datetime(df['timestamp']), freq)
    if df.empty:
        return pd.DataFrame(columns=columns)

    counts = (
        df.groupby(['bucket', 'direction']).size()
        .unstack(fill_value=0)
        .reindex(columns=[Direction.ENTER.value, Direction.EXIT.value], fill_value=0)
        .rename(columns={Direction.ENTER.value: 'entrances', Direction.EXIT.value: 'exits'})
    )
    counts.columns.name = None

    if freq == 'D' and not counts.empty:
        full_range = pd.date_range(counts.index.min(), counts.index.max(), freq='D')
        counts = counts.reindex(full_range, fill_value=0)

    counts.index.name = 'bucket'
    counts = counts.reset_index()
    counts['entrances'] = counts['entrances'].astype(int)
    counts['exits'] = counts['exits'].astype(int)
    counts['net_change'] = (counts['entrances'] - counts['exits']).astype(float)

    if freq == 'W':
        now = pd.Timestamp.now() if now is None else pd.Timestamp(now)
        current_week = bucket_start(pd.Series([now]), 'W').iloc[0]
        counts.loc[counts['bucket'] == current_week, 'net_change'] = np.nan

    logger.info(f"Turnover ({freq}): {len(counts)} buckets")
    return counts[columns]


def daily_rolling(daily: pd.DataFrame, windows: Iterable[int] = (7, 14)) -> pd.DataFrame:
    """Trailing means of daily net change; buckets without a full window stay NaN."""
    df = daily.sort_values('bucket').copy()
    for w in windows:
        df[f'net_change_{w}d'] = df['net_change'].rolling(window=w, min_periods=w).mean()
    return df
