import logging
from typing import Iterable, Optional, Tuple
import pandas as pd
from halifax_housing.schemas import Status
from .turnover import bucket_start

logger = logging.getLogger(__name__)


def time_to_sale(listings: pd.DataFrame,
                 location_bins: Optional[Iterable[str]] = None,
                 price_band: Optional[Tuple[float, float]] = None) -> pd.DataFrame:
    """
    Days from listing to sale for properties whose final status is Sold.

    Same-day sales count as one day. When a sold row has no list date the
    property's first observed timestamp stands in for it.
    """
    columns = ['pid', 'address', 'location_bin', 'type', 'price', 'list_date', 'sold_date',
               'days_to_sale', 'list_week']
    if listings.empty:
        return pd.DataFrame(columns=columns)

    df = listings.sort_values('timestamp', kind='mergesort')
    first_seen = df.groupby('pid')['timestamp'].min().rename('first_seen')
    last = df.groupby('pid', sort=False).tail(1)
    sold = last[last['status'] == Status.SOLD.value].copy()

    if location_bins is not None:
        sold = sold[sold['location_bin'].isin(list(location_bins))]
    if price_band is not None:
        low, high = price_band
        sold = sold[sold['price'].between(low, high)]

    sold = sold.join(first_seen, on='pid')
    sold['list_date'] = pd.to_datetime(sold['list_date']).fillna(sold['first_seen'])
    sold['sold_date'] = sold['timestamp'].dt.normalize()
    days = (sold['sold_date'] - sold['list_date'].dt.normalize()).dt.days
    sold['days_to_sale'] = days.clip(lower=1).astype(int)
    sold['list_week'] = bucket_start(sold['list_date'], 'W')

    logger.info(f"Time to sale computed for {len(sold)} sold properties")
    return sold[columns].reset_index(drop=True)


def time_on_market_by_week(sales: pd.DataFrame) -> pd.DataFrame:
    """Spread of days-to-sale per list week."""
    if sales.empty:
        return pd.DataFrame(columns=['list_week', 'count', 'q25', 'median', 'q75'])
    grouped = sales.groupby('list_week')['days_to_sale']
    return pd.DataFrame({
        'count': grouped.size(),
        'q25': grouped.quantile(0.25),
        'median': grouped.median(),
        'q75': grouped.quantile(0.75),
    }).reset_index()
