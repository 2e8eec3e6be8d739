import pandas as pd
from halifax_housing.schemas import Status


def recent_sale_histories(listings: pd.DataFrame, changes: pd.DataFrame, n: int = 20) -> pd.DataFrame:
    """
    Event histories of the `n` most recently listed properties that changed
    price at least once and ended Sold. Rows keep listing order within a
    property; properties are ordered newest list date first.
    """
    ordered = listings.sort_values('timestamp', kind='mergesort')
    last = ordered.groupby('pid', sort=False).tail(1)
    sold_pids = set(last.loc[last['status'] == Status.SOLD.value, 'pid'])
    candidates = sold_pids & set(changes['pid'])
    if not candidates:
        return ordered.iloc[0:0].assign(rank=pd.Series(dtype=int))

    subset = ordered[ordered['pid'].isin(candidates)].copy()
    subset['list_date'] = pd.to_datetime(subset['list_date'])
    latest_list = subset.groupby('pid')['list_date'].max()
    latest_list = latest_list.fillna(subset.groupby('pid')['timestamp'].min())
    chosen = latest_list.sort_values(ascending=False, kind='mergesort').head(n)

    rank = pd.Series(range(len(chosen)), index=chosen.index, name='rank')
    subset = subset[subset['pid'].isin(chosen.index)].join(rank, on='pid')
    return subset.sort_values(['rank', 'timestamp'], kind='mergesort').reset_index(drop=True)
