import logging
from typing import List, Optional
import numpy as np
import pandas as pd
import statsmodels.api as sm
from statsmodels.nonparametric.smoothers_lowess import lowess
from halifax_housing.config import ReportConfig

logger = logging.getLogger(__name__)

LOESS_MIN_OBS = 20
OLS_GROUPS = ['location_bin', 'type']
PPSF_TREND_GROUPS = ['status', 'location_bin', 'type']


def ppsf_sample(listings: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """
    Residential and condo listings inside their location's price/area band,
    with price per square foot attached.
    """
    df = listings[listings['type'].isin(config.ppsf_types)]
    df = df[df['sqft'].notna() & (df['sqft'] > 0) & df['price'].notna()].copy()

    keep = pd.Series(False, index=df.index)
    for location_bin, group in df.groupby('location_bin'):
        band = config.band_for(location_bin)
        in_band = (group['price'].between(band.min_price, band.max_price) &
                   group['sqft'].between(band.min_sqft, band.max_sqft))
        keep.loc[group.index] = in_band
    df = df[keep]
    df['ppsf'] = df['price'] / df['sqft']
    return df


def _ols_fit(group: pd.DataFrame) -> pd.Series:
    n = len(group)
    if n < 2 or group['sqft'].nunique() < 2:
        return pd.Series({'slope': np.nan, 'intercept': np.nan, 'r_squared': np.nan, 'n': n})
    X = sm.add_constant(group['sqft'].astype(float).to_numpy())
    result = sm.OLS(group['price'].astype(float).to_numpy(), X).fit()
    intercept, slope = result.params
    return pd.Series({'slope': slope, 'intercept': intercept, 'r_squared': result.rsquared, 'n': n})


def fit_price_per_area(sample: pd.DataFrame) -> pd.DataFrame:
    """
    Ordinary least squares of price on square footage per (location, type).
    Each property contributes its most recent observation. Degenerate groups
    report NaN slope and intercept.
    """
    columns = OLS_GROUPS + ['slope', 'intercept', 'r_squared', 'n']
    if sample.empty:
        return pd.DataFrame(columns=columns)
    latest = sample.sort_values('timestamp', kind='mergesort').groupby('pid').tail(1)
    rows = []
    for keys, group in latest.groupby(OLS_GROUPS):
        fit = _ols_fit(group)
        rows.append({**dict(zip(OLS_GROUPS, keys)), **fit.to_dict()})
    fits = pd.DataFrame(rows, columns=columns)
    fits['n'] = fits['n'].astype(int)
    logger.info(f"Fitted price per area for {fits['slope'].notna().sum()} of {len(fits)} groups")
    return fits


def fit_label(slope: float, intercept: float) -> Optional[str]:
    if pd.isna(slope) or pd.isna(intercept):
        return None
    return f"${slope:,.0f}/sqft + ${intercept:,.0f}"


def attach_ols_fit(sample: pd.DataFrame, fits: pd.DataFrame) -> pd.DataFrame:
    """Adds fitted_price and a human readable fit label to each observation."""
    df = sample.merge(fits[OLS_GROUPS + ['slope', 'intercept']], on=OLS_GROUPS, how='left')
    df['fitted_price'] = df['intercept'] + df['slope'] * df['sqft']
    df['fit_label'] = [fit_label(s, i) for s, i in zip(df['slope'], df['intercept'])]
    return df


def loess_trend(df: pd.DataFrame, x: str, y: str, by: List[str],
                min_obs: int = LOESS_MIN_OBS, frac: float = 2 / 3,
                out: Optional[str] = None) -> pd.DataFrame:
    """
    Local regression of `y` on `x` within each group of `by`.

    Datetime x values are fitted as fractional days. Groups with fewer than
    `min_obs` observations get no trend (NaN) to avoid fitting noise.
    """
    out = out or f"{y}_trend"
    result = df.copy()
    result[out] = np.nan
    if result.empty:
        return result

    xs = result[x]
    if pd.api.types.is_datetime64_any_dtype(xs):
        xs = (xs - xs.min()) / pd.Timedelta(days=1)
    result['_x'] = xs.astype(float)

    for keys, group in result.groupby(by):
        valid = group.dropna(subset=['_x', y])
        if len(valid) < min_obs:
            logger.debug(f"Skipping loess for {keys}: {len(valid)} observations")
            continue
        fitted = lowess(valid[y].astype(float).to_numpy(), valid['_x'].to_numpy(),
                        frac=frac, return_sorted=False)
        result.loc[valid.index, out] = fitted

    return result.drop(columns=['_x'])


def ppsf_trend(sample: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """Loess of price per square foot over time per (status, location, type)."""
    return loess_trend(sample, 'timestamp', 'ppsf', PPSF_TREND_GROUPS,
                       min_obs=config.loess_min_obs, frac=config.loess_frac)


def price_change_trend(changes: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """Loess of relative price change over time per status."""
    return loess_trend(changes, 'timestamp', 'pct_change', ['status'],
                       min_obs=config.loess_min_obs, frac=config.loess_frac)
