import pandas as pd
from halifax_housing.config import ReportConfig
from halifax_housing.schemas import Status


def assessment_vs_sale(listings: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """Pairs each sale with its property assessment for the configured year."""
    sold = listings[listings['status'] == Status.SOLD.value]
    sold = sold.sort_values('timestamp', kind='mergesort').groupby('pid').tail(1)
    sold = sold[(sold['assessment_year'] == config.assessment_year) &
                sold['assessment_value'].notna() & sold['price'].notna()]
    sold = sold[(sold['assessment_value'] <= config.assessment_cap) &
                (sold['price'] <= config.sale_price_cap) &
                (sold['assessment_value'] > 0)]

    out = sold[['pid', 'address', 'location_bin', 'type', 'assessment_value', 'price']].copy()
    out['sale_to_assessment'] = out['price'] / out['assessment_value']
    return out.reset_index(drop=True)
