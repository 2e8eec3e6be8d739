import logging
import os
from typing import Optional
import numpy as np
import pandas as pd
from scipy.stats import zscore
from sklearn.compose import ColumnTransformer
from sklearn.linear_model import LinearRegression
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler, OneHotEncoder
from halifax_housing.schemas import Status

logger = logging.getLogger(__name__)

NUMERIC_FEATURES = ['sqft']
CATEGORICAL_FEATURES = ['location_bin', 'type']
PREDICTION_COLUMNS = ['pid', 'address', 'predicted_price', 'xsv_z', 'price', 'list_date',
                      'timestamp', 'url', 'location_bin', 'postal_code']
MIN_TRAINING_ROWS = 10


class ValuationModel:
    """
    Hedonic price model: log price on floor area, location and property type.
    Trained on sold listings and used to score what is currently for sale.
    xsv_z is the z-score of the log residual; positive means priced above
    what the model expects.
    """

    def __init__(self):
        self.pipeline: Optional[Pipeline] = None

    def _build(self) -> Pipeline:
        preprocessor = ColumnTransformer([
            ('num', StandardScaler(), NUMERIC_FEATURES),
            ('cat', OneHotEncoder(handle_unknown='ignore', sparse_output=False), CATEGORICAL_FEATURES)
        ])
        return Pipeline([
            ('preprocessor', preprocessor),
            ('regressor', LinearRegression())
        ])

    @staticmethod
    def _usable(df: pd.DataFrame) -> pd.DataFrame:
        return df.dropna(subset=NUMERIC_FEATURES + CATEGORICAL_FEATURES + ['price'])\
                 .query('price > 0 and sqft > 0')

    def fit(self, sold: pd.DataFrame) -> "ValuationModel":
        train = self._usable(sold)
        if len(train) < MIN_TRAINING_ROWS:
            raise ValueError(f"Need at least {MIN_TRAINING_ROWS} sold listings to fit, got {len(train)}")
        self.pipeline = self._build()
        self.pipeline.fit(train[NUMERIC_FEATURES + CATEGORICAL_FEATURES], np.log(train['price']))
        logger.info(f"Valuation model trained on {len(train)} sales")
        return self

    def predict(self, df: pd.DataFrame) -> pd.DataFrame:
        if self.pipeline is None:
            raise RuntimeError("Valuation model has not been fitted.")
        scored = self._usable(df).copy()
        if scored.empty:
            return pd.DataFrame(columns=PREDICTION_COLUMNS)
        log_pred = self.pipeline.predict(scored[NUMERIC_FEATURES + CATEGORICAL_FEATURES])
        scored['predicted_price'] = np.exp(log_pred)
        residual = np.log(scored['price'].to_numpy()) - log_pred
        scored['xsv_z'] = zscore(residual) if len(residual) > 1 else np.nan
        for col in PREDICTION_COLUMNS:
            if col not in scored.columns:
                scored[col] = None
        return scored[PREDICTION_COLUMNS].reset_index(drop=True)


def score_listings(listings: pd.DataFrame, latest: pd.DataFrame) -> pd.DataFrame:
    """Fits on each property's last sale and scores properties currently for sale."""
    sold = listings[listings['status'] == Status.SOLD.value]
    sold = sold.sort_values('timestamp', kind='mergesort').groupby('pid').tail(1)
    for_sale = latest[latest['status'] == Status.FOR_SALE.value]
    return ValuationModel().fit(sold).predict(for_sale)


def load_predictions(path: str) -> pd.DataFrame:
    """Reads a prediction table produced elsewhere (CSV with the prediction columns)."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Prediction table not found: {path}")
    df = pd.read_csv(path, dtype={'pid': str, 'postal_code': str})
    missing = {'pid', 'address', 'predicted_price', 'xsv_z', 'price'} - set(df.columns)
    if missing:
        raise ValueError(f"Prediction table is missing columns: {sorted(missing)}")
    for col in ('list_date', 'timestamp'):
        if col in df.columns:
            df[col] = pd.to_datetime(df[col], format='ISO8601', errors='coerce')
    return df
