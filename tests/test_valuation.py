import pandas as pd
import pytest
from halifax_housing.valuation import ValuationModel, score_listings, load_predictions, PREDICTION_COLUMNS


def _market(make_listings):
    rows = []
    for i in range(24):
        sqft = 800 + 60 * i
        location = 'Halifax Peninsula' if i % 2 else 'Dartmouth'
        premium = 1.2 if location == 'Halifax Peninsula' else 1.0
        rows.append({'pid': f'S{i}', 'timestamp': '2023-01-01', 'status': 'For Sale',
                     'price': (100000 + 150 * sqft) * premium, 'sqft': sqft, 'location_bin': location})
        rows.append({'pid': f'S{i}', 'timestamp': '2023-02-01', 'status': 'Sold',
                     'price': (100000 + 150 * sqft) * premium * (1.02 if i % 3 else 0.98),
                     'sqft': sqft, 'location_bin': location})
    # Currently for sale: one fairly priced, one cheap, one expensive
    for pid, factor in (('FAIR', 1.0), ('CHEAP', 0.6), ('DEAR', 1.6)):
        rows.append({'pid': pid, 'timestamp': '2023-03-01', 'status': 'For Sale',
                     'price': (100000 + 150 * 1500) * factor, 'sqft': 1500, 'location_bin': 'Dartmouth',
                     'url': f'https://example.com/{pid}'})
    return make_listings(rows)


def test_scores_for_sale_listings(make_listings):
    listings = _market(make_listings)
    latest = listings.groupby('pid').tail(1)
    predictions = score_listings(listings, latest)

    assert list(predictions.columns) == PREDICTION_COLUMNS
    assert set(predictions['pid']) == {'FAIR', 'CHEAP', 'DEAR'}
    scores = predictions.set_index('pid')['xsv_z']
    assert scores['CHEAP'] < scores['FAIR'] < scores['DEAR']
    fair = predictions.set_index('pid').loc['FAIR']
    assert fair['predicted_price'] == pytest.approx(fair['price'], rel=0.15)


def test_too_few_sales(make_listings):
    listings = make_listings([
        {'pid': 'A', 'timestamp': '2023-01-01', 'status': 'Sold', 'price': 300000},
    ])
    with pytest.raises(ValueError):
        ValuationModel().fit(listings)


def test_predict_before_fit(make_listings):
    listings = make_listings([{'pid': 'A', 'timestamp': '2023-01-01', 'status': 'For Sale', 'price': 1}])
    with pytest.raises(RuntimeError):
        ValuationModel().predict(listings)


def test_load_predictions(tmp_path):
    path = tmp_path / "predictions.csv"
    pd.DataFrame([{'pid': '007', 'address': '1 Main St', 'predicted_price': 300000, 'xsv_z': -1.2,
                   'price': 280000, 'list_date': '2023-01-01', 'timestamp': '2023-01-05 10:00'}]).to_csv(path, index=False)
    df = load_predictions(str(path))
    assert df.iloc[0]['pid'] == '007'
    assert pd.api.types.is_datetime64_any_dtype(df['list_date'])


def test_load_predictions_missing_columns(tmp_path):
    path = tmp_path / "predictions.csv"
    pd.DataFrame([{'pid': '1', 'address': 'x'}]).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_predictions(str(path))
    with pytest.raises(FileNotFoundError):
        load_predictions(str(tmp_path / "missing.csv"))
