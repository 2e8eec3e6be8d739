from datetime import datetime
import pandas as pd
import plotly.graph_objects as go
from halifax_housing.config import ReportConfig
from halifax_housing.render import charts
from halifax_housing.render.page import render_page, section, write_page
from halifax_housing.render.tables import (
    valuation_views, format_valuation_table, table_to_html, render_valuation_tables
)


def _predictions(n=30):
    rows = []
    for i in range(n):
        rows.append({'pid': f'P{i}', 'address': f'{i} Quinpool Rd' if i % 5 == 0 else f'{i} Main St',
                     'predicted_price': 400000, 'xsv_z': (i - n / 2) / 10, 'price': 400000 + 1000 * i,
                     'list_date': '2023-01-01', 'timestamp': '2023-01-05',
                     'url': f'https://example.com/{i}',
                     'location_bin': 'Halifax Peninsula' if i % 2 else 'Dartmouth',
                     'postal_code': 'B3L4P1' if i % 2 else 'B2Y1A1'})
    return pd.DataFrame(rows)


def _latest(n=30, sold=()):
    return pd.DataFrame([{'pid': f'P{i}', 'status': 'Sold' if i in sold else 'For Sale'} for i in range(n)])


def test_views_only_show_current_listings():
    config = ReportConfig(table_rows=5)
    views = valuation_views(_predictions(), _latest(sold={0, 1}), config)
    for view in views.values():
        assert not {'P0', 'P1'} & set(view['pid'])


def test_views_truncate_and_order():
    config = ReportConfig(table_rows=5)
    views = valuation_views(_predictions(), _latest(), config, street='quinpool')
    assert set(views) == {'by_region', 'undervalued', 'overvalued', 'street'}
    assert len(views['undervalued']) == 5
    assert list(views['undervalued']['pid']) == ['P0', 'P1', 'P2', 'P3', 'P4']
    assert list(views['overvalued']['pid'])[0] == 'P29'
    assert views['undervalued']['xsv_z'].is_monotonic_increasing
    # Five per region
    assert views['by_region'].groupby('location_bin').size().tolist() == [5, 5]
    assert views['street']['address'].str.contains('Quinpool').all()
    assert len(views['street']) == 5


def test_no_street_view_without_street():
    views = valuation_views(_predictions(), _latest(), ReportConfig())
    assert 'street' not in views


def test_format_valuation_table():
    config = ReportConfig()
    df = _predictions(2)
    df.loc[1, 'address'] = '1 <Main> St'
    formatted = format_valuation_table(df, config)
    assert list(formatted.columns) == ['Address', 'Location', 'Asking', 'Predicted', 'Score', 'Listed']
    assert formatted.iloc[1]['Address'] == '<a href="https://example.com/1" target="_blank">1 &lt;Main&gt; St</a>'
    assert formatted.iloc[1]['Location'] == 'West End'
    assert formatted.iloc[0]['Location'] == 'Dartmouth'
    assert formatted.iloc[1]['Asking'] == '$401,000'
    assert formatted.iloc[0]['Score'] == '-0.10'
    assert formatted.iloc[0]['Listed'] == '2023-01-01'


def test_address_without_url_is_plain_text():
    df = _predictions(1)
    df['url'] = None
    formatted = format_valuation_table(df, ReportConfig())
    assert formatted.iloc[0]['Address'] == '0 Quinpool Rd'


def test_table_html():
    config = ReportConfig(table_rows=3)
    html = render_valuation_tables(valuation_views(_predictions(), _latest(), config), config)
    assert 'href="https://example.com/0"' in html['undervalued']
    assert '<h3>Most Overvalued</h3>' in html['overvalued']
    assert 'No data' in table_to_html(pd.DataFrame(), "Empty")


def test_page_assembly(tmp_path):
    fig = go.Figure(go.Scatter(x=[1, 2], y=[3, 4]))
    markup = render_page("Report <Title>", [section("Inventory", charts=[fig], tables=["<table></table>"])],
                         headline="Sold: +1.0%", generated=datetime(2023, 3, 1, 12, 0))
    assert "Report &lt;Title&gt;" in markup
    assert "<table></table>" in markup
    assert "Generated 2023-03-01 12:00" in markup
    assert "plotly" in markup.lower()
    path = write_page(markup, str(tmp_path / "site" / "index.html"))
    with open(path, encoding='utf-8') as f:
        assert f.read() == markup


def test_empty_charts_render():
    config = ReportConfig()
    empty = pd.DataFrame()
    assert isinstance(charts.time_on_market_chart(empty, config), go.Figure)
    assert isinstance(charts.assessment_chart(empty, config), go.Figure)
    assert isinstance(charts.history_small_multiples(empty, config), go.Figure)
    assert isinstance(charts.turnover_chart(empty, empty), go.Figure)
