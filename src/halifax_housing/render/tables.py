import html
from typing import Dict, Optional
import pandas as pd
from halifax_housing.config import ReportConfig
from halifax_housing.schemas import Status

DISPLAY_COLUMNS = {
    'address_link': 'Address',
    'location': 'Location',
    'price': 'Asking',
    'predicted_price': 'Predicted',
    'xsv_z': 'Score',
    'list_date': 'Listed',
}


def currently_for_sale(predictions: pd.DataFrame, latest: pd.DataFrame) -> pd.DataFrame:
    """Keeps predictions whose property's latest status is For Sale."""
    active = latest.loc[latest['status'] == Status.FOR_SALE.value, 'pid']
    df = predictions[predictions['pid'].isin(set(active))].copy()
    extra = [c for c in ('url', 'location_bin', 'postal_code') if c not in df.columns or df[c].isna().all()]
    if extra:
        lookup = latest.drop_duplicates('pid').set_index('pid')
        for col in extra:
            if col in lookup.columns:
                df[col] = df['pid'].map(lookup[col])
    return df


def valuation_views(predictions: pd.DataFrame, latest: pd.DataFrame, config: ReportConfig,
                    street: Optional[str] = None) -> Dict[str, pd.DataFrame]:
    """
    Named, truncated views of the valuation table.

    by_region: each location bin's most undervalued listings.
    undervalued / overvalued: extremes of xsv_z across the whole market.
    street: listings whose address mentions `street` (only when given).
    """
    rows = config.table_rows
    active = currently_for_sale(predictions, latest).sort_values('xsv_z', kind='mergesort')
    views = {
        'by_region': (active.sort_values(['location_bin', 'xsv_z'], kind='mergesort')
                      .groupby('location_bin', sort=True).head(rows)),
        'undervalued': active.head(rows),
        'overvalued': active.sort_values('xsv_z', ascending=False, kind='mergesort').head(rows),
    }
    if street:
        match = active['address'].fillna('').str.contains(street, case=False, regex=False)
        views['street'] = active[match].head(rows)
    return views


def _currency(v) -> str:
    return "" if pd.isna(v) else f"${v:,.0f}"


def _address_link(address, url) -> str:
    text = html.escape(str(address)) if pd.notna(address) else ""
    if url is None or pd.isna(url) or not str(url).strip():
        return text
    return f'<a href="{html.escape(str(url), quote=True)}" target="_blank">{text}</a>'


def format_valuation_table(view: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """Display-ready copy: currency strings, neighbourhood names, linked addresses."""
    df = view.copy()
    urls = df['url'] if 'url' in df.columns else pd.Series(None, index=df.index)
    postal = df['postal_code'] if 'postal_code' in df.columns else pd.Series(None, index=df.index)
    bins = df['location_bin'] if 'location_bin' in df.columns else pd.Series(None, index=df.index)

    df['address_link'] = [_address_link(a, u) for a, u in zip(df['address'], urls)]
    df['location'] = [
        html.escape(config.neighbourhood(p) or (b if pd.notna(b) else ""))
        for p, b in zip(postal, bins)
    ]
    df['price'] = df['price'].map(_currency)
    df['predicted_price'] = df['predicted_price'].map(_currency)
    df['xsv_z'] = df['xsv_z'].map(lambda z: "" if pd.isna(z) else f"{z:+.2f}")
    if 'list_date' in df.columns:
        df['list_date'] = pd.to_datetime(df['list_date'], errors='coerce').dt.strftime('%Y-%m-%d').fillna("")
    else:
        df['list_date'] = ""
    return df[list(DISPLAY_COLUMNS)].rename(columns=DISPLAY_COLUMNS)


def table_to_html(df_fmt: pd.DataFrame, title: str) -> str:
    """HTML for one formatted table; cells are already escaped."""
    if df_fmt.empty:
        return f"<h3>{html.escape(title)}</h3><p><em>No data</em></p>"
    return (f"<h3>{html.escape(title)}</h3>" +
            df_fmt.to_html(escape=False, border=0, index=False, classes="listing-table", justify="left"))


VIEW_TITLES = {
    'by_region': "Best Value by Region",
    'undervalued': "Most Undervalued",
    'overvalued': "Most Overvalued",
    'street': "Street Search",
}


def render_valuation_tables(views: Dict[str, pd.DataFrame], config: ReportConfig) -> Dict[str, str]:
    return {name: table_to_html(format_valuation_table(view, config), VIEW_TITLES.get(name, name))
            for name, view in views.items()}
