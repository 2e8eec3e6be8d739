import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from halifax_housing.config import ReportConfig


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title, annotations=[dict(text="No data", showarrow=False,
                                                     xref="paper", yref="paper", x=0.5, y=0.5)])
    return fig


def turnover_chart(weekly: pd.DataFrame, daily: pd.DataFrame) -> go.Figure:
    """Weekly net change as bars, daily trailing means as lines."""
    title = "Inventory Turnover (Entrances - Exits)"
    if weekly.empty and daily.empty:
        return _empty_figure(title)
    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=weekly['bucket'], y=weekly['net_change'], name="Weekly net change",
        marker_color=['#10b981' if v >= 0 else '#ef4444' for v in weekly['net_change'].fillna(0)],
        customdata=weekly[['entrances', 'exits']],
        hovertemplate="Week of %{x|%b %d}<br>Net: %{y}<br>In: %{customdata[0]} Out: %{customdata[1]}<extra></extra>",
    ))
    for col, dash in (('net_change_7d', 'solid'), ('net_change_14d', 'dot')):
        if col in daily.columns:
            fig.add_trace(go.Scatter(
                x=daily['bucket'], y=daily[col] * 7, mode='lines',
                name=f"{col[len('net_change_'):]} rolling (weekly rate)",
                line=dict(width=2, dash=dash), yaxis='y',
            ))
    fig.update_layout(title=title, xaxis_title="Week", yaxis_title="Listings",
                      legend=dict(orientation="h", y=1.1, x=0), height=450, hovermode="x unified")
    return fig


def time_on_market_chart(sales: pd.DataFrame, config: ReportConfig) -> go.Figure:
    title = "Days to Sale by List Week"
    if sales.empty:
        return _empty_figure(title)
    fig = px.box(sales, x='list_week', y='days_to_sale', points='outliers',
                 color_discrete_sequence=[config.status_color("Sold")],
                 labels={'list_week': 'Listed (week of)', 'days_to_sale': 'Days to sale'},
                 title=title)
    fig.update_layout(height=450)
    return fig


def price_per_area_chart(fitted: pd.DataFrame, config: ReportConfig) -> go.Figure:
    """Scatter of price vs. area per location with the OLS fit per property type."""
    title = "Price vs. Square Footage"
    if fitted.empty:
        return _empty_figure(title)
    locations = list(fitted['location_bin'].dropna().unique())
    fig = px.scatter(fitted, x='sqft', y='price', color='status', facet_col='location_bin',
                     symbol='type', hover_data=['address', 'ppsf'],
                     color_discrete_map=config.status_colors,
                     category_orders={'location_bin': locations},
                     labels={'sqft': 'Square feet', 'price': 'Price ($)'}, title=title)
    for col_idx, location in enumerate(locations, start=1):
        for prop_type, group in fitted[fitted['location_bin'] == location].groupby('type'):
            group = group.dropna(subset=['fitted_price']).sort_values('sqft')
            if group.empty:
                continue
            fig.add_trace(go.Scatter(
                x=group['sqft'], y=group['fitted_price'], mode='lines',
                name=f"{prop_type}: {group['fit_label'].iloc[0]}",
                line=dict(color='#0f1b2c', width=2, dash='dash' if prop_type != config.ppsf_types[0] else 'solid'),
            ), row=1, col=col_idx)
    fig.update_layout(height=500, legend=dict(orientation="h", y=-0.2, x=0))
    return fig


def ppsf_trend_chart(trend: pd.DataFrame, config: ReportConfig) -> go.Figure:
    title = "Price per Square Foot over Time"
    if trend.empty:
        return _empty_figure(title)
    locations = list(trend['location_bin'].dropna().unique())
    fig = px.scatter(trend, x='timestamp', y='ppsf', color='status', facet_col='location_bin',
                     symbol='type', opacity=0.35, color_discrete_map=config.status_colors,
                     category_orders={'location_bin': locations},
                     labels={'timestamp': 'Date', 'ppsf': '$ / sqft'}, title=title)
    lines = trend.dropna(subset=['ppsf_trend']).sort_values('timestamp')
    for (status, location, prop_type), group in lines.groupby(['status', 'location_bin', 'type']):
        fig.add_trace(go.Scatter(
            x=group['timestamp'], y=group['ppsf_trend'], mode='lines',
            name=f"{status} {prop_type} trend",
            line=dict(color=config.status_color(status), width=3,
                      dash='solid' if prop_type == config.ppsf_types[0] else 'dash'),
        ), row=1, col=locations.index(location) + 1)
    fig.update_layout(height=450)
    return fig


def price_change_chart(trend: pd.DataFrame, headline: str, config: ReportConfig) -> go.Figure:
    title = "Price Changes"
    if trend.empty:
        return _empty_figure(title)
    fig = px.scatter(trend, x='timestamp', y='pct_change', color='status', opacity=0.4,
                     hover_data=['address', 'prev_price', 'price'],
                     color_discrete_map=config.status_colors,
                     labels={'timestamp': 'Date', 'pct_change': 'Change vs. previous price'},
                     title=f"{title}<br><sup>{headline}</sup>")
    for status, group in trend.dropna(subset=['pct_change_trend']).sort_values('timestamp').groupby('status'):
        fig.add_trace(go.Scatter(x=group['timestamp'], y=group['pct_change_trend'], mode='lines',
                                 name=f"{status} trend", line=dict(color=config.status_color(status), width=3)))
    fig.update_layout(yaxis=dict(tickformat=".0%"), height=450)
    return fig


def assessment_chart(pairs: pd.DataFrame, config: ReportConfig) -> go.Figure:
    title = f"Sale Price vs. {config.assessment_year} Assessment"
    if pairs.empty:
        return _empty_figure(title)
    fig = px.scatter(pairs, x='assessment_value', y='price', color='location_bin',
                     hover_data=['address', 'sale_to_assessment'],
                     labels={'assessment_value': 'Assessed value ($)', 'price': 'Sale price ($)'},
                     title=title)
    top = float(max(pairs['assessment_value'].max(), pairs['price'].max()))
    fig.add_trace(go.Scatter(x=[0, top], y=[0, top], mode='lines', name="Sale = Assessment",
                             line=dict(color='#94a3b8', dash='dot')))
    fig.update_layout(height=450)
    return fig


def history_small_multiples(histories: pd.DataFrame, config: ReportConfig, cols: int = 4) -> go.Figure:
    """One panel per property: price over time, points coloured by status."""
    title = "Recent Sales: Listing History"
    if histories.empty:
        return _empty_figure(title)
    pids = list(dict.fromkeys(histories['pid']))
    rows = -(-len(pids) // cols)
    titles = [str(histories.loc[histories['pid'] == pid, 'address'].iloc[0]) for pid in pids]
    fig = make_subplots(rows=rows, cols=cols, subplot_titles=titles, shared_yaxes=False,
                        vertical_spacing=0.35 / max(rows, 1))
    for i, pid in enumerate(pids):
        group = histories[histories['pid'] == pid].sort_values('timestamp')
        fig.add_trace(go.Scatter(
            x=group['timestamp'], y=group['price'], mode='lines+markers+text',
            text=[f"${p / 1000:,.0f}k" for p in group['price']], textposition='top center',
            marker=dict(color=[config.status_color(s) for s in group['status']], size=8),
            line=dict(color='#cbd5e1'), showlegend=False, name=titles[i],
        ), row=i // cols + 1, col=i % cols + 1)
    fig.update_layout(title=title, height=260 * rows)
    fig.update_annotations(font_size=11)
    return fig
