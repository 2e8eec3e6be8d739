import argparse
import logging
import sys
from typing import Optional
import pandas as pd
from halifax_housing.config import ReportConfig, load_config, CONFIG_PATH
from halifax_housing.database import DB_PATH
from halifax_housing.queries import ListingRepository
from halifax_housing import metrics, trends
from halifax_housing.valuation import score_listings, load_predictions
from halifax_housing.render import charts
from halifax_housing.render.page import section, render_page, write_page
from halifax_housing.render.tables import valuation_views, render_valuation_tables

logger = logging.getLogger(__name__)


def market_time(listings: pd.DataFrame, config: ReportConfig) -> pd.DataFrame:
    """Days to sale for the configured regions and price band."""
    return metrics.time_to_sale(listings, location_bins=config.tom_location_bins,
                                price_band=config.tom_price_band)


def spread_to_html(spread: pd.DataFrame) -> str:
    if spread.empty:
        return '<p>No sales in range.</p>'
    table = spread.assign(list_week=spread['list_week'].dt.strftime('%Y-%m-%d')).rename(columns={
        'list_week': 'Listed (week of)', 'count': 'Sales', 'q25': '25th pct',
        'median': 'Median days', 'q75': '75th pct'})
    return table.to_html(index=False, border=0, classes="listing-table", float_format="{:.0f}".format)


def build_report(repo: ListingRepository, config: ReportConfig,
                 now: Optional[pd.Timestamp] = None,
                 predictions: Optional[pd.DataFrame] = None,
                 street: Optional[str] = None) -> str:
    """
    Runs every stage once, top to bottom, and returns the page markup.
    Database errors propagate; stages with too little data render empty.
    """
    now = pd.Timestamp.now() if now is None else pd.Timestamp(now)

    listings_all = repo.listings_all()
    listings = repo.listings()
    latest = repo.latest_status()
    logger.info(f"{len(listings_all)} events, {len(listings)} distinct listings, {len(latest)} properties")

    # Volume
    weekly = metrics.turnover(listings, freq='W', now=now)
    daily = metrics.daily_rolling(metrics.turnover(listings, freq='D', now=now))

    # Time on market
    sales = market_time(listings, config)
    spread_table = spread_to_html(metrics.time_on_market_by_week(sales))

    # Price per area
    sample = trends.ppsf_sample(listings, config)
    fits = trends.fit_price_per_area(sample)
    fitted = trends.attach_ols_fit(sample, fits)
    ppsf_trend = trends.ppsf_trend(sample, config)

    # Price changes
    changes = metrics.price_changes(listings, max_change=config.max_price_change)
    change_trend = trends.price_change_trend(changes, config)
    _, headline = metrics.recent_change_by_status(changes, now=now, days=config.recent_change_days)

    # Assessment and history
    pairs = metrics.assessment_vs_sale(listings, config)
    histories = metrics.recent_sale_histories(listings, changes, n=config.history_count)

    # Valuation
    if predictions is None:
        try:
            predictions = score_listings(listings, latest)
        except ValueError as e:
            logger.warning(f"Valuation skipped: {e}")
            predictions = None
    tables = []
    if predictions is not None:
        views = valuation_views(predictions, latest, config, street=street)
        tables = list(render_valuation_tables(views, config).values())

    fit_rows = fits.assign(label=[trends.fit_label(s, i) for s, i in zip(fits['slope'], fits['intercept'])])
    fit_table = fit_rows[['location_bin', 'type', 'n', 'label']].rename(
        columns={'location_bin': 'Location', 'type': 'Type', 'n': 'Properties', 'label': 'Fit'}
    ).fillna("").to_html(index=False, border=0, classes="listing-table")

    sections = [
        section("Inventory", charts=[charts.turnover_chart(weekly, daily)]),
        section("Time on Market", charts=[charts.time_on_market_chart(sales, config)],
                tables=[spread_table]),
        section("Price per Square Foot",
                charts=[charts.price_per_area_chart(fitted, config), charts.ppsf_trend_chart(ppsf_trend, config)],
                tables=[fit_table]),
        section("Price Changes", charts=[charts.price_change_chart(change_trend, headline, config)]),
        section("Assessments", charts=[charts.assessment_chart(pairs, config)]),
        section("Listing History", charts=[charts.history_small_multiples(histories, config)]),
        section("Valuation", tables=tables,
                text=None if tables else "Not enough sales to score current listings."),
    ]
    return render_page(config.title, sections, headline=headline, generated=now.to_pydatetime())


def setup_logging(log_file: str = "report.log", level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Render the Halifax listings report.")
    parser.add_argument("--db", default=DB_PATH, help="Path to the scraped listings SQLite database")
    parser.add_argument("--config", default=CONFIG_PATH, help="Report config YAML")
    parser.add_argument("--output", default=None, help="Output HTML path (overrides config)")
    parser.add_argument("--predictions", default=None, help="Precomputed valuation table (CSV)")
    parser.add_argument("--street", default=None, help="Street name for the street search table")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)
    config = load_config(args.config)
    repo = ListingRepository(db_path=args.db, excluded_location_bins=config.excluded_location_bins)

    try:
        predictions = load_predictions(args.predictions) if args.predictions else None
        markup = build_report(repo, config, predictions=predictions, street=args.street)
        write_page(markup, args.output or config.output_path)
    except Exception as e:
        logger.error(f"Report generation failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
