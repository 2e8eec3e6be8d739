import pandas as pd
from halifax_housing.config import ReportConfig
from halifax_housing.database import HalifaxDB
from halifax_housing.queries import ListingRepository
from halifax_housing.report import build_report, main, market_time


def _source_rows(n=30):
    """A small market: n sold properties with one price cut each, plus a few active listings."""
    properties, updates, geocode = [], [], []
    base = pd.Timestamp('2023-01-02')
    for i in range(n):
        pid = f"P{i}"
        address = f"{i} Robie St"
        location = "Halifax Peninsula" if i % 2 else "Dartmouth"
        prop_type = "Residential" if i % 3 else "Condominium"
        sqft = 800 + 50 * i
        price = 100000 + 150 * sqft
        listed = base + pd.Timedelta(days=2 * i)
        properties.append((pid, address, None, "Halifax", "B3H1A1" if i % 2 else "B2Y1A1", sqft,
                           price * 0.9, 2021, prop_type, f"https://example.com/{pid}"))
        geocode.append((address, location, 44.6, -63.6))
        updates.append((pid, listed.isoformat(), "For Sale", price, listed.date().isoformat(), f"M{i}"))
        updates.append((pid, (listed + pd.Timedelta(hours=6)).isoformat(), "For Sale", price,
                        listed.date().isoformat(), f"M{i}"))
        updates.append((pid, (listed + pd.Timedelta(days=10)).isoformat(), "For Sale", price * 0.97,
                        listed.date().isoformat(), f"M{i}"))
        final = "Sold" if i < n - 5 else "For Sale"
        updates.append((pid, (listed + pd.Timedelta(days=20)).isoformat(), final,
                        price * (0.97 if final == "For Sale" else 0.96), listed.date().isoformat(), f"M{i}"))
    properties.append(("R1", "99 Country Rd", None, "Truro", "B2N1A1", 1500, None, None,
                       "Residential", None))
    geocode.append(("99 Country Rd", "Rest of Province", 45.3, -63.2))
    updates.append(("R1", base.isoformat(), "For Sale", 250000, base.date().isoformat(), "M99"))
    return properties, updates, geocode


def test_build_report_end_to_end(make_db):
    repo = ListingRepository(db=make_db(*_source_rows()))
    markup = build_report(repo, ReportConfig(), now=pd.Timestamp('2023-03-20'), street='Robie')

    for heading in ("Inventory", "Time on Market", "Price per Square Foot", "Price Changes",
                    "Assessments", "Listing History", "Valuation"):
        assert f"<h2>{heading}</h2>" in markup
    assert "Halifax Real Estate Report" in markup
    assert "Street Search" in markup
    assert "/sqft" in markup
    assert "99 Country Rd" not in markup


def test_build_report_with_sparse_data(make_db):
    """Too little data: fits come back blank and valuation is skipped, no exception."""
    properties = [("P1", "1 Spring Garden Rd", None, "Halifax", "B3H1A1", 1500, None, None,
                   "Residential", None)]
    geocode = [("1 Spring Garden Rd", "Halifax Peninsula", 44.64, -63.58)]
    updates = [("P1", "2023-01-01T10:00:00", "For Sale", 300000, "2023-01-01", "M1"),
               ("P1", "2023-01-20T10:00:00", "Sold", 295000, "2023-01-01", "M1")]
    repo = ListingRepository(db=make_db(properties, updates, geocode))
    markup = build_report(repo, ReportConfig(), now=pd.Timestamp('2023-01-25'))
    assert "Not enough sales to score current listings." in markup


def test_main_writes_page(tmp_path, monkeypatch, seeder):
    monkeypatch.chdir(tmp_path)
    db_path = tmp_path / "listings.db"
    with HalifaxDB(str(db_path)) as db:
        seeder(db, *_source_rows())
    output = tmp_path / "out" / "report.html"

    code = main(["--db", str(db_path), "--config", str(tmp_path / "none.yaml"), "--output", str(output)])
    assert code == 0
    assert output.exists()
    assert "<h2>Valuation</h2>" in output.read_text(encoding='utf-8')


def test_main_fails_without_database(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    output = tmp_path / "report.html"
    code = main(["--db", str(tmp_path / "missing.db"), "--output", str(output)])
    assert code == 1
    assert not output.exists()


def test_time_on_market_uses_configured_region_and_band(make_listings):
    listings = make_listings([
        {'pid': 'IN', 'timestamp': '2023-01-01', 'status': 'For Sale', 'price': 400000, 'list_date': '2023-01-01'},
        {'pid': 'IN', 'timestamp': '2023-01-11', 'status': 'Sold', 'price': 390000, 'list_date': '2023-01-01'},
        {'pid': 'LUX', 'timestamp': '2023-01-01', 'status': 'For Sale', 'price': 3000000, 'list_date': '2023-01-01'},
        {'pid': 'LUX', 'timestamp': '2023-01-21', 'status': 'Sold', 'price': 2900000, 'list_date': '2023-01-01'},
        {'pid': 'BED', 'timestamp': '2023-01-01', 'status': 'For Sale', 'price': 400000, 'list_date': '2023-01-01',
         'location_bin': 'Bedford'},
        {'pid': 'BED', 'timestamp': '2023-01-31', 'status': 'Sold', 'price': 395000, 'list_date': '2023-01-01',
         'location_bin': 'Bedford'},
    ])
    sales = market_time(listings, ReportConfig())
    assert list(sales['pid']) == ['IN']

    wide = ReportConfig(tom_location_bins=None, tom_price_band=None)
    assert set(market_time(listings, wide)['pid']) == {'IN', 'LUX', 'BED'}


def test_time_on_market_section_has_spread_table(make_db):
    repo = ListingRepository(db=make_db(*_source_rows()))
    markup = build_report(repo, ReportConfig(), now=pd.Timestamp('2023-03-20'))
    assert "Median days" in markup


def test_main_fails_on_unwritable_output(tmp_path, monkeypatch, seeder):
    monkeypatch.chdir(tmp_path)
    db_path = tmp_path / "listings.db"
    with HalifaxDB(str(db_path)) as db:
        seeder(db, *_source_rows())
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    code = main(["--db", str(db_path), "--config", str(tmp_path / "none.yaml"),
                 "--output", str(blocker / "report.html")])
    assert code == 1
