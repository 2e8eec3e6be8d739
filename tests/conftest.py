import sqlite3
import pandas as pd
import pytest
from halifax_housing.database import HalifaxDB
from halifax_housing.queries import SCHEMA_SQL


class PersistentDB(HalifaxDB):
    """Keeps connection open for in-memory tests."""
    def __enter__(self):
        if not self.conn:
            self.conn = sqlite3.connect(self.db_path)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Do not close automatically
        pass


def seed(db: HalifaxDB, properties, updates, geocode):
    db.execute_script(SCHEMA_SQL)
    db.execute_many(
        "INSERT INTO properties (pid, address, unit, city, postal_code, sqft, assessment_value, "
        "assessment_year, type, url) VALUES (?,?,?,?,?,?,?,?,?,?)", properties)
    db.execute_many(
        "INSERT INTO updates (pid, timestamp, status, price, list_date, mls_number) VALUES (?,?,?,?,?,?)",
        updates)
    db.execute_many("INSERT INTO geocode (address, location_bin, latitude, longitude) VALUES (?,?,?,?)",
                    geocode)


@pytest.fixture
def make_db():
    def _make(properties, updates, geocode):
        db = PersistentDB(":memory:")
        with db:
            seed(db, properties, updates, geocode)
        return db
    return _make


LISTING_DEFAULTS = {
    'location_bin': 'Halifax Peninsula',
    'type': 'Residential',
    'sqft': 1500.0,
    'postal_code': 'B3H1A1',
    'assessment_value': None,
    'assessment_year': None,
    'list_date': None,
    'url': None,
}


@pytest.fixture
def make_listings():
    """Builds a listings-shaped DataFrame from partial rows."""
    def _make(rows):
        full = []
        for row in rows:
            item = {**LISTING_DEFAULTS, **row}
            item.setdefault('address', f"{item['pid']} Test St")
            full.append(item)
        df = pd.DataFrame(full)
        df['timestamp'] = pd.to_datetime(df['timestamp'])
        df['list_date'] = pd.to_datetime(df['list_date'])
        df['price'] = df['price'].astype(float)
        df['sqft'] = df['sqft'].astype(float)
        df['assessment_value'] = df['assessment_value'].astype(float)
        return df.sort_values('timestamp', kind='mergesort').reset_index(drop=True)
    return _make


@pytest.fixture
def seeder():
    """Schema + rows loader for file-backed databases."""
    return seed
