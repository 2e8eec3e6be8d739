import logging
from typing import Optional, Iterable
import pandas as pd
from halifax_housing.database import HalifaxDB, get_db, DB_PATH
from .sql_fragments import PROPERTIES_SQL, UPDATES_SQL, GEOCODE_SQL

logger = logging.getLogger(__name__)

DEDUP_KEYS = ['pid', 'status', 'price']


class ListingRepository:
    """
    Read-only access to the scraped listings.
    The three source tables are read once, fully materialized, and joined
    in memory. Every view returned here is a fresh copy.
    """

    def __init__(self, db: Optional[HalifaxDB] = None, db_path: str = DB_PATH,
                 excluded_location_bins: Iterable[str] = ("Rest of Province",)):
        self._db = db
        self.db_path = db_path
        self.excluded_location_bins = list(excluded_location_bins)
        self._listings_all: Optional[pd.DataFrame] = None

    def _connect(self) -> HalifaxDB:
        return self._db if self._db is not None else get_db(self.db_path)

    def load_tables(self):
        """Returns (properties, updates, geocode) as DataFrames."""
        with self._connect() as db:
            properties = db.query(PROPERTIES_SQL)
            updates = db.query(UPDATES_SQL)
            geocode = db.query(GEOCODE_SQL)
        logger.info(f"Loaded {len(properties)} properties, {len(updates)} updates, {len(geocode)} geocodes")
        return properties, updates, geocode

    def listings_all(self) -> pd.DataFrame:
        """Every update event joined to its property and location bin."""
        if self._listings_all is None:
            self._listings_all = join_listings(*self.load_tables(),
                                               excluded_location_bins=self.excluded_location_bins)
        return self._listings_all.copy()

    def listings(self) -> pd.DataFrame:
        """Update events with repeated identical scrapes collapsed."""
        return dedupe_listings(self.listings_all())

    def latest_status(self) -> pd.DataFrame:
        """One row per property: its most recent event."""
        return latest_events(self.listings_all())


def join_listings(properties: pd.DataFrame, updates: pd.DataFrame, geocode: pd.DataFrame,
                  excluded_location_bins: Iterable[str] = ("Rest of Province",)) -> pd.DataFrame:
    df = updates.merge(properties, on='pid', how='inner')
    df = df.merge(geocode[['address', 'location_bin']].drop_duplicates(subset=['address']),
                  on='address', how='left')

    before = len(df)
    df = df.dropna(subset=['type', 'status', 'location_bin'])
    df = df[~df['location_bin'].isin(list(excluded_location_bins))]
    logger.debug(f"Dropped {before - len(df)} rows without type, status or an in-region location")

    df['timestamp'] = pd.to_datetime(df['timestamp'], format='ISO8601')
    df['list_date'] = pd.to_datetime(df['list_date'], format='ISO8601', errors='coerce')
    df = df.sort_values('timestamp', kind='mergesort')
    return df.reset_index(drop=True)


def dedupe_listings(listings_all: pd.DataFrame) -> pd.DataFrame:
    """Keeps the first row of each (pid, status, price) combination."""
    return listings_all.drop_duplicates(subset=DEDUP_KEYS, keep='first').reset_index(drop=True)


def latest_events(listings: pd.DataFrame) -> pd.DataFrame:
    ordered = listings.sort_values('timestamp', kind='mergesort')
    return ordered.groupby('pid', sort=False).tail(1).reset_index(drop=True)
