import os
import sqlite3
import pandas as pd
from typing import Optional, List, ContextManager

DB_PATH = "halifax_listings.db"

class HalifaxDB:
    """
    Context manager for read access to the scraped listings database.
    Connections are closed on exit; the report never commits writes,
    but ingestion does, so commit/rollback follow the exit status.
    """
    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    def __enter__(self) -> "HalifaxDB":
        self.conn = sqlite3.connect(self.db_path)
        self.conn.execute("PRAGMA foreign_keys = ON;")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn:
            if exc_type:
                self.conn.rollback()
            else:
                self.conn.commit()
            self.conn.close()
            self.conn = None

    def execute_script(self, script: str) -> None:
        """Executes a raw SQL script (multiple statements)."""
        if not self.conn:
            raise RuntimeError("Database connection is not open.")
        self.conn.executescript(script)

    def execute_many(self, sql: str, params: List[tuple]) -> sqlite3.Cursor:
        """Executes a bulk SQL statement."""
        if not self.conn:
            raise RuntimeError("Database connection is not open.")
        return self.conn.executemany(sql, params)

    def query(self, sql: str, params: tuple = ()) -> pd.DataFrame:
        """Executes a query and returns the result as a Pandas DataFrame."""
        if not self.conn:
            raise RuntimeError("Database connection is not open.")
        return pd.read_sql_query(sql, self.conn, params=params)

def get_db(db_path: str = DB_PATH) -> ContextManager[HalifaxDB]:
    """
    Helper to get a database context manager.
    Refuses to open a path that does not exist, since sqlite3 would
    silently create an empty database there.
    """
    if db_path != ":memory:" and not os.path.exists(db_path):
        raise FileNotFoundError(f"Listings database not found: {db_path}")
    return HalifaxDB(db_path)
