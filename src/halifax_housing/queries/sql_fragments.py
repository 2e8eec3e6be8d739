# --- SQL Logic Fragments ---
# Plain table reads. Joins and filters run in pandas after materialization.

PROPERTIES_SQL = """
SELECT
    pid,
    address,
    unit,
    city,
    postal_code,
    sqft,
    assessment_value,
    assessment_year,
    type,
    url
FROM properties
"""

UPDATES_SQL = """
SELECT
    id,
    pid,
    timestamp,
    status,
    price,
    list_date,
    mls_number
FROM updates
ORDER BY timestamp ASC, id ASC
"""

GEOCODE_SQL = """
SELECT
    address,
    location_bin,
    latitude,
    longitude
FROM geocode
"""

# Source schema, used by ingestion and tests.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS properties (
    pid TEXT PRIMARY KEY,
    address TEXT,
    unit TEXT,
    city TEXT,
    postal_code TEXT,
    sqft REAL,
    assessment_value REAL,
    assessment_year INTEGER,
    type TEXT,
    url TEXT
);

CREATE TABLE IF NOT EXISTS updates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    pid TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    status TEXT,
    price REAL,
    list_date TEXT,
    mls_number TEXT
);

CREATE TABLE IF NOT EXISTS geocode (
    address TEXT PRIMARY KEY,
    location_bin TEXT,
    latitude REAL,
    longitude REAL
);

CREATE INDEX IF NOT EXISTS idx_updates_pid ON updates(pid);
CREATE INDEX IF NOT EXISTS idx_updates_timestamp ON updates(timestamp);
"""
