import csv
import logging
import os
from typing import Dict, Tuple, Type
import pandas as pd
from pydantic import BaseModel, ValidationError
from halifax_housing.database import HalifaxDB, DB_PATH
from halifax_housing.queries.sql_fragments import SCHEMA_SQL
from halifax_housing.schemas import PropertyRecord, UpdateRecord, GeocodeRecord

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000
DATA_DIR = "data"
REJECTS_FILE = "rejected_records.csv"

# table -> (csv file, record model, column order)
TABLES: Dict[str, Tuple[str, Type[BaseModel], Tuple[str, ...]]] = {
    'properties': ("properties.csv", PropertyRecord,
                   ('pid', 'address', 'unit', 'city', 'postal_code', 'sqft',
                    'assessment_value', 'assessment_year', 'type', 'url')),
    'updates': ("updates.csv", UpdateRecord,
                ('pid', 'timestamp', 'status', 'price', 'list_date', 'mls_number')),
    'geocode': ("geocode.csv", GeocodeRecord,
                ('address', 'location_bin', 'latitude', 'longitude')),
}

INSERT_VERB = {'properties': "INSERT OR REPLACE", 'updates': "INSERT", 'geocode': "INSERT OR REPLACE"}


def init_db(db_path: str = DB_PATH):
    logger.info("Initializing listings schema...")
    with HalifaxDB(db_path) as db:
        db.execute_script(SCHEMA_SQL)


def _row_values(record: BaseModel, columns) -> tuple:
    data = record.model_dump()
    return tuple(data[c].value if hasattr(data[c], 'value') else data[c] for c in columns)


def ingest_table(db: HalifaxDB, table: str, csv_path: str, writer) -> Tuple[int, int]:
    """
    Validates one scraped CSV export and appends it to `table`.
    Invalid rows go to the rejects writer instead of aborting the load.
    """
    _, model, columns = TABLES[table]
    inserted = rejected = 0
    placeholders = ", ".join(["?"] * len(columns))
    sql = f"{INSERT_VERB[table]} INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

    for chunk in pd.read_csv(csv_path, chunksize=BATCH_SIZE, dtype=str):
        batch = []
        for row in chunk.where(pd.notnull(chunk), None).to_dict('records'):
            try:
                batch.append(_row_values(model(**row), columns))
            except ValidationError as e:
                rejected += 1
                writer.writerow([table, str(e), str(row)])
        if batch:
            db.execute_many(sql, batch)
            inserted += len(batch)
    logger.info(f"{table}: inserted {inserted}, rejected {rejected}")
    return inserted, rejected


def ingest_directory(data_dir: str = DATA_DIR, db_path: str = DB_PATH) -> Dict[str, Tuple[int, int]]:
    """Loads properties.csv, updates.csv and geocode.csv from `data_dir`."""
    init_db(db_path)
    rejects_path = os.path.join(data_dir, REJECTS_FILE)
    results = {}
    with open(rejects_path, 'w', newline='') as f_reject:
        writer = csv.writer(f_reject)
        writer.writerow(['table', 'error_message', 'raw_data'])
        with HalifaxDB(db_path) as db:
            for table, (filename, _, _) in TABLES.items():
                path = os.path.join(data_dir, filename)
                if not os.path.exists(path):
                    logger.warning(f"Skipping {table}: {path} not found")
                    continue
                results[table] = ingest_table(db, table, path, writer)
    return results


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    ingest_directory()
