from .listings import ListingRepository
from .sql_fragments import PROPERTIES_SQL, UPDATES_SQL, GEOCODE_SQL, SCHEMA_SQL
