from .db import initialize_database
from .records import (
    HISTORY_YEARS,
    SqliteTemperatureStore,
    StoreError,
    TemperatureStore,
    average_max_temp,
    average_min_temp,
    clear_records,
    count_records,
    get_record,
    list_records,
    put_record,
)

__all__ = [
    "HISTORY_YEARS",
    "SqliteTemperatureStore",
    "StoreError",
    "TemperatureStore",
    "average_max_temp",
    "average_min_temp",
    "clear_records",
    "count_records",
    "get_record",
    "initialize_database",
    "list_records",
    "put_record",
]
