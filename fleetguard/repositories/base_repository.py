"""
Base Repository - shared pymysql connection handling

Every repository opens a short-lived connection per call (autocommit,
bounded connect/read/write timeouts from DatabaseSettings) and closes it
in a finally block. Any pymysql.MySQLError, timeouts included, leaves
the repository as a DatabaseError.
"""

import logging
import re
from contextlib import contextmanager
from datetime import time, timedelta
from typing import Any, Dict, Optional

import pymysql
from pymysql.cursors import DictCursor

from errors import DatabaseError
from fleetguard.models import GeoPoint

logger = logging.getLogger(__name__)


class BaseRepository:
    """pymysql connection + error translation shared by all repositories"""

    def __init__(self, db_config: Dict[str, Any]):
        self.db_config = db_config

    def _get_connection(self):
        return pymysql.connect(**self.db_config, cursorclass=DictCursor)

    @contextmanager
    def _cursor(self, operation: str):
        """
        Yield a DictCursor on a fresh connection.

        Raises:
            DatabaseError: on any MySQL error (connection, timeout, query)
        """
        try:
            conn = self._get_connection()
        except pymysql.MySQLError as e:
            logger.error(f"DB connection failed during {operation}: {e}")
            raise DatabaseError("Database unavailable", operation=operation) from e

        try:
            with conn.cursor() as cursor:
                yield cursor
        except pymysql.MySQLError as e:
            logger.error(f"DB error during {operation}: {e}")
            raise DatabaseError("Database operation failed", operation=operation) from e
        finally:
            conn.close()


def format_time_of_day(value: Any) -> Optional[str]:
    """
    MySQL TIME columns come back from pymysql as timedelta; the engine
    works with "HH:MM:SS" strings.
    """
    if value is None:
        return None
    if isinstance(value, timedelta):
        total = int(value.total_seconds())
        hours, remainder = divmod(total, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value)


_POINT_WKT = re.compile(
    r"^\s*POINT\s*\(\s*(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)\s+"
    r"(-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)\s*\)\s*$",
    re.IGNORECASE,
)


def point_to_wkt(point: GeoPoint) -> str:
    """GeoPoint -> 'POINT(lng lat)' (x = longitude)"""
    return f"POINT({point.lng!r} {point.lat!r})"


def point_from_wkt(value: Optional[str]) -> Optional[GeoPoint]:
    """'POINT(lng lat)' -> GeoPoint, None when the text is not a point"""
    if not value:
        return None
    match = _POINT_WKT.match(value)
    if not match:
        logger.warning(f"Unparseable POINT geometry: {value!r}")
        return None
    return GeoPoint(lat=float(match.group(2)), lng=float(match.group(1)))
