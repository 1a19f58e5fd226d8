"""
Database fixtures for testing
"""

from unittest.mock import MagicMock, patch

import pytest

TEST_DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "test",
    "password": "test",
    "database": "fleetguard_test",
}


@pytest.fixture
def mock_cursor():
    """Mock DictCursor"""
    cursor = MagicMock()
    cursor.fetchall.return_value = []
    cursor.fetchone.return_value = None
    cursor.rowcount = 1
    cursor.lastrowid = 1
    return cursor


@pytest.fixture
def mock_db_connection(mock_cursor):
    """Mock pymysql connection whose cursor() context yields mock_cursor"""
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = mock_cursor
    conn.cursor.return_value.__exit__.return_value = False
    return conn


@pytest.fixture
def patched_connect(mock_db_connection):
    """Patch pymysql.connect to return mock_db_connection"""
    with patch("pymysql.connect", return_value=mock_db_connection) as connect:
        yield connect
