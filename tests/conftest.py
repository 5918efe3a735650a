from unittest.mock import MagicMock

import pytest


@pytest.fixture
def mock_conn():
    """pyodbc 连接的替身，cursor.fetchall() 的返回值由测试设置。"""
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    return conn
