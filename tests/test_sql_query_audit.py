from sql_query_audit import _bare_table_name, extract_tables_from_sql, normalize_query


def test_normalize_query_strips_comments_and_extra_statements():
    query = "-- 最近的订单\nSELECT * FROM Orders;\nSELECT 1;"
    assert normalize_query(query) == "SELECT * FROM Orders"


def test_normalize_empty_query():
    assert normalize_query("   ") == ""


def test_extract_tables_drops_schema_and_duplicates():
    query = """
        SELECT o.id, c.name
        FROM dbo.Orders o
        JOIN Customers c ON o.customer_id = c.id
        JOIN Orders p ON p.id = o.parent_id;
    """
    assert extract_tables_from_sql(query) == ["Orders", "Customers"]


def test_extract_tables_from_empty_query():
    assert extract_tables_from_sql("") == []


def test_bare_table_name_strips_brackets():
    assert _bare_table_name("[dbo].[Orders]") == "Orders"
    assert _bare_table_name("Sales.Invoices") == "Invoices"
