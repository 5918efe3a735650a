import sqlparse
from sql_metadata import Parser


def normalize_query(query):
    """
    去掉注释和首尾空白，只保留第一条语句。
    """
    formatted = sqlparse.format(query, strip_comments=True).strip()
    statements = sqlparse.split(formatted)
    if not statements:
        return ""
    return statements[0].rstrip(";").strip()


def _bare_table_name(table):
    # OBJECT_NAME() 返回不带架构的表名
    return table.split(".")[-1].strip("[]\"")


def extract_tables_from_sql(query):
    """
    提取查询中涉及的表名 (去重、去掉架构前缀)。
    """
    query = normalize_query(query)
    if not query:
        return []
    try:
        tables = Parser(query).tables
    except ValueError as e:
        print(f"警告: 无法解析查询中的表名: {e}")
        return []

    names = []
    for table in tables:
        name = _bare_table_name(table)
        if name and name not in names:
            names.append(name)
    return names
