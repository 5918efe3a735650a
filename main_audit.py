import os

import pyodbc

from indexes_audit import audit_heap_scans, audit_indexes
from sql_query_audit import extract_tables_from_sql, normalize_query


# 从环境变量读取数据库连接信息
def get_db_config():
    return {
        "server": os.getenv("MSSQL_SERVER", "localhost"),
        "database": os.getenv("MSSQL_DATABASE", "AuditDemoDB"),
        "user": os.getenv("MSSQL_USER", "AuditDemoUser"),
        "password": os.getenv("MSSQL_PASSWORD", ""),
        "driver": os.getenv("MSSQL_DRIVER", "ODBC Driver 17 for SQL Server"),
    }


# 定义连接到SQL Server的函数
def connect_to_sql_server(server, database, user, password, driver="ODBC Driver 17 for SQL Server"):
    connection_string = f"DRIVER={{{driver}}};SERVER={server};DATABASE={database};UID={user};PWD={password}"
    return pyodbc.connect(connection_string)


def read_user_query(read_line=input):
    """
    循环读取输入直到以';'结束。第一行为空则返回空字符串。
    输入提前结束 (EOF) 时使用已读取的部分。
    """
    lines = []
    while True:
        try:
            line = read_line()
        except EOFError:
            break
        if not lines and not line.strip():
            return ""
        lines.append(line)
        if line.strip().endswith(';'):
            break
    return normalize_query("\n".join(lines))


def run_audit(conn, query=""):
    tables = None
    if query:
        tables = extract_tables_from_sql(query)
        if tables:
            print(f"审计范围: {', '.join(tables)}")
        else:
            print("提示: 查询中没有识别到表名，将审计整个数据库。")
            tables = None

    index_results = audit_indexes(conn, tables)
    heap_results = audit_heap_scans(conn, tables)
    return index_results, heap_results


if __name__ == "__main__":
    config = get_db_config()

    try:
        conn = connect_to_sql_server(**config)
    except pyodbc.Error as e:
        print(f"错误: 无法连接到 {config['server']}/{config['database']}: {e}")
        raise SystemExit(1)

    try:
        print("请输入你的SQL查询 (以';'结束，直接回车则审计整个数据库):")
        user_query = read_user_query()
        if user_query:
            print("正在审计的查询：")
            print(user_query)

        run_audit(conn, user_query)
    except pyodbc.Error as e:
        print(f"错误: {e}")
        print("提示：可能是权限问题或其他数据库配置问题。")
        raise SystemExit(1)
    finally:
        conn.close()
