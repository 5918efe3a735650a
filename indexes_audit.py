import pyodbc

from index_health import (
    HEALTHY_RECOMMENDATIONS,
    HEAP_NORMAL,
    THRESHOLDS,
    analyze_index,
    classify_table_scans,
    sort_results,
)

INDEX_USAGE_QUERY = """
    SELECT
        i.object_id AS ObjectId,
        OBJECT_NAME(i.object_id) AS TableName,
        i.name AS IndexName,
        i.type_desc AS IndexType,
        ISNULL(s.user_seeks, 0) AS UserSeeks,
        ISNULL(s.user_scans, 0) AS UserScans,
        ISNULL(s.user_lookups, 0) AS UserLookups,
        ISNULL(s.user_updates, 0) AS UserUpdates,
        s.last_user_seek AS LastUserSeek,
        s.last_user_scan AS LastUserScan,
        s.last_user_lookup AS LastUserLookup,
        s.last_user_update AS LastUserUpdate
    FROM sys.indexes i
    LEFT JOIN sys.dm_db_index_usage_stats s
        ON i.object_id = s.object_id
        AND i.index_id = s.index_id
        AND s.database_id = DB_ID()
    WHERE i.object_id > 100  -- 排除系统对象
        AND i.name IS NOT NULL  -- 排除堆
"""

HEAP_SCAN_QUERY = """
    SELECT
        OBJECT_NAME(s.object_id) AS TableName,
        s.user_scans AS TableScans,
        s.user_seeks AS TableSeeks,
        s.user_lookups AS TableLookups
    FROM sys.dm_db_index_usage_stats s
    WHERE s.database_id = DB_ID()
        AND s.index_id = 0  -- 只看堆扫描
        AND s.user_scans > ?
"""

# SQL Server 拒绝访问DMV时的错误信息
PERMISSION_MARKERS = ("VIEW SERVER STATE", "permission", "权限")


def _table_filter(column, tables):
    # 表名通过参数传入，不拼接到SQL中
    if not tables:
        return "", []
    placeholders = ", ".join("?" for _ in tables)
    return f" AND {column} IN ({placeholders})", list(tables)


def _fetch(conn, query, params, description):
    """
    执行只读查询。ProgrammingError 时打印原因并返回 None，以区分"读取失败"和"没有数据"。
    """
    cursor = conn.cursor()
    try:
        cursor.execute(query, *params)
        return cursor.fetchall()
    except pyodbc.ProgrammingError as e:
        if any(marker in str(e) for marker in PERMISSION_MARKERS):
            print(f"警告: 读取{description}失败，可能由于权限问题 (需要 VIEW SERVER STATE)。")
        else:
            print(f"SQL错误：读取{description}失败: {e}")
        return None
    finally:
        cursor.close()


def fetch_index_usage(conn, tables=None):
    where, params = _table_filter("OBJECT_NAME(i.object_id)", tables)
    return _fetch(conn, INDEX_USAGE_QUERY + where + ";", params, "索引使用统计")


def fetch_heap_scans(conn, tables=None):
    where, params = _table_filter("OBJECT_NAME(s.object_id)", tables)
    query = HEAP_SCAN_QUERY + where + "\n    ORDER BY s.user_scans DESC;"
    return _fetch(conn, query, [THRESHOLDS["heap_min_scans"]] + params, "堆表扫描统计")


def audit_indexes(conn, tables=None):
    """
    审计索引使用情况，打印需要处理的索引，并返回按优先级排序的结果列表。
    """
    print("开始进行索引审计...")
    rows = fetch_index_usage(conn, tables)
    if rows is None:
        return []

    results = []
    for row in rows:
        results.append(analyze_index(
            row.TableName,
            row.IndexName,
            row.IndexType,
            row.UserSeeks or 0,
            row.UserScans or 0,
            row.UserLookups or 0,
            row.UserUpdates or 0,
            object_id=row.ObjectId,
            last_user_seek=row.LastUserSeek,
            last_user_scan=row.LastUserScan,
            last_user_lookup=row.LastUserLookup,
            last_user_update=row.LastUserUpdate,
        ))
    results = sort_results(results)

    for result in results:
        if result["recommendation"] in HEALTHY_RECOMMENDATIONS:
            continue
        # 计数器在实例重启后清零，删除前要看最后一次读取时间
        last_read = result["last_user_read"] or "从未"
        print(f"警告: 表 {result['table_name']} 上的索引 {result['index_name']} ({result['type_desc']}): "
              f"{result['recommendation']} (优先级 {result['priority_score']}, "
              f"查找 {result['user_seeks']}, 扫描 {result['user_scans']}, "
              f"书签查找 {result['user_lookups']}, 更新 {result['user_updates']}, "
              f"最后读取 {last_read})")

    if not results:
        print("提示: 没有找到可审计的索引。")
    return results


def audit_heap_scans(conn, tables=None):
    """
    找出扫描频繁但查找很少的堆表，这些表可能需要新的索引。
    """
    print("开始进行堆表扫描审计...")
    results = []
    for row in fetch_heap_scans(conn, tables) or []:
        scans = row.TableScans or 0
        seeks = row.TableSeeks or 0
        results.append({
            "table_name": row.TableName,
            "table_scans": scans,
            "table_seeks": seeks,
            "table_lookups": row.TableLookups or 0,
            "table_recommendation": classify_table_scans(scans, seeks),
        })

    for result in results:
        if result["table_recommendation"] == HEAP_NORMAL:
            continue
        print(f"警告: 堆表 {result['table_name']} 被扫描 {result['table_scans']} 次, "
              f"查找 {result['table_seeks']} 次: {result['table_recommendation']}")
    return results
