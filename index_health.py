# 索引健康评分：只依赖四个计数器和索引类型，不访问数据库

# 除数为0时返回的哨兵值
RATIO_SENTINEL = 999999

CONSIDER_DROPPING = "CONSIDER DROPPING - Unused"
HIGH_SCANS_NO_SEEKS = "OPTIMIZE - High Scans, No Seeks"
POOR_SCAN_SEEK_RATIO = "OPTIMIZE - Poor Scan/Seek Ratio"
HIGH_KEY_LOOKUPS = "COVERING INDEX - High Key Lookups"
HIGH_MAINTENANCE = "HIGH MAINTENANCE - More Updates than Reads"
PERFORMING_WELL = "PERFORMING WELL"
NORMAL_USAGE = "NORMAL USAGE"

RECOMMENDATIONS = (
    CONSIDER_DROPPING,
    HIGH_SCANS_NO_SEEKS,
    POOR_SCAN_SEEK_RATIO,
    HIGH_KEY_LOOKUPS,
    HIGH_MAINTENANCE,
    PERFORMING_WELL,
    NORMAL_USAGE,
)

# 无需处理的建议
HEALTHY_RECOMMENDATIONS = (PERFORMING_WELL, NORMAL_USAGE)

HEAP_HIGH_PRIORITY = "HIGH PRIORITY - Consider adding selective indexes"
HEAP_MEDIUM = "MEDIUM - Monitor query patterns"
HEAP_NORMAL = "Normal"

THRESHOLDS = {
    # 建议规则
    "unused_max_updates": 100,
    "high_scans": 1000,
    "poor_scan_seek_ratio": 10,
    "high_lookup_percentage": 50,
    "high_maintenance_read_write_ratio": 0.1,
    "performing_well_reads": 10000,
    # 优先级规则
    "urgent_scans": 100000,
    "urgent_scan_seek_ratio": 50,
    "urgent_lookups": 10000,
    # 堆表扫描规则
    "heap_min_scans": 100,
    "heap_high_scans": 1000,
    "heap_high_seek_fraction": 0.1,
    "heap_medium_scans": 500,
    "heap_medium_seek_fraction": 0.2,
}

# 越靠前的规则分数越高
PRIORITY_SCORES = {
    "unused": 90,
    "urgent_scans": 80,
    "urgent_scan_seek_ratio": 70,
    "urgent_lookups": 60,
    "none": 0,
}


def _check_counters(**counters):
    for name, value in counters.items():
        if value < 0:
            raise ValueError(f"{name} 不能为负数: {value}")


def usage_metrics(seeks, scans, lookups, updates):
    """
    计算读取总数以及扫描/查找比、读写比和书签查找百分比。
    """
    _check_counters(seeks=seeks, scans=scans, lookups=lookups, updates=updates)
    total_reads = seeks + scans + lookups

    # 扫描/查找比 (越高越低效)
    if seeks == 0:
        scan_to_seek_ratio = RATIO_SENTINEL if scans > 0 else 0
    else:
        scan_to_seek_ratio = scans / seeks

    # 读写比 (越低维护成本越高)
    if updates == 0:
        read_to_write_ratio = RATIO_SENTINEL
    else:
        read_to_write_ratio = total_reads / updates

    # 书签查找百分比 (高则可能需要覆盖索引)
    if total_reads == 0:
        lookup_percentage = 0
    else:
        lookup_percentage = lookups * 100.0 / total_reads

    return {
        "total_reads": total_reads,
        "scan_to_seek_ratio": scan_to_seek_ratio,
        "read_to_write_ratio": read_to_write_ratio,
        "lookup_percentage": lookup_percentage,
    }


def recommend(seeks, scans, lookups, updates, is_clustered, metrics):
    total_reads = metrics["total_reads"]

    # 规则 1: 没有任何读取且写入很少的非聚集索引
    if total_reads == 0 and updates < THRESHOLDS["unused_max_updates"] and not is_clustered:
        return CONSIDER_DROPPING

    # 规则 2: 大量扫描且从未查找
    if seeks == 0 and scans > THRESHOLDS["high_scans"]:
        return HIGH_SCANS_NO_SEEKS

    # 规则 3: 扫描/查找比过高
    if seeks > 0 and metrics["scan_to_seek_ratio"] > THRESHOLDS["poor_scan_seek_ratio"]:
        return POOR_SCAN_SEEK_RATIO

    # 规则 4: 书签查找占比过高
    if lookups > 0 and metrics["lookup_percentage"] > THRESHOLDS["high_lookup_percentage"]:
        return HIGH_KEY_LOOKUPS

    # 规则 5: 更新远多于读取
    if updates > 0 and metrics["read_to_write_ratio"] < THRESHOLDS["high_maintenance_read_write_ratio"]:
        return HIGH_MAINTENANCE

    # 规则 6: 大量查找/扫描且没有书签查找
    if seeks + scans > THRESHOLDS["performing_well_reads"] and lookups == 0:
        return PERFORMING_WELL

    return NORMAL_USAGE


def priority_score(seeks, scans, lookups, is_clustered, metrics):
    if metrics["total_reads"] == 0 and not is_clustered:
        return PRIORITY_SCORES["unused"]
    if seeks == 0 and scans > THRESHOLDS["urgent_scans"]:
        return PRIORITY_SCORES["urgent_scans"]
    if seeks > 0 and metrics["scan_to_seek_ratio"] > THRESHOLDS["urgent_scan_seek_ratio"]:
        return PRIORITY_SCORES["urgent_scan_seek_ratio"]
    if lookups > THRESHOLDS["urgent_lookups"]:
        return PRIORITY_SCORES["urgent_lookups"]
    return PRIORITY_SCORES["none"]


def classify_index(seeks, scans, lookups, updates, is_clustered=False):
    """
    返回 (建议, 优先级)。优先级越高越紧急。
    """
    metrics = usage_metrics(seeks, scans, lookups, updates)
    return (
        recommend(seeks, scans, lookups, updates, is_clustered, metrics),
        priority_score(seeks, scans, lookups, is_clustered, metrics),
    )


def analyze_index(table_name, index_name, type_desc, seeks, scans, lookups, updates,
                  object_id=None, last_user_seek=None, last_user_scan=None,
                  last_user_lookup=None, last_user_update=None):
    """
    汇总一个索引的计数器、派生指标、建议和优先级。

    计数器只统计上次实例重启以来的使用情况，所以同时保留最后一次
    查找/扫描/书签查找/更新的时间，None 表示从未发生。
    """
    is_clustered = type_desc == "CLUSTERED"
    metrics = usage_metrics(seeks, scans, lookups, updates)
    last_reads = [t for t in (last_user_seek, last_user_scan, last_user_lookup) if t is not None]

    result = {
        "object_id": object_id,
        "table_name": table_name,
        "index_name": index_name,
        "type_desc": type_desc,
        "user_seeks": seeks,
        "user_scans": scans,
        "user_lookups": lookups,
        "user_updates": updates,
        "last_user_seek": last_user_seek,
        "last_user_scan": last_user_scan,
        "last_user_lookup": last_user_lookup,
        "last_user_update": last_user_update,
        "last_user_read": max(last_reads) if last_reads else None,
        "recommendation": recommend(seeks, scans, lookups, updates, is_clustered, metrics),
        "priority_score": priority_score(seeks, scans, lookups, is_clustered, metrics),
    }
    result.update(metrics)
    return result


def sort_results(results):
    # 优先级、读取总数、扫描/查找比 均按降序
    return sorted(
        results,
        key=lambda r: (r["priority_score"], r["total_reads"], r["scan_to_seek_ratio"]),
        reverse=True,
    )


def classify_table_scans(scans, seeks):
    """
    堆表扫描分析：扫描多而查找少的堆表可能需要新的选择性索引。
    """
    _check_counters(scans=scans, seeks=seeks)
    if scans > THRESHOLDS["heap_high_scans"] and seeks < scans * THRESHOLDS["heap_high_seek_fraction"]:
        return HEAP_HIGH_PRIORITY
    if scans > THRESHOLDS["heap_medium_scans"] and seeks < scans * THRESHOLDS["heap_medium_seek_fraction"]:
        return HEAP_MEDIUM
    return HEAP_NORMAL
