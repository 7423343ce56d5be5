"""
PVC usage collection

Aggregates per-node volume stats into ranked usage records and applies
usage filters and result limits.
"""

from .models import UsageRecord, VolumeStat, Summary, StatsSource
from .filters import FilterExpression, parse_filter, filter_usages, limit_top_n
from .aggregator import UsageAggregator

__all__ = [
    'UsageRecord',
    'VolumeStat',
    'Summary',
    'StatsSource',
    'FilterExpression',
    'parse_filter',
    'filter_usages',
    'limit_top_n',
    'UsageAggregator',
]
