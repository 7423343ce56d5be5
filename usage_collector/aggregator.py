#!/usr/bin/env python3
"""
PVC usage aggregation across cluster nodes.

Polls every node's stats summary, builds one usage record per reported
claim-backed volume and ranks them by percentage used. A claim mounted on
several nodes shows up once per reporting node; records are not merged.
"""

import logging
from typing import Dict, Any, List, Optional

from usage_collector.filters import filter_usages, limit_top_n
from usage_collector.models import StatsSource, UsageRecord

logger = logging.getLogger(__name__)


class UsageAggregator:
    """Collects and ranks PVC usage records from a StatsSource"""

    def __init__(self, stats_source: StatsSource, config_data: Optional[Dict[str, Any]] = None):
        """
        Initialize the aggregator

        Args:
            stats_source: Source of node names and per-node volume stats
            config_data: Configuration data (uses the 'usage' section)
        """
        self.stats_source = stats_source
        self.usage_config = (config_data or {}).get('usage', {})
        self.errors: List[str] = []

    def compute_usage(self) -> List[UsageRecord]:
        """
        Gather usage records from all nodes, sorted by percentage used

        Nodes whose stats cannot be fetched are logged and skipped; the
        failure message is kept in self.errors for the last call.

        Returns:
            List[UsageRecord]: Records in non-increasing percentage order

        Raises:
            ConnectivityError: If the node list itself cannot be retrieved
        """
        self.errors = []
        nodes = self.stats_source.list_nodes()
        logger.debug(f"Collecting volume stats from {len(nodes)} nodes")

        records: List[UsageRecord] = []
        for node in nodes:
            try:
                stats = self.stats_source.get_volume_stats(node)
            except Exception as e:
                error_msg = f"Error getting summary for node {node}: {e}"
                logger.warning(error_msg)
                self.errors.append(error_msg)
                continue

            for stat in stats:
                record = UsageRecord.from_volume_stat(stat)
                if record is not None:
                    records.append(record)

        # sorted() is stable, so equal percentages keep node/report order
        return sorted(records, key=lambda r: r.percentage_used, reverse=True)

    def collect(self, filter_text: Optional[str] = None, top: Optional[int] = None) -> List[UsageRecord]:
        """
        Run the full pipeline: compute, filter, then limit

        Args:
            filter_text: Filter expression (default: usage.filter from config)
            top: Result-count cap (default: usage.top from config)

        Returns:
            List[UsageRecord]: Filtered, ranked and truncated records

        Raises:
            FilterParseError: If the filter expression is malformed
        """
        if filter_text is None:
            filter_text = self.usage_config.get('filter', '') or ''
        if top is None:
            top = int(self.usage_config.get('top', 0) or 0)

        records = self.compute_usage()
        records = filter_usages(records, filter_text)
        return limit_top_n(records, top)
