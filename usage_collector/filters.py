#!/usr/bin/env python3
"""
Usage filter expressions and result-count limiting.

Filter text is an optional comparison operator (>, >=, <, <=, =) followed by
a decimal number. A bare number means '>'. Empty text means no filtering.
"""

import operator
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

from tools.core.errors import FilterParseError
from usage_collector.models import UsageRecord

# Decimal literal with optional sign and exponent
DECIMAL_NUMBER = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    '>': operator.gt,
    '>=': operator.ge,
    '<': operator.lt,
    '<=': operator.le,
    '=': operator.eq,
}


@dataclass(frozen=True)
class FilterExpression:
    """Comparison applied to a record's percentage used"""
    operator: str
    value: float

    def matches(self, record: UsageRecord) -> bool:
        return COMPARATORS[self.operator](record.percentage_used, self.value)


def parse_filter(text: str) -> Optional[FilterExpression]:
    """
    Parse a filter string like ">50", "<=80", "=90" or "50"

    Args:
        text: Filter text

    Returns:
        Optional[FilterExpression]: Parsed expression, or None for empty text

    Raises:
        FilterParseError: If the numeric part is not a valid decimal number
    """
    if not text:
        return None

    if text[0] in '><=':
        op = text[0]
        rest = text[1:]
        if rest.startswith('='):
            op += '='
            rest = rest[1:]
    else:
        op = '>'
        rest = text

    if op not in COMPARATORS:
        # "==" is the only operator-shaped prefix that is not supported
        raise FilterParseError(f"invalid filter operator: {op!r}")

    if not DECIMAL_NUMBER.fullmatch(rest):
        raise FilterParseError(f"invalid filter value: {rest!r}")
    value = float(rest)

    return FilterExpression(operator=op, value=value)


def filter_usages(records: Sequence[UsageRecord], text: str) -> List[UsageRecord]:
    """
    Keep the records whose percentage used satisfies the filter

    Args:
        records: Usage records, in ranked order
        text: Filter text; empty keeps every record

    Returns:
        List[UsageRecord]: Matching records in their original order

    Raises:
        FilterParseError: If the filter text is malformed
    """
    expression = parse_filter(text)
    if expression is None:
        return list(records)
    return [record for record in records if expression.matches(record)]


def limit_top_n(records: Sequence[UsageRecord], n: int) -> List[UsageRecord]:
    """Return the first n records; n <= 0 means unlimited"""
    if n > 0 and len(records) > n:
        return list(records[:n])
    return list(records)
