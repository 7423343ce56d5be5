#!/usr/bin/env python3
"""
Metric extraction from diagnostic pod logs.

The diagnostic pod prints marker-delimited blocks every second. Only the most
recent complete, non-empty block of each kind is used, so tailing the log
is enough.
"""

import logging
import math
import re
from typing import NamedTuple, Optional, Tuple

logger = logging.getLogger(__name__)


def _block_pattern(marker: str) -> re.Pattern:
    """Match one MARKER_BEGIN/MARKER_END block; the body cannot contain another marker"""
    return re.compile(
        rf'{marker}_BEGIN[ \t]*\r?\n((?:(?!{marker}_(?:BEGIN|END)).)*?){marker}_END',
        re.DOTALL
    )


DISK_USAGE_BLOCK = _block_pattern('DISK_USAGE')
SYSTEM_STATS_BLOCK = _block_pattern('SYSTEM_STATS')
LOAD_AVERAGE = re.compile(r'load average:\s*([0-9]+(?:\.[0-9]+)?)')

# df columns: device, size, used, available, use%, mountpoint
DF_FIELD_COUNT = 6

SIZE_SUFFIXES = {
    'K': 1024,
    'M': 1024 ** 2,
    'G': 1024 ** 3,
    'T': 1024 ** 4,
    'P': 1024 ** 5,
    'E': 1024 ** 6,
}


class DiskUsage(NamedTuple):
    total_bytes: int
    used_bytes: int
    used_percent: float
    ok: bool


NO_DISK_USAGE = DiskUsage(0, 0, 0.0, False)


def _parse_size(size_str: str) -> Optional[int]:
    """Parse a df -h size token, returning None when it is not a size"""
    size_str = (size_str or "").strip()
    if not size_str:
        return None

    numeric_part = size_str
    multiplier = 1
    factor = SIZE_SUFFIXES.get(size_str[-1])
    if factor is not None:
        numeric_part = size_str[:-1]
        multiplier = factor

    try:
        value = float(numeric_part)
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return int(value * multiplier)


def parse_human_size(size_str: str) -> int:
    """
    Convert a human-readable size like 195.8G to bytes (1024 based)

    Args:
        size_str: Size token from df -h

    Returns:
        int: Byte count rounded toward zero, or 0 if the token is not a size
    """
    size = _parse_size(size_str)
    if size is None:
        if size_str and size_str.strip():
            logger.debug(f"Could not parse size '{size_str}'")
        return 0
    return size


def _last_block(pattern: re.Pattern, log_text: str) -> Optional[str]:
    # a tick where the command printed nothing leaves an empty block
    blocks = [block for block in pattern.findall(log_text or "") if block.strip()]
    return blocks[-1] if blocks else None


def extract_disk_usage(log_text: str) -> DiskUsage:
    """
    Extract total, used and used-percent figures from the latest df block

    The used percentage is recomputed from total and available sizes when the
    available size parses, since df rounds its own percentage.

    Args:
        log_text: Diagnostic pod log text

    Returns:
        DiskUsage: Figures with ok=True, or NO_DISK_USAGE when the block is
            missing or malformed
    """
    block = _last_block(DISK_USAGE_BLOCK, log_text)
    if block is None:
        return NO_DISK_USAGE

    # df may wrap long device names onto their own line
    fields = block.split()
    if len(fields) < DF_FIELD_COUNT:
        return NO_DISK_USAGE

    total = _parse_size(fields[1])
    used = _parse_size(fields[2])
    available = _parse_size(fields[3])
    if not total or used is None:
        return NO_DISK_USAGE

    if available is not None:
        used_percent = (total - available) / total * 100
    else:
        try:
            used_percent = float(fields[4].rstrip('%'))
        except ValueError:
            return NO_DISK_USAGE

    return DiskUsage(total, used, used_percent, True)


def extract_system_load(log_text: str) -> Tuple[float, bool]:
    """
    Extract the 1-minute load average from the latest system stats block

    Returns:
        Tuple[float, bool]: (load, ok)
    """
    block = _last_block(SYSTEM_STATS_BLOCK, log_text)
    if block is None:
        return 0.0, False
    match = LOAD_AVERAGE.search(block)
    if not match:
        return 0.0, False
    return float(match.group(1)), True
