"""Batch iteration helper"""
from typing import Any, Iterable, Sequence, Tuple


def iter_batches(items: Sequence[Any], batch_size: int) -> Iterable[Tuple[int, Sequence[Any]]]:
    """
    Split a sequence into consecutive batches

    Args:
        items: Sequence to split
        batch_size: Maximum number of items per batch

    Returns:
        Iterator of (start_index, batch_items)

    Raises:
        ValueError: If batch_size is not positive
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be > 0")
    for start in range(0, len(items), batch_size):
        yield start, items[start:start + batch_size]


def count_batches(total: int, batch_size: int) -> int:
    return -(-total // batch_size) if total else 0
