"""Index arithmetic over a fixed-capacity circular buffer.

The buffer itself is owned by the caller; these helpers only compute slot
positions. ``cardinality`` is the physical capacity of the buffer and
``count`` the number of valid entries currently stored.
"""


def wrap(index: int, cardinality: int) -> int:
    """Wrap an unbounded index into ``[0, cardinality)``."""
    return index % cardinality


def offset(index: int, amount: int, count: int) -> int:
    """
    Step ``amount`` slots back from ``index`` within ``count`` entries.

    Args:
        index: Starting slot
        amount: Number of slots to step back
        count: Number of valid entries

    Returns:
        Slot index
    """
    return (index + count - amount) % count


def next_index(index: int, cardinality: int) -> int:
    """Slot following ``index``."""
    return wrap(index + 1, cardinality)


def newest_index(next_slot: int, cardinality: int) -> int:
    """Slot of the most recently written entry."""
    if cardinality == 0:
        return 0
    return wrap(next_slot + cardinality - 1, cardinality)


def oldest_index(next_slot: int, count: int, cardinality: int) -> int:
    """
    Slot of the oldest retained entry.

    Until the buffer fills up the oldest entry sits at slot 0; afterwards
    it is the slot that will be overwritten next.

    Args:
        next_slot: Slot the next write will occupy
        count: Number of valid entries
        cardinality: Buffer capacity

    Returns:
        Slot index
    """
    if count < cardinality:
        return 0
    return wrap(next_slot + cardinality, cardinality)
