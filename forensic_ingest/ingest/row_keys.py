"""Row key allocation for the pre-split data table.

Sequential keys would all land in the last region of a range-partitioned
table. Prefixing each key with ``sequence % NUM_REGIONS`` spreads consecutive
writes over all regions, while the ``{namespace}_{sequence}`` suffix keeps the
key readable and lets a namespace be found again by key filter.

The data table must be pre-split at the bucket prefixes returned by
``region_split_keys()`` for the bucketing to balance load.
"""

# Number of pre-split regions in the data table
NUM_REGIONS = 30

# Width of the zero-padded bucket prefix
BUCKET_WIDTH = 2


def bucket_for(sequence: int) -> str:
    """Zero-padded bucket prefix for a sequence number."""
    return f"{sequence % NUM_REGIONS:0{BUCKET_WIDTH}d}"


def allocate_row_key(namespace_prefix: str, sequence: int) -> str:
    """Build the row key ``{bucket}_{namespace_prefix}_{sequence}``.

    Args:
        namespace_prefix: Namespace of the row, normally the exhibit id.
        sequence: Non-negative, per-namespace sequence number.

    Returns:
        Row key, e.g. ``allocate_row_key("0_0", 35) == "05_0_0_35"``.

    Raises:
        ValueError: If the sequence is negative or the namespace is empty.
    """
    if sequence < 0:
        raise ValueError(f"sequence must be non-negative, got {sequence}")
    if not namespace_prefix:
        raise ValueError("namespace_prefix must not be empty")
    return f"{bucket_for(sequence)}_{namespace_prefix}_{sequence}"


def region_split_keys() -> list[str]:
    """Region start keys for the data table: ``"00"`` through ``"29"``."""
    return [bucket_for(bucket) for bucket in range(NUM_REGIONS)]
