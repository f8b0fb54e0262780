"""Errors raised while loading search snapshots."""


class SnapshotLoadError(RuntimeError):
    """Snapshot files are missing, unreadable or inconsistent."""


class IndexFormatError(ValueError):
    """Exported search index data cannot be imported."""
