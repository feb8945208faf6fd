"""Ingestion layer.

This package contains adapters that receive device payloads and turn them
into normalized :class:`~fencewatch.models.snapshot.PartialSnapshot` values.
"""

__all__: list[str] = []
