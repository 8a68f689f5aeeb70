"""Ingestion layer.

Turns raw feed payloads (whatever the transport delivered) into normalized
driver snapshots.
"""

__all__: list[str] = []
