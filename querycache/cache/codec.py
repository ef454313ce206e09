"""Versioned MessagePack payloads for shared-tier entries.

Every blob is a map carrying a ``v`` tag. Readers treat any version they do
not know as an absent entry, so a format change never breaks a running
fleet that still holds older (or newer) blobs.
"""

from typing import Any

import msgpack

from querycache.core.exceptions import CacheDegradedError
from querycache.core.models import CacheEntry, RowSet, Tier

PAYLOAD_VERSION = 1


def encode_entry(entry: CacheEntry) -> bytes:
    """Serialize a cache entry for the shared tier.

    Record values are dumped in JSON mode, so datetimes and decimals are
    stored as strings.

    Raises:
        CacheDegradedError: A record value cannot be serialized
    """
    try:
        payload: dict[str, Any] = {
            "v": PAYLOAD_VERSION,
            "key": entry.key,
            "rows": entry.rows.model_dump(mode="json"),
            "stored_at": entry.stored_at,
            "ttl": entry.ttl_seconds,
            "max_results": entry.max_results,
        }
        return msgpack.packb(payload, use_bin_type=True)
    except Exception as e:
        raise CacheDegradedError(f"Unserializable cache payload: {e}") from e


def decode_entry(blob: bytes) -> CacheEntry:
    """Deserialize a shared-tier blob.

    Raises:
        CacheDegradedError: Unknown payload version or undecodable blob
    """
    try:
        payload = msgpack.unpackb(blob, raw=False)
    except Exception as e:
        # msgpack raises a mix of ValueError, TypeError and its own types
        raise CacheDegradedError(f"Undecodable cache payload: {e}") from e

    if not isinstance(payload, dict):
        raise CacheDegradedError("Cache payload is not a map")

    version = payload.get("v")
    if version != PAYLOAD_VERSION:
        raise CacheDegradedError(
            f"Unsupported cache payload version: {version!r}",
            details={"version": version},
        )

    try:
        return CacheEntry(
            key=payload["key"],
            rows=RowSet.model_validate(payload["rows"]),
            stored_at=payload["stored_at"],
            ttl_seconds=payload["ttl"],
            source_tier=Tier.SHARED,
            max_results=payload.get("max_results"),
        )
    except (KeyError, ValueError) as e:
        raise CacheDegradedError(f"Invalid cache payload: {e}") from e
