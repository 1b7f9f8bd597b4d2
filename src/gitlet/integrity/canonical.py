"""
Canonical encoding for deterministic hashing.

Ensures the same logical record always produces the same bytes, and
therefore the same digest.
"""

import json
from typing import Any


def canonical_json(obj: Any) -> bytes:
    """
    Encode an object to canonical JSON bytes.

    Rules:
    - Keys sorted
    - No whitespace
    - UTF-8 encoding
    - No NaN/Infinity

    A file mapping {"b.txt": h1, "a.txt": h2} encodes identically no
    matter the order its entries were inserted in.
    """
    return canonical_json_str(obj).encode('utf-8')


def canonical_json_str(obj: Any) -> str:
    """Encode an object to a canonical JSON string."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
        allow_nan=False,
    )


def decode_json(data: bytes) -> Any:
    """Decode JSON bytes written by canonical_json."""
    return json.loads(data.decode('utf-8'))
