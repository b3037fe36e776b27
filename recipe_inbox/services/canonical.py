"""
Canonical JSON serialization and content hashing.

Two structurally equal JSON values (same keys and values, any key order)
serialize to the same string; any structural difference changes it.
"""
from __future__ import annotations

import hashlib
import json
import math
from typing import Any


def _encode_scalar(value: Any) -> str:
    if isinstance(value, float) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite number cannot be canonicalized: {value!r}")
        # 1.0 and 1 are the same JSON number
        if value.is_integer():
            return json.dumps(int(value))
    return json.dumps(value, ensure_ascii=False, allow_nan=False)


def _sort_key(key: str) -> bytes:
    # UTF-16 code unit order, matching JavaScript's default string sort
    return key.encode("utf-16-be", "surrogatepass")


def canonical_json(value: Any) -> str:
    """
    Serializes a JSON-compatible value with sorted object keys and no whitespace.

    Object keys are ordered by UTF-16 code unit, so hashes agree with clients
    that sort keys in JavaScript. Array order is preserved. Nesting depth is
    unbounded: containers are expanded with an explicit stack. Raises TypeError
    for values JSON cannot express.
    """
    parts: list[str] = []
    # (is_text, item): text is emitted as-is, anything else still needs encoding
    stack: list[tuple[bool, Any]] = [(False, value)]
    while stack:
        is_text, item = stack.pop()
        if is_text:
            parts.append(item)
        elif isinstance(item, dict):
            pairs = sorted(((str(key), child) for key, child in item.items()), key=lambda pair: _sort_key(pair[0]))
            tokens: list[tuple[bool, Any]] = [(True, "{")]
            for index, (key, child) in enumerate(pairs):
                prefix = "," if index else ""
                tokens.append((True, f"{prefix}{json.dumps(key, ensure_ascii=False)}:"))
                tokens.append((False, child))
            tokens.append((True, "}"))
            stack.extend(reversed(tokens))
        elif isinstance(item, (list, tuple)):
            tokens = [(True, "[")]
            for index, child in enumerate(item):
                if index:
                    tokens.append((True, ","))
                tokens.append((False, child))
            tokens.append((True, "]"))
            stack.extend(reversed(tokens))
        else:
            parts.append(_encode_scalar(item))
    return "".join(parts)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", "surrogatepass")).hexdigest()


def content_hash(title: str, payload: Any) -> str:
    """SHA-256 (lowercase hex) of the canonical form of {title, payload}."""
    return sha256_hex(canonical_json({"title": title, "payload": payload}))
