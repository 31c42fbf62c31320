"""Helpers for deterministic ordering and serialisation."""

from __future__ import annotations

import hashlib
import json
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


def stable_sorted(items: Iterable[T], key: Callable[[T], object], *, reverse: bool = False) -> list[T]:
    # sorted() is stable for reverse=True as well: equal keys keep input order.
    return sorted(items, key=key, reverse=reverse)


def fingerprint(payload: Any) -> str:
    encoded = json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
