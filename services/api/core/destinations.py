# services/api/core/destinations.py
"""
Box number -> destination ("preservar" / "eliminar") lookups.

The map is rebuilt for every page of every request; there is no cache
shared between requests.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, TypeVar

from adapters.base import InventoryStore

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 800

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


def normalize_box_numbers(numeros: Iterable[Optional[str]]) -> List[str]:
    """Trim, drop blanks, dedupe (first occurrence wins the position)."""
    cleaned = (str(n).strip() for n in numeros if n is not None)
    return list(dict.fromkeys(n for n in cleaned if n))


def split_box_numbers(value: Optional[str]) -> List[str]:
    """'CX1, CX2,,CX2 ' -> ['CX1', 'CX2', 'CX2'] (duplicates kept)."""
    return [s.strip() for s in str(value or "").split(",") if s.strip()]


def join_destinations(numeros: Iterable[str], dest_map: Mapping[str, str]) -> str:
    """Distinct non-empty destinations of `numeros`, in order, joined by '; '."""
    found = (dest_map.get(n) for n in numeros)
    return "; ".join(dict.fromkeys(d for d in found if d))


async def resolve_destinations(
    store: InventoryStore,
    owner_id: str,
    numeros: Iterable[Optional[str]],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Dict[str, str]:
    """
    Map each distinct box number to its destination, one query per chunk.

    Any failed chunk aborts the whole lookup (UpstreamQueryError propagates);
    a partial map is never returned. Missing destinations map to "".
    """
    uniques = normalize_box_numbers(numeros)
    if not uniques:
        return {}

    dest_map: Dict[str, str] = {}
    for i, part in enumerate(chunked(uniques, chunk_size)):
        rows = await store.lookup_destinations(owner_id, part)
        logger.debug(f"destination chunk {i}: {len(part)} numbers -> {len(rows)} boxes")
        for row in rows:
            numero = row.get("numero_caixa")
            if numero:
                dest_map[numero] = row.get("destinacao") or ""
    return dest_map
