# services/api/core/pagination.py
"""
Offset pagination over an InventoryStore.

Two ways to read:
  - iter_pages(): drain a query page by page (CSV export, PDF reports).
    Pages come out strictly in offset order; nothing is buffered beyond
    the current page.
  - fetch_page(): one 1-based page plus the exact total (report screens).
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Tuple

from adapters.base import InventoryStore, RowQuery
from core.errors import UpstreamQueryError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100_000

# Free-text box numbers: integer shadow first, text second, id breaks ties.
BOX_NUMBER_ORDER: Tuple[str, ...] = ("numero_caixa_num", "numero_caixa", "id")


def box_number_order(category_column: str | None = None) -> Tuple[str, ...]:
    """Stable sort for listings; group by category first when listing all types."""
    if category_column:
        return (category_column,) + BOX_NUMBER_ORDER
    return BOX_NUMBER_ORDER


@dataclass
class PageResult:
    rows: List[Dict[str, Any]]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size)


async def iter_pages(
    store: InventoryStore,
    query: RowQuery,
    *,
    page_size: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> AsyncIterator[List[Dict[str, Any]]]:
    """
    Yield successive non-empty pages of `query` until a short or empty page.

    A table with exactly k * page_size rows costs k + 1 requests; the last
    one comes back empty.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    offset = 0
    for _ in range(max_iterations):
        page = await store.fetch_rows(query, offset=offset, limit=page_size)
        rows = page.rows
        if not rows:
            return
        yield rows
        if len(rows) < page_size:
            return
        offset += page_size

    logger.error(
        f"Pagination over {query.source} did not end after {max_iterations} pages "
        f"of {page_size}; aborting"
    )
    raise UpstreamQueryError(
        f"Paginação não terminou após {max_iterations} páginas",
        operation=f"iter_pages:{query.source}",
    )


async def fetch_page(
    store: InventoryStore,
    query: RowQuery,
    *,
    page: int,
    page_size: int,
) -> PageResult:
    """Single page (1-based) with the exact count for the whole filter."""
    if page < 1 or page_size < 1:
        raise ValidationError(f"invalid page/pageSize: {page}/{page_size}")

    offset = (page - 1) * page_size
    result = await store.fetch_rows(query, offset=offset, limit=page_size, with_count=True)
    total = result.total if result.total is not None else len(result.rows)
    return PageResult(rows=result.rows, total=total, page=page, page_size=page_size)


async def collect_rows(
    store: InventoryStore,
    query: RowQuery,
    *,
    page_size: int,
    max_rows: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[List[Dict[str, Any]], bool]:
    """
    Drain `query` into memory, stopping at `max_rows`.

    Returns:
        (rows, truncated)
    """
    rows: List[Dict[str, Any]] = []
    pages = iter_pages(store, query, page_size=page_size, max_iterations=max_iterations)
    try:
        async for batch in pages:
            room = max_rows - len(rows)
            if len(batch) > room:
                rows.extend(batch[:room])
                return rows, True
            rows.extend(batch)
            if len(rows) == max_rows:
                # Only truncated if something is left behind
                async for more in pages:
                    return rows, bool(more)
                return rows, False
    finally:
        await pages.aclose()
    return rows, False
