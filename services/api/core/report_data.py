# services/api/core/report_data.py
"""
Data for the report screens and the PDF reports.

Every function is a pure read of (filters, page, owner) -> rows + counts.
Nothing is cached between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from adapters.base import (
    SOURCE_BOXES,
    SOURCE_DOCUMENTS,
    SOURCE_PROC_DOC,
    SOURCE_PROCESSES,
    InventoryStore,
    RowQuery,
)
from core.auth import Owner
from core.pagination import DEFAULT_MAX_ITERATIONS, box_number_order, collect_rows, fetch_page
from core.validation import ReportKind
from models import BoxType, Destination, ProcessCategory
from schemas.report import (
    BoxListing,
    OverviewMetrics,
    ProcDocListing,
    ReportFilters,
    TypeBreakdown,
)

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _filters(tipo: Optional[BoxType], numero: Optional[str]) -> ReportFilters:
    return ReportFilters(tipo=tipo.value if tipo else "todos", numero=numero or "")


def boxes_query(owner_id: str, tipo: Optional[BoxType], numero: Optional[str]) -> RowQuery:
    return RowQuery(
        source=SOURCE_BOXES,
        owner_id=owner_id,
        equals={"tipo": tipo.value} if tipo else {},
        prefix=("numero_caixa", numero) if numero else None,
        order_by=box_number_order(None if tipo else "tipo"),
    )


def proc_doc_query(owner_id: str, tipo: Optional[BoxType], numero: Optional[str]) -> RowQuery:
    return RowQuery(
        source=SOURCE_PROC_DOC,
        owner_id=owner_id,
        equals={"tipo_item": tipo.value} if tipo else {},
        prefix=("numero_caixa", numero) if numero else None,
        order_by=box_number_order(None if tipo else "tipo_item"),
    )


async def type_breakdown(store: InventoryStore, query: RowQuery, category_column: str) -> TypeBreakdown:
    """
    Exact per-type totals for `query` (one single-row page per type, count only).
    The visible page is a small slice, so counting its rows would lie.
    """
    counts: Dict[str, int] = {}
    for box_type in BoxType:
        page = await store.fetch_rows(
            query.with_equals(**{category_column: box_type.value}),
            offset=0,
            limit=1,
            with_count=True,
        )
        counts[box_type.value] = page.total or 0
    return TypeBreakdown(**counts)


# ---------- overview -------------------------------------------------------

async def get_overview_data(store: InventoryStore, owner: Owner) -> OverviewMetrics:
    def q(source: str, **equals: Any) -> RowQuery:
        return RowQuery(source=source, owner_id=owner.id, equals=equals)

    count = store.count_rows
    return OverviewMetrics(
        total_caixas=await count(q(SOURCE_BOXES)),
        dest_preservar=await count(q(SOURCE_BOXES, destinacao=Destination.PRESERVAR.value)),
        dest_eliminar=await count(q(SOURCE_BOXES, destinacao=Destination.ELIMINAR.value)),
        p_tot=await count(q(SOURCE_PROCESSES)),
        p_jud=await count(q(SOURCE_PROCESSES, tipo_processo=ProcessCategory.JUDICIAL.value)),
        p_adm=await count(q(SOURCE_PROCESSES, tipo_processo=ProcessCategory.ADMINISTRATIVO.value)),
        docs_adm=await count(q(SOURCE_DOCUMENTS)),
        cx_jud=await count(q(SOURCE_BOXES, tipo=BoxType.PROCESSO_JUDICIAL.value)),
        cx_adm=await count(q(SOURCE_BOXES, tipo=BoxType.PROCESSO_ADMINISTRATIVO.value)),
        cx_doc=await count(q(SOURCE_BOXES, tipo=BoxType.DOCUMENTO_ADMINISTRATIVO.value)),
        usuario=owner.email or "-",
        gerado_em=_now(),
    )


# ---------- paginated listings ----------------------------------------------

async def get_boxes_data(
    store: InventoryStore,
    owner: Owner,
    *,
    tipo: Optional[BoxType],
    numero: Optional[str],
    page: int,
    page_size: int,
) -> BoxListing:
    query = boxes_query(owner.id, tipo, numero)
    result = await fetch_page(store, query, page=page, page_size=page_size)
    breakdown = await type_breakdown(store, query, "tipo") if tipo is None else None
    return BoxListing(
        rows=result.rows,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        filtros=_filters(tipo, numero),
        breakdown=breakdown,
    )


async def get_proc_doc_data(
    store: InventoryStore,
    owner: Owner,
    *,
    tipo: Optional[BoxType],
    numero: Optional[str],
    page: int,
    page_size: int,
) -> ProcDocListing:
    query = proc_doc_query(owner.id, tipo, numero)
    result = await fetch_page(store, query, page=page, page_size=page_size)
    breakdown = await type_breakdown(store, query, "tipo_item") if tipo is None else None
    return ProcDocListing(
        rows=result.rows,
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        filtros=_filters(tipo, numero),
        breakdown=breakdown,
    )


# ---------- full listings (PDF) ---------------------------------------------

@dataclass
class FullListing:
    """Everything a PDF listing needs; rendering does no further reads."""
    kind: ReportKind
    rows: List[Dict[str, Any]]
    total: int
    filtros: ReportFilters
    breakdown: Optional[TypeBreakdown] = None
    truncated: bool = False


async def collect_listing(
    store: InventoryStore,
    owner: Owner,
    *,
    kind: ReportKind,
    tipo: Optional[BoxType],
    numero: Optional[str],
    page_size: int,
    max_rows: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> FullListing:
    if kind is ReportKind.BY_TYPE:
        query, category_column = proc_doc_query(owner.id, tipo, numero), "tipo_item"
    else:
        query, category_column = boxes_query(owner.id, tipo, numero), "tipo"

    total = await store.count_rows(query)
    breakdown = await type_breakdown(store, query, category_column) if tipo is None else None
    rows, truncated = await collect_rows(
        store, query, page_size=page_size, max_rows=max_rows, max_iterations=max_iterations
    )
    if truncated:
        logger.warning(
            f"Trimming {kind.value} report for {owner.id}: {total} rows → {max_rows} (max_rows_per_pdf)"
        )
    return FullListing(
        kind=kind,
        rows=rows,
        total=total,
        filtros=_filters(tipo, numero),
        breakdown=breakdown,
        truncated=truncated,
    )
