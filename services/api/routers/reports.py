from __future__ import annotations

from fastapi import APIRouter, Body, Query
from fastapi.responses import Response
from typing import Annotated, Optional
from datetime import datetime, timezone
import logging

from core.deps import AppSettings, CurrentOwner, Store
from core.report_data import collect_listing, get_boxes_data, get_overview_data, get_proc_doc_data
from core.report_pdf import ReportHeader, render_listing_pdf, render_overview_pdf
from core.validation import (
    ReportKind,
    normalize_numero,
    normalize_tipo,
    parse_report_kind,
    validate_pagination,
)
from schemas.report import OverviewReport, PdfReportRequest, ReportData

# Set up logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/data", response_model=ReportData)
async def report_data(
    store: Store,
    owner: CurrentOwner,
    settings: AppSettings,
    kind: Optional[str] = Query(None, description="overview | listing | by-type"),
    tipo: Optional[str] = Query(None, description="Type filter, 'todos' for all"),
    numero: Optional[str] = Query(None, description="Box-number prefix"),
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None, alias="pageSize"),
):
    """
    Data behind the report screens.

    - overview: global counters (filters and paging are ignored)
    - listing: one page of boxes
    - by-type: one page of the process/document union
    """
    report_kind = parse_report_kind(kind)

    if report_kind is ReportKind.OVERVIEW:
        return OverviewReport(metrics=await get_overview_data(store, owner))

    box_type = normalize_tipo(tipo)
    prefix = normalize_numero(numero)
    page, page_size = validate_pagination(page, page_size, settings.report_page_size)

    if report_kind is ReportKind.LISTING:
        return await get_boxes_data(
            store, owner, tipo=box_type, numero=prefix, page=page, page_size=page_size
        )
    return await get_proc_doc_data(
        store, owner, tipo=box_type, numero=prefix, page=page, page_size=page_size
    )


@router.post("/pdf")
async def report_pdf(
    store: Store,
    owner: CurrentOwner,
    settings: AppSettings,
    body: Annotated[PdfReportRequest, Body(...)],
):
    """
    Render a report as a PDF attachment.

    Listings include every matching row up to `max_rows_per_pdf`; when the
    cap cuts the list the PDF says so.
    """
    report_kind = parse_report_kind(body.kind)
    header = ReportHeader(
        titulo=settings.report_title,
        gerado_em=datetime.now(timezone.utc),
        usuario=owner.email,
        logo_path=settings.report_logo_path,
        timezone_name=settings.report_timezone,
    )

    if report_kind is ReportKind.OVERVIEW:
        metrics = await get_overview_data(store, owner)
        pdf_bytes = render_overview_pdf(metrics, header)
    else:
        listing = await collect_listing(
            store,
            owner,
            kind=report_kind,
            tipo=normalize_tipo(body.filters.tipo),
            numero=normalize_numero(body.filters.numero),
            page_size=settings.csv_page_size,
            max_rows=settings.max_rows_per_pdf,
            max_iterations=settings.max_page_iterations,
        )
        pdf_bytes = render_listing_pdf(listing, header)

    filename = f"relatorio-{report_kind.value}-{header.gerado_em:%Y%m%d-%H%M%S}.pdf"
    logger.info(f"PDF report {report_kind.value} for {owner.id}: {len(pdf_bytes)} bytes")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )
