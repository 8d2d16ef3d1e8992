# services/api/routers/export.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse, StreamingResponse

from core.csv_export import ExportKind, stream_csv
from core.deps import AppSettings, CurrentOwner, Store
from core.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/csv")
async def export_csv(
    store: Store,
    owner: CurrentOwner,
    settings: AppSettings,
    tipo: Optional[str] = Query(None, description="documentos_adm | processos_jud | processos_adm"),
):
    """
    Stream one of the three fixed CSV exports.

    - 400 (text/plain) for an unknown `tipo`, before any query runs.
    - 502 when the very first page cannot be read.
    - Failures after the first page end the body with a "# ERRO: ..." line;
      the status is already 200 by then.
    """
    try:
        kind = ExportKind.parse(tipo)
    except ValidationError as e:
        return PlainTextResponse(e.message, status_code=400)

    logger.info(f"CSV export {kind.value} requested by {owner.id}")
    body = await stream_csv(
        store,
        kind,
        owner.id,
        page_size=settings.csv_page_size,
        chunk_size=settings.destination_chunk_size,
        max_iterations=settings.max_page_iterations,
    )
    return StreamingResponse(
        body,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{kind.filename}"',
            "Cache-Control": "no-store",
        },
    )
