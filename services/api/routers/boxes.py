# services/api/routers/boxes.py
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Query, status

from adapters.base import SOURCE_DOCUMENTS, SOURCE_PROCESSES, RowQuery
from core.deps import AppSettings, CurrentOwner, Store
from core.errors import NotFoundError
from core.report_data import get_boxes_data
from core.validation import normalize_numero, normalize_tipo, validate_pagination
from schemas.inventory import (
    BoxCreate,
    BoxOut,
    BoxUpdate,
    DocumentCreate,
    DocumentOut,
    ProcessCreate,
    ProcessOut,
)
from schemas.report import BoxListing

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/caixas", tags=["caixas"])


async def _require_box(store, owner_id: str, box_id: str) -> dict:
    box = await store.get_box(owner_id, box_id)
    if not box:
        raise NotFoundError("caixa", box_id)
    return box


@router.get("", response_model=BoxListing)
async def list_boxes(
    store: Store,
    owner: CurrentOwner,
    settings: AppSettings,
    tipo: Optional[str] = Query(None),
    numero: Optional[str] = Query(None, description="Box-number prefix"),
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None, alias="pageSize"),
):
    """Paged box list, same ordering as the box report."""
    page, page_size = validate_pagination(page, page_size, settings.report_page_size)
    return await get_boxes_data(
        store,
        owner,
        tipo=normalize_tipo(tipo),
        numero=normalize_numero(numero),
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=BoxOut, status_code=status.HTTP_201_CREATED)
async def create_box(payload: BoxCreate, store: Store, owner: CurrentOwner):
    box = await store.create_box(owner.id, payload.model_dump(mode="json"))
    logger.info(f"Box {box['numero_caixa']} ({box['tipo']}) created by {owner.id}")
    return box


@router.get("/{box_id}", response_model=BoxOut)
async def get_box(box_id: str, store: Store, owner: CurrentOwner):
    return await _require_box(store, owner.id, box_id)


@router.patch("/{box_id}", response_model=BoxOut)
async def update_box(box_id: str, payload: BoxUpdate, store: Store, owner: CurrentOwner):
    """Only the fields present in the body are written."""
    updates = payload.model_dump(mode="json", exclude_unset=True)
    return await store.update_box(owner.id, box_id, updates)


@router.delete("/{box_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_box(box_id: str, store: Store, owner: CurrentOwner):
    """409 while processes or documents still point at the box."""
    await store.delete_box(owner.id, box_id)
    logger.info(f"Box {box_id} deleted by {owner.id}")


# ---------- contents ----------

@router.get("/{box_id}/processos", response_model=List[ProcessOut])
async def list_box_processes(box_id: str, store: Store, owner: CurrentOwner):
    await _require_box(store, owner.id, box_id)
    page = await store.fetch_rows(
        RowQuery(
            source=SOURCE_PROCESSES,
            owner_id=owner.id,
            equals={"caixa_id": box_id},
            order_by=("created_at", "id"),
        )
    )
    return page.rows


@router.post("/{box_id}/processos", response_model=ProcessOut, status_code=status.HTTP_201_CREATED)
async def create_box_process(box_id: str, payload: ProcessCreate, store: Store, owner: CurrentOwner):
    """The category (judicial/administrativo) follows the box type."""
    return await store.create_process(owner.id, box_id, payload.model_dump(exclude_unset=True))


@router.get("/{box_id}/documentos", response_model=List[DocumentOut])
async def list_box_documents(box_id: str, store: Store, owner: CurrentOwner):
    await _require_box(store, owner.id, box_id)
    page = await store.fetch_rows(
        RowQuery(
            source=SOURCE_DOCUMENTS,
            owner_id=owner.id,
            equals={"caixa_id": box_id},
            order_by=("created_at", "id"),
        )
    )
    return page.rows


@router.post("/{box_id}/documentos", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def create_box_document(box_id: str, payload: DocumentCreate, store: Store, owner: CurrentOwner):
    return await store.create_document(owner.id, box_id, payload.model_dump(exclude_unset=True))
