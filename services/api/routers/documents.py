# services/api/routers/documents.py
from __future__ import annotations

from fastapi import APIRouter, status

from core.deps import CurrentOwner, Store
from core.errors import NotFoundError
from schemas.inventory import DocumentOut, DocumentUpdate

router = APIRouter(prefix="/documentos", tags=["documentos"])


@router.get("/{document_id}", response_model=DocumentOut)
async def get_document(document_id: str, store: Store, owner: CurrentOwner):
    """Administrative document by id (owner-scoped)."""
    document = await store.get_document(owner.id, document_id)
    if not document:
        raise NotFoundError("documento", document_id)
    return document


@router.patch("/{document_id}", response_model=DocumentOut)
async def update_document(document_id: str, payload: DocumentUpdate, store: Store, owner: CurrentOwner):
    """
    Partial update. Sending numero_caixas rewrites the legacy box list
    that the CSV export resolves destinations from.
    """
    return await store.update_document(owner.id, document_id, payload.model_dump(exclude_unset=True))


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: str, store: Store, owner: CurrentOwner):
    await store.delete_document(owner.id, document_id)
