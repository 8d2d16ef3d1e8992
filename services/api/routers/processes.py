# services/api/routers/processes.py
from fastapi import APIRouter, status

from core.deps import CurrentOwner, Store
from core.errors import NotFoundError
from schemas.inventory import ProcessOut, ProcessUpdate

router = APIRouter(prefix="/processos", tags=["processos"])


@router.get("/{process_id}", response_model=ProcessOut)
async def get_process(process_id: str, store: Store, owner: CurrentOwner):
    process = await store.get_process(owner.id, process_id)
    if not process:
        raise NotFoundError("processo", process_id)
    return process


@router.patch("/{process_id}", response_model=ProcessOut)
async def update_process(process_id: str, payload: ProcessUpdate, store: Store, owner: CurrentOwner):
    return await store.update_process(owner.id, process_id, payload.model_dump(exclude_unset=True))


@router.delete("/{process_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_process(process_id: str, store: Store, owner: CurrentOwner):
    await store.delete_process(owner.id, process_id)
