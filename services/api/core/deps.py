# services/api/core/deps.py
"""FastAPI dependencies shared by all routers."""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from adapters.base import InventoryStore
from core.auth import Owner, decode_owner
from core.errors import AuthenticationError
from settings import Settings, get_settings

# auto_error=False: a missing header goes through our own 401, not FastAPI's 403
_bearer = HTTPBearer(auto_error=False)

_store: Optional[InventoryStore] = None


def set_store(store: Optional[InventoryStore]) -> None:
    global _store
    _store = store


def get_store() -> InventoryStore:
    if _store is None:
        raise RuntimeError("Storage adapter not initialized")
    return _store


def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> Owner:
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()
    return decode_owner(credentials.credentials)


Store = Annotated[InventoryStore, Depends(get_store)]
CurrentOwner = Annotated[Owner, Depends(get_current_owner)]
AppSettings = Annotated[Settings, Depends(get_settings)]
