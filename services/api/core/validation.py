"""
Validation utilities for the inventory API.
Normalizes the loose selectors the UI sends and rejects anything unknown
before a single backend call is made.
"""
from enum import Enum
from typing import Optional, Tuple

from core.errors import ValidationError
from models import BoxType


class ReportKind(str, Enum):
    OVERVIEW = "overview"
    LISTING = "listing"
    BY_TYPE = "by-type"


_REPORT_KIND_ALIASES = {
    "overview": ReportKind.OVERVIEW,
    "geral": ReportKind.OVERVIEW,
    "listing": ReportKind.LISTING,
    "listagem": ReportKind.LISTING,
    "by-type": ReportKind.BY_TYPE,
    "by_type": ReportKind.BY_TYPE,
    "por-tipo": ReportKind.BY_TYPE,
}

# Everything the screens have ever sent for "no type filter"
_ALL_TYPES = {"", "todos", "all"}

_TIPO_ALIASES = {
    "processo_judicial": BoxType.PROCESSO_JUDICIAL,
    "judicial": BoxType.PROCESSO_JUDICIAL,
    "proc_jud": BoxType.PROCESSO_JUDICIAL,
    "processo_administrativo": BoxType.PROCESSO_ADMINISTRATIVO,
    "adm": BoxType.PROCESSO_ADMINISTRATIVO,
    "proc_adm": BoxType.PROCESSO_ADMINISTRATIVO,
    "adm_proc": BoxType.PROCESSO_ADMINISTRATIVO,
    "documento_administrativo": BoxType.DOCUMENTO_ADMINISTRATIVO,
    "docs": BoxType.DOCUMENTO_ADMINISTRATIVO,
    "adm_doc": BoxType.DOCUMENTO_ADMINISTRATIVO,
    "documentos": BoxType.DOCUMENTO_ADMINISTRATIVO,
}


def normalize_tipo(value: Optional[str]) -> Optional[BoxType]:
    """
    Map a type filter to a BoxType.

    Returns:
        None for "all types" (empty, "todos", "all").

    Raises:
        ValidationError: unknown value
    """
    v = (value or "").strip().lower()
    if v in _ALL_TYPES:
        return None
    try:
        return _TIPO_ALIASES[v]
    except KeyError:
        raise ValidationError(
            f"Tipo inválido: {value!r}",
            details={"allowed": sorted(set(_TIPO_ALIASES) | {"todos"})},
        )


def parse_report_kind(value: Optional[str], default: ReportKind = ReportKind.LISTING) -> ReportKind:
    """Accepts the API names (overview/listing/by-type) and the legacy ones (geral/listagem/por-tipo)."""
    v = (value or "").strip().lower()
    if not v:
        return default
    try:
        return _REPORT_KIND_ALIASES[v]
    except KeyError:
        raise ValidationError(
            f"kind inválido: {value!r}",
            details={"allowed": [k.value for k in ReportKind]},
        )


def normalize_numero(value: Optional[str]) -> Optional[str]:
    """Box-number prefix filter; blank means no filter."""
    v = (value or "").strip()
    return v or None


def validate_pagination(page: Optional[int], page_size: Optional[int], default_size: int) -> Tuple[int, int]:
    """
    Validate 1-based page and positive page size.

    Rules:
    - page defaults to 1 and must be >= 1
    - page_size defaults to `default_size` and must be >= 1

    Raises:
        ValidationError: if either value is out of range
    """
    page = 1 if page is None else page
    page_size = default_size if page_size is None else page_size

    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ValidationError(f"pageSize must be >= 1, got {page_size}")
    return page, page_size
