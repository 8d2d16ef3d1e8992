# services/api/models/inventory.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class BoxType(str, Enum):
    PROCESSO_JUDICIAL = "processo_judicial"
    PROCESSO_ADMINISTRATIVO = "processo_administrativo"
    DOCUMENTO_ADMINISTRATIVO = "documento_administrativo"

    @property
    def label(self) -> str:
        return BOX_TYPE_LABELS[self]

    @property
    def holds_processes(self) -> bool:
        return self is not BoxType.DOCUMENTO_ADMINISTRATIVO


BOX_TYPE_LABELS = {
    BoxType.PROCESSO_JUDICIAL: "Processo Judicial",
    BoxType.PROCESSO_ADMINISTRATIVO: "Processo Administrativo",
    BoxType.DOCUMENTO_ADMINISTRATIVO: "Documento Administrativo",
}


class Destination(str, Enum):
    PRESERVAR = "preservar"
    ELIMINAR = "eliminar"


class ProcessCategory(str, Enum):
    JUDICIAL = "judicial"
    ADMINISTRATIVO = "administrativo"


def process_category_for(box_type: BoxType) -> ProcessCategory:
    """A process inherits its category from the box it is stored in."""
    if box_type is BoxType.PROCESSO_JUDICIAL:
        return ProcessCategory.JUDICIAL
    if box_type is BoxType.PROCESSO_ADMINISTRATIVO:
        return ProcessCategory.ADMINISTRATIVO
    raise ValueError(f"box type {box_type.value} does not hold processes")


# Largest value a signed 64-bit INTEGER column holds
MAX_BOX_KEY = 2**63 - 1


def numeric_box_key(numero: Optional[str]) -> Optional[int]:
    """
    Integer shadow of a free-text box number, used only for ordering.

    "0042" -> 42, " 7 " -> 7, "CX-12" -> None, "" -> None.
    Values that do not fit a signed 64-bit column also map to None and
    sort as text.
    """
    if numero is None:
        return None
    s = str(numero).strip()
    if not s or not (s.isascii() and s.isdigit()):
        return None
    value = int(s)
    if value > MAX_BOX_KEY:
        return None
    return value


def humanize_tipo(value: Optional[str]) -> str:
    """Display label for a box type; unknown values are title-cased."""
    if not value:
        return "Todos"
    try:
        return BoxType(value).label
    except ValueError:
        return " ".join(p[:1].upper() + p[1:].lower() for p in value.split("_"))
