# services/api/core/csv_export.py
"""
Streaming CSV export for the three fixed kinds.

Each page read from the store becomes one outcome:
    Ok(lines)       rows already formatted as CSV lines
    Fatal(message)  the first failure; nothing follows it

Only the transport (stream_csv) turns Fatal into text: once the response
has started the status is already 200, so the failure is written inline
as "# ERRO: <message>" and the stream ends.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import chain
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from adapters.base import SOURCE_DOCUMENTS, SOURCE_PROCESSES, InventoryStore, RowQuery
from core.destinations import (
    DEFAULT_CHUNK_SIZE,
    join_destinations,
    resolve_destinations,
    split_box_numbers,
)
from core.errors import UpstreamQueryError, ValidationError
from core.pagination import BOX_NUMBER_ORDER, DEFAULT_MAX_ITERATIONS, iter_pages
from models import BoxType

logger = logging.getLogger(__name__)

UTF8_BOM = b"\xef\xbb\xbf"
ERROR_MARKER = "# ERRO:"
DEFAULT_PAGE_SIZE = 1000


class ExportKind(str, Enum):
    DOCUMENTOS_ADM = "documentos_adm"
    PROCESSOS_JUD = "processos_jud"
    PROCESSOS_ADM = "processos_adm"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ExportKind":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise ValidationError("Parâmetro 'tipo' inválido.", details={"tipo": value})

    @property
    def filename(self) -> str:
        return f"{self.value}.csv"


_PROCESS_HEADER = (
    "Nº da Caixa,Tipo de Processo,Nº do Processo,Protocolo,Ano,"
    "Quantidade de Volumes,Nº de Caixas,Destinação,Observação"
)

HEADERS = {
    ExportKind.DOCUMENTOS_ADM: (
        "Espécie Documental,Data Limite,Quantidade de Caixas,"
        "Número das Caixas,Destinação,Observação"
    ),
    ExportKind.PROCESSOS_JUD: _PROCESS_HEADER,
    ExportKind.PROCESSOS_ADM: _PROCESS_HEADER,
}

_PROCESS_BOX_TYPE = {
    ExportKind.PROCESSOS_JUD: BoxType.PROCESSO_JUDICIAL,
    ExportKind.PROCESSOS_ADM: BoxType.PROCESSO_ADMINISTRATIVO,
}


def quote(value: Any) -> str:
    """Always-quoted CSV field; inner quotes doubled. None -> ""."""
    s = "" if value is None else str(value)
    return '"' + s.replace('"', '""') + '"'


def format_row(values: Iterable[Any]) -> str:
    return ",".join(quote(v) for v in values) + "\n"


@dataclass(frozen=True)
class Ok:
    lines: List[str]


@dataclass(frozen=True)
class Fatal:
    message: str


PageOutcome = Union[Ok, Fatal]


# ---------- per-kind page formatting ----------------------------------------

async def _document_lines(
    store: InventoryStore,
    owner_id: str,
    rows: List[Dict[str, Any]],
    chunk_size: int,
) -> List[str]:
    # Legacy rows list their boxes as free text; newer rows only link one box.
    raw_numbers = [r.get("numero_caixas") or r.get("caixa_numero") or "" for r in rows]
    per_row = [split_box_numbers(raw) for raw in raw_numbers]
    dest_map = await resolve_destinations(
        store, owner_id, chain.from_iterable(per_row), chunk_size=chunk_size
    )

    lines = []
    for row, raw, numeros in zip(rows, raw_numbers, per_row):
        lines.append(
            format_row([
                row.get("especie_documental"),
                row.get("data_limite"),
                row.get("quantidade_caixas"),
                raw,
                join_destinations(numeros, dest_map),
                row.get("observacao"),
            ])
        )
    return lines


async def _process_lines(
    store: InventoryStore,
    owner_id: str,
    rows: List[Dict[str, Any]],
    chunk_size: int,
) -> List[str]:
    # The joined box wins; the lookup only fills rows whose box has no destination.
    missing = [
        r.get("numero_caixa")
        for r in rows
        if not r.get("caixa_destinacao") and r.get("numero_caixa")
    ]
    dest_map = await resolve_destinations(store, owner_id, missing, chunk_size=chunk_size)

    lines = []
    for row in rows:
        numero = row.get("numero_caixa") or ""
        destinacao = row.get("caixa_destinacao") or dest_map.get(numero.strip(), "")
        lines.append(
            format_row([
                numero,
                row.get("classe_processual"),
                row.get("numero_processo"),
                row.get("protocolo"),
                row.get("ano"),
                row.get("quantidade_volumes"),
                row.get("numero_caixas"),
                destinacao,
                row.get("observacao"),
            ])
        )
    return lines


def export_query(kind: ExportKind, owner_id: str) -> RowQuery:
    if kind is ExportKind.DOCUMENTOS_ADM:
        return RowQuery(source=SOURCE_DOCUMENTS, owner_id=owner_id, order_by=("created_at", "id"))
    return RowQuery(
        source=SOURCE_PROCESSES,
        owner_id=owner_id,
        equals={"caixa_tipo": _PROCESS_BOX_TYPE[kind].value},
        order_by=BOX_NUMBER_ORDER,
    )


async def export_pages(
    store: InventoryStore,
    kind: ExportKind,
    owner_id: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> AsyncIterator[PageOutcome]:
    """
    One Ok per page read, in offset order; stops after the first Fatal.
    Destinations are resolved per page, never for the whole table at once.
    """
    format_page = _document_lines if kind is ExportKind.DOCUMENTOS_ADM else _process_lines
    query = export_query(kind, owner_id)

    pages = iter_pages(store, query, page_size=page_size, max_iterations=max_iterations)
    n_rows = n_pages = 0
    try:
        async for rows in pages:
            lines = await format_page(store, owner_id, rows, chunk_size)
            n_rows += len(rows)
            n_pages += 1
            yield Ok(lines)
    except UpstreamQueryError as e:
        logger.error(f"CSV export {kind.value} failed after {n_pages} page(s): {e.message}")
        yield Fatal(e.message)
        return
    except Exception as e:
        logger.exception(f"Unexpected error in CSV export {kind.value}: {e}")
        yield Fatal(str(e) or e.__class__.__name__)
        return
    finally:
        await pages.aclose()

    logger.info(f"CSV export {kind.value} finished: {n_rows} rows in {n_pages} page(s)")


async def _next_outcome(pages: AsyncIterator[PageOutcome]) -> Optional[PageOutcome]:
    try:
        return await pages.__anext__()
    except StopAsyncIteration:
        return None


async def _encode(
    kind: ExportKind,
    first: Optional[PageOutcome],
    pages: AsyncIterator[PageOutcome],
) -> AsyncIterator[bytes]:
    try:
        yield UTF8_BOM + (HEADERS[kind] + "\n").encode("utf-8")
        outcome = first
        while outcome is not None:
            if isinstance(outcome, Fatal):
                yield f"{ERROR_MARKER} {outcome.message}\n".encode("utf-8")
                return
            if outcome.lines:
                yield "".join(outcome.lines).encode("utf-8")
            outcome = await _next_outcome(pages)
    finally:
        await pages.aclose()


async def stream_csv(
    store: InventoryStore,
    kind: ExportKind,
    owner_id: str,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> AsyncIterator[bytes]:
    """
    Read the first page, then hand back the byte stream.

    A failure on the first page raises UpstreamQueryError here, while the
    caller can still answer with a proper error status. Later failures end
    the stream with the inline error marker.
    """
    pages = export_pages(
        store,
        kind,
        owner_id,
        page_size=page_size,
        chunk_size=chunk_size,
        max_iterations=max_iterations,
    )
    first = await _next_outcome(pages)
    if isinstance(first, Fatal):
        await pages.aclose()
        raise UpstreamQueryError(first.message, operation=f"csv_export:{kind.value}")
    return _encode(kind, first, pages)
