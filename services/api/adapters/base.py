"""
Storage adapter interface for the inventory API.
Defines the contract that all storage backends must implement.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple


# ========== Row sources ==========
# Logical tables/views a RowQuery can read from. Every source exposes a
# `user_id` column and every read is scoped to one owner.

SOURCE_BOXES = "caixas"
# processos inner-joined to their box: adds numero_caixa, numero_caixa_num,
# caixa_tipo, caixa_destinacao
SOURCE_PROCESSES = "processos"
# documentos_adm left-joined to their box: adds caixa_numero, caixa_destinacao
SOURCE_DOCUMENTS = "documentos_adm"
# processos UNION ALL documentos_adm, discriminated by tipo_item
SOURCE_PROC_DOC = "proc_doc"


@dataclass(frozen=True)
class RowQuery:
    """
    Backend-neutral description of a filtered, sorted read.

    equals:   column -> value, AND-ed equality predicates
    prefix:   (column, text) case-insensitive "starts with" predicate
    order_by: columns, ascending, NULLs last
    """
    source: str
    owner_id: str
    equals: Mapping[str, Any] = field(default_factory=dict)
    prefix: Optional[Tuple[str, str]] = None
    order_by: Tuple[str, ...] = ()

    def with_equals(self, **extra: Any) -> "RowQuery":
        merged = dict(self.equals)
        merged.update(extra)
        return RowQuery(
            source=self.source,
            owner_id=self.owner_id,
            equals=merged,
            prefix=self.prefix,
            order_by=self.order_by,
        )


@dataclass
class RowPage:
    rows: List[Dict[str, Any]]
    # Exact row count for the whole filter; only set when requested
    total: Optional[int] = None


class InventoryStore(Protocol):
    """
    Protocol defining the interface for all storage adapters.

    Read failures surface as core.errors.UpstreamQueryError; callers never
    see driver exceptions.
    """

    # ========== Reads (export / report pipeline) ==========

    async def fetch_rows(
        self,
        query: RowQuery,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
        with_count: bool = False,
    ) -> RowPage:
        """
        Return rows [offset, offset + limit) of `query`.

        With with_count=True the exact total for the filter is returned
        alongside the page. Both reads run in one transaction; whether they
        see a single snapshot depends on the backend's isolation level.
        """
        ...

    async def count_rows(self, query: RowQuery) -> int:
        """Count-only read; no rows are transferred."""
        ...

    async def lookup_destinations(
        self,
        owner_id: str,
        numeros: Sequence[str],
    ) -> List[Dict[str, Any]]:
        """
        Fetch `numero_caixa, destinacao` for boxes whose number is in `numeros`.
        One backend query per call; the caller is responsible for chunking.
        """
        ...

    # ========== Boxes ==========

    async def create_box(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def get_box(self, owner_id: str, box_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update_box(
        self, owner_id: str, box_id: str, updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Overwrite only the provided keys.

        Raises:
            NotFoundError if the box does not exist for this owner.
            ConflictError when `tipo` changes while processes/documents
            still reference the box.
        """
        ...

    async def delete_box(self, owner_id: str, box_id: str) -> None:
        """No cascade: ConflictError while children exist."""
        ...

    # ========== Processes ==========

    async def create_process(
        self, owner_id: str, box_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        ...

    async def get_process(self, owner_id: str, process_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update_process(
        self, owner_id: str, process_id: str, updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        ...

    async def delete_process(self, owner_id: str, process_id: str) -> None:
        ...

    # ========== Administrative documents ==========

    async def create_document(
        self, owner_id: str, box_id: str, data: Dict[str, Any]
    ) -> Dict[str, Any]:
        ...

    async def get_document(self, owner_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update_document(
        self, owner_id: str, document_id: str, updates: Dict[str, Any]
    ) -> Dict[str, Any]:
        ...

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        ...
