# services/api/adapters/sql/__init__.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    case,
    cast,
    delete,
    event,
    func,
    insert,
    literal,
    null,
    select,
    union_all,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from adapters.base import (
    SOURCE_BOXES,
    SOURCE_DOCUMENTS,
    SOURCE_PROC_DOC,
    SOURCE_PROCESSES,
    RowPage,
    RowQuery,
)
from core.errors import ConflictError, NotFoundError, UpstreamQueryError, ValidationError
from models import BoxType, numeric_box_key, process_category_for

logger = logging.getLogger(__name__)

# ---- Engine with pragmas -----------------------------------------------------

def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)

def make_engine(db_url: str, echo: bool = False) -> AsyncEngine:
    is_sqlite = db_url.startswith("sqlite")
    # Create data dir if sqlite file
    if is_sqlite and ":///" in db_url and ":memory:" not in db_url:
        _ensure_dir(db_url.split(":///", 1)[1])

    engine = create_async_engine(db_url, echo=echo, pool_pre_ping=not is_sqlite)

    if is_sqlite:
        # Apply pragmas per-connection
        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL;")
            cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

caixas = Table(
    "caixas",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False),
    # Free text on purpose: legacy numbers like "CX-12" or "0042" exist.
    Column("numero_caixa", String, nullable=False),
    # Integer shadow of numero_caixa, NULL when not purely numeric. Sort only.
    Column("numero_caixa_num", Integer, nullable=True),
    Column("tipo", String, nullable=False),
    Column("descricao", Text),
    Column("localizacao", String, nullable=False),
    Column("destinacao", String, nullable=True),
    Column("data_criacao", DateTime(timezone=True), nullable=False, default=_utcnow),
    Column("data_atualizacao", DateTime(timezone=True), nullable=False, default=_utcnow),
    CheckConstraint(
        "tipo IN ('processo_judicial', 'processo_administrativo', 'documento_administrativo')",
        name="ck_caixas_tipo",
    ),
    CheckConstraint(
        "destinacao IS NULL OR destinacao IN ('preservar', 'eliminar')",
        name="ck_caixas_destinacao",
    ),
)

processos = Table(
    "processos",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False),
    Column("caixa_id", String, ForeignKey("caixas.id"), nullable=False),
    Column("tipo_processo", String, nullable=False),
    Column("classe_processual", String),
    Column("numero_processo", String),
    Column("protocolo", String),
    Column("ano", Integer),
    Column("quantidade_volumes", Integer),
    Column("numero_caixas", Integer),
    Column("observacao", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    CheckConstraint("tipo_processo IN ('judicial', 'administrativo')", name="ck_processos_tipo"),
    CheckConstraint("quantidade_volumes IS NULL OR quantidade_volumes >= 1", name="ck_processos_volumes"),
    CheckConstraint("numero_caixas IS NULL OR numero_caixas >= 1", name="ck_processos_caixas"),
)

documentos_adm = Table(
    "documentos_adm",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False),
    Column("caixa_id", String, ForeignKey("caixas.id"), nullable=True),
    Column("especie_documental", String),
    Column("data_limite", String),
    Column("quantidade_caixas", Integer),
    # Legacy: comma-separated list of box numbers ("12, 13, 14")
    Column("numero_caixas", Text),
    # Integer shadow of numero_caixas when it holds a single numeric box. Sort only.
    Column("numero_caixas_num", Integer, nullable=True),
    Column("observacao", Text),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

Index("idx_caixas_user_tipo", caixas.c.user_id, caixas.c.tipo)
Index("idx_caixas_user_numero", caixas.c.user_id, caixas.c.numero_caixa)
Index("idx_processos_caixa", processos.c.caixa_id)
Index("idx_processos_user", processos.c.user_id)
Index("idx_documentos_caixa", documentos_adm.c.caixa_id)
Index("idx_documentos_user", documentos_adm.c.user_id)

# ---- Read sources ------------------------------------------------------------

def _build_sources() -> Dict[str, Any]:
    boxes = select(caixas).subquery("src_caixas")

    processes = (
        select(
            processos,
            caixas.c.numero_caixa,
            caixas.c.numero_caixa_num,
            caixas.c.tipo.label("caixa_tipo"),
            caixas.c.destinacao.label("caixa_destinacao"),
        )
        .select_from(processos.join(caixas, processos.c.caixa_id == caixas.c.id))
        .subquery("src_processos")
    )

    documents = (
        select(
            documentos_adm,
            caixas.c.numero_caixa.label("caixa_numero"),
            caixas.c.destinacao.label("caixa_destinacao"),
        )
        .select_from(documentos_adm.outerjoin(caixas, documentos_adm.c.caixa_id == caixas.c.id))
        .subquery("src_documentos")
    )

    proc_part = select(
        processos.c.id,
        processos.c.user_id,
        processos.c.caixa_id,
        caixas.c.numero_caixa,
        caixas.c.numero_caixa_num,
        caixas.c.tipo.label("tipo_item"),
        processos.c.classe_processual,
        cast(null(), String).label("especie_documental"),
        processos.c.numero_processo,
        processos.c.protocolo,
        cast(null(), String).label("data_limite"),
        processos.c.created_at,
    ).select_from(processos.join(caixas, processos.c.caixa_id == caixas.c.id))

    doc_part = select(
        documentos_adm.c.id,
        documentos_adm.c.user_id,
        documentos_adm.c.caixa_id,
        func.coalesce(caixas.c.numero_caixa, documentos_adm.c.numero_caixas).label("numero_caixa"),
        case(
            (caixas.c.id.is_(None), documentos_adm.c.numero_caixas_num),
            else_=caixas.c.numero_caixa_num,
        ).label("numero_caixa_num"),
        literal(BoxType.DOCUMENTO_ADMINISTRATIVO.value, String).label("tipo_item"),
        cast(null(), String).label("classe_processual"),
        documentos_adm.c.especie_documental,
        cast(null(), String).label("numero_processo"),
        cast(null(), String).label("protocolo"),
        documentos_adm.c.data_limite,
        documentos_adm.c.created_at,
    ).select_from(documentos_adm.outerjoin(caixas, documentos_adm.c.caixa_id == caixas.c.id))

    proc_doc = union_all(proc_part, doc_part).subquery("src_proc_doc")

    return {
        SOURCE_BOXES: boxes,
        SOURCE_PROCESSES: processes,
        SOURCE_DOCUMENTS: documents,
        SOURCE_PROC_DOC: proc_doc,
    }

_SOURCES = _build_sources()

_BOX_FIELDS = {"numero_caixa", "tipo", "descricao", "localizacao", "destinacao"}
_PROCESS_FIELDS = {
    "classe_processual",
    "numero_processo",
    "protocolo",
    "ano",
    "quantidade_volumes",
    "numero_caixas",
    "observacao",
}
_DOCUMENT_FIELDS = {
    "especie_documental",
    "data_limite",
    "quantidade_caixas",
    "numero_caixas",
    "observacao",
}

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqlInventoryStore:
    engine: AsyncEngine
    default_localizacao: str = "Guarabira"

    @classmethod
    def from_url(
        cls,
        db_url: str = "sqlite+aiosqlite:///data/judbox.db",
        *,
        echo: bool = False,
        default_localizacao: str = "Guarabira",
    ) -> "SqlInventoryStore":
        return cls(engine=make_engine(db_url, echo=echo), default_localizacao=default_localizacao)

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()

    async def ping(self) -> None:
        """Round-trip to the database; raises on failure."""
        async with self.engine.connect() as conn:
            await conn.execute(select(literal(1)))

    # ---------------- reads ----------------

    def _where(self, src, query: RowQuery) -> list:
        try:
            clauses = [src.c.user_id == query.owner_id]
            for col, value in query.equals.items():
                clauses.append(src.c[col] == value)
            if query.prefix:
                col, text = query.prefix
                clauses.append(src.c[col].istartswith(text, autoescape=True))
        except KeyError as e:
            raise ValueError(f"Unknown column {e} for source {query.source}") from e
        return clauses

    @staticmethod
    def _source(name: str):
        try:
            return _SOURCES[name]
        except KeyError:
            raise ValueError(f"Unknown row source: {name}")

    async def fetch_rows(
        self,
        query: RowQuery,
        *,
        offset: int = 0,
        limit: Optional[int] = None,
        with_count: bool = False,
    ) -> RowPage:
        src = self._source(query.source)
        where = self._where(src, query)

        stmt = select(src).where(*where)
        for col in query.order_by:
            stmt = stmt.order_by(src.c[col].asc().nulls_last())
        if limit is not None:
            stmt = stmt.offset(offset).limit(limit)

        try:
            async with self.engine.connect() as conn, conn.begin():
                rows = (await conn.execute(stmt)).mappings().all()
                total = None
                if with_count:
                    total = (
                        await conn.execute(select(func.count()).select_from(src).where(*where))
                    ).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"fetch_rows failed on {query.source} (offset={offset}, limit={limit}): {e}")
            raise UpstreamQueryError(str(e), operation=f"fetch:{query.source}") from e

        return RowPage(rows=[dict(r) for r in rows], total=total)

    async def count_rows(self, query: RowQuery) -> int:
        src = self._source(query.source)
        stmt = select(func.count()).select_from(src).where(*self._where(src, query))
        try:
            async with self.engine.connect() as conn:
                return int((await conn.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            logger.error(f"count_rows failed on {query.source}: {e}")
            raise UpstreamQueryError(str(e), operation=f"count:{query.source}") from e

    async def lookup_destinations(self, owner_id: str, numeros: Sequence[str]) -> List[Dict[str, Any]]:
        if not numeros:
            return []
        stmt = (
            select(caixas.c.numero_caixa, caixas.c.destinacao)
            .where(caixas.c.user_id == owner_id)
            .where(caixas.c.numero_caixa.in_(list(numeros)))
        )
        try:
            async with self.engine.connect() as conn:
                rows = (await conn.execute(stmt)).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"lookup_destinations failed for {len(numeros)} numbers: {e}")
            raise UpstreamQueryError(str(e), operation="lookup_destinations") from e
        return [dict(r) for r in rows]

    # ---------------- boxes ----------------

    async def _box_row(self, conn: AsyncConnection, owner_id: str, box_id: str) -> Optional[Dict[str, Any]]:
        row = (
            await conn.execute(
                select(caixas).where(caixas.c.id == box_id, caixas.c.user_id == owner_id)
            )
        ).mappings().first()
        return dict(row) if row else None

    async def _has_children(self, conn: AsyncConnection, box_id: str) -> bool:
        proc = (await conn.execute(select(processos.c.id).where(processos.c.caixa_id == box_id).limit(1))).first()
        if proc:
            return True
        doc = (await conn.execute(select(documentos_adm.c.id).where(documentos_adm.c.caixa_id == box_id).limit(1))).first()
        return doc is not None

    async def create_box(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        box_id = str(uuid4())
        numero = str(data["numero_caixa"]).strip()
        now = _utcnow()
        values = dict(
            id=box_id,
            user_id=owner_id,
            numero_caixa=numero,
            numero_caixa_num=numeric_box_key(numero),
            tipo=BoxType(data["tipo"]).value,
            descricao=data.get("descricao"),
            localizacao=(data.get("localizacao") or "").strip() or self.default_localizacao,
            destinacao=data.get("destinacao"),
            data_criacao=now,
            data_atualizacao=now,
        )
        try:
            async with self.engine.begin() as conn:
                await conn.execute(insert(caixas).values(**values))
                return await self._box_row(conn, owner_id, box_id)
        except SQLAlchemyError as e:
            logger.error(f"create_box failed: {e}")
            raise UpstreamQueryError(str(e), operation="create_box") from e

    async def get_box(self, owner_id: str, box_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.engine.connect() as conn:
                return await self._box_row(conn, owner_id, box_id)
        except SQLAlchemyError as e:
            raise UpstreamQueryError(str(e), operation="get_box") from e

    async def update_box(self, owner_id: str, box_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        allowed = {k: v for k, v in updates.items() if k in _BOX_FIELDS}
        try:
            async with self.engine.begin() as conn:
                current = await self._box_row(conn, owner_id, box_id)
                if not current:
                    raise NotFoundError("caixa", box_id)

                if "tipo" in allowed:
                    allowed["tipo"] = BoxType(allowed["tipo"]).value
                    if allowed["tipo"] != current["tipo"] and await self._has_children(conn, box_id):
                        raise ConflictError(
                            "O tipo da caixa não pode ser alterado enquanto houver processos ou documentos vinculados.",
                            details={"caixa_id": box_id, "tipo_atual": current["tipo"]},
                        )
                if "numero_caixa" in allowed:
                    allowed["numero_caixa"] = str(allowed["numero_caixa"]).strip()
                    allowed["numero_caixa_num"] = numeric_box_key(allowed["numero_caixa"])
                if "localizacao" in allowed:
                    allowed["localizacao"] = (allowed["localizacao"] or "").strip() or self.default_localizacao

                if allowed:
                    allowed["data_atualizacao"] = _utcnow()
                    await conn.execute(update(caixas).where(caixas.c.id == box_id).values(**allowed))
                return await self._box_row(conn, owner_id, box_id)
        except SQLAlchemyError as e:
            logger.error(f"update_box failed for {box_id}: {e}")
            raise UpstreamQueryError(str(e), operation="update_box") from e

    async def delete_box(self, owner_id: str, box_id: str) -> None:
        try:
            async with self.engine.begin() as conn:
                if not await self._box_row(conn, owner_id, box_id):
                    raise NotFoundError("caixa", box_id)
                if await self._has_children(conn, box_id):
                    raise ConflictError(
                        "A caixa possui processos ou documentos vinculados; remova-os antes de excluir.",
                        details={"caixa_id": box_id},
                    )
                await conn.execute(delete(caixas).where(caixas.c.id == box_id))
        except SQLAlchemyError as e:
            logger.error(f"delete_box failed for {box_id}: {e}")
            raise UpstreamQueryError(str(e), operation="delete_box") from e

    # ---------------- processes ----------------

    async def _process_row(self, conn: AsyncConnection, owner_id: str, process_id: str) -> Optional[Dict[str, Any]]:
        row = (
            await conn.execute(
                select(processos).where(processos.c.id == process_id, processos.c.user_id == owner_id)
            )
        ).mappings().first()
        return dict(row) if row else None

    async def create_process(self, owner_id: str, box_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        process_id = str(uuid4())
        try:
            async with self.engine.begin() as conn:
                box = await self._box_row(conn, owner_id, box_id)
                if not box:
                    raise NotFoundError("caixa", box_id)
                box_type = BoxType(box["tipo"])
                if not box_type.holds_processes:
                    raise ValidationError(
                        "Caixas de documentos administrativos não recebem processos.",
                        details={"caixa_id": box_id},
                    )
                values = {k: v for k, v in data.items() if k in _PROCESS_FIELDS}
                await conn.execute(
                    insert(processos).values(
                        id=process_id,
                        user_id=owner_id,
                        caixa_id=box_id,
                        tipo_processo=process_category_for(box_type).value,
                        created_at=_utcnow(),
                        **values,
                    )
                )
                return await self._process_row(conn, owner_id, process_id)
        except SQLAlchemyError as e:
            logger.error(f"create_process failed for box {box_id}: {e}")
            raise UpstreamQueryError(str(e), operation="create_process") from e

    async def get_process(self, owner_id: str, process_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.engine.connect() as conn:
                return await self._process_row(conn, owner_id, process_id)
        except SQLAlchemyError as e:
            raise UpstreamQueryError(str(e), operation="get_process") from e

    async def update_process(self, owner_id: str, process_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        allowed = {k: v for k, v in updates.items() if k in _PROCESS_FIELDS}
        try:
            async with self.engine.begin() as conn:
                if not await self._process_row(conn, owner_id, process_id):
                    raise NotFoundError("processo", process_id)
                if allowed:
                    await conn.execute(update(processos).where(processos.c.id == process_id).values(**allowed))
                return await self._process_row(conn, owner_id, process_id)
        except SQLAlchemyError as e:
            logger.error(f"update_process failed for {process_id}: {e}")
            raise UpstreamQueryError(str(e), operation="update_process") from e

    async def delete_process(self, owner_id: str, process_id: str) -> None:
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(
                    delete(processos).where(processos.c.id == process_id, processos.c.user_id == owner_id)
                )
                if res.rowcount == 0:
                    raise NotFoundError("processo", process_id)
        except SQLAlchemyError as e:
            logger.error(f"delete_process failed for {process_id}: {e}")
            raise UpstreamQueryError(str(e), operation="delete_process") from e

    # ---------------- administrative documents ----------------

    async def _document_row(self, conn: AsyncConnection, owner_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        row = (
            await conn.execute(
                select(documentos_adm).where(
                    documentos_adm.c.id == document_id, documentos_adm.c.user_id == owner_id
                )
            )
        ).mappings().first()
        return dict(row) if row else None

    async def create_document(self, owner_id: str, box_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        document_id = str(uuid4())
        try:
            async with self.engine.begin() as conn:
                box = await self._box_row(conn, owner_id, box_id)
                if not box:
                    raise NotFoundError("caixa", box_id)
                if BoxType(box["tipo"]) is not BoxType.DOCUMENTO_ADMINISTRATIVO:
                    raise ValidationError(
                        "Documentos administrativos só podem ser cadastrados em caixas de documentos.",
                        details={"caixa_id": box_id},
                    )
                values = {k: v for k, v in data.items() if k in _DOCUMENT_FIELDS}
                if not (values.get("numero_caixas") or "").strip():
                    values["numero_caixas"] = box["numero_caixa"]
                values["numero_caixas_num"] = numeric_box_key(values["numero_caixas"])
                await conn.execute(
                    insert(documentos_adm).values(
                        id=document_id,
                        user_id=owner_id,
                        caixa_id=box_id,
                        created_at=_utcnow(),
                        **values,
                    )
                )
                return await self._document_row(conn, owner_id, document_id)
        except SQLAlchemyError as e:
            logger.error(f"create_document failed for box {box_id}: {e}")
            raise UpstreamQueryError(str(e), operation="create_document") from e

    async def get_document(self, owner_id: str, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self.engine.connect() as conn:
                return await self._document_row(conn, owner_id, document_id)
        except SQLAlchemyError as e:
            raise UpstreamQueryError(str(e), operation="get_document") from e

    async def update_document(self, owner_id: str, document_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        allowed = {k: v for k, v in updates.items() if k in _DOCUMENT_FIELDS}
        try:
            async with self.engine.begin() as conn:
                if not await self._document_row(conn, owner_id, document_id):
                    raise NotFoundError("documento", document_id)
                if "numero_caixas" in allowed:
                    allowed["numero_caixas_num"] = numeric_box_key(allowed["numero_caixas"])
                if allowed:
                    await conn.execute(
                        update(documentos_adm).where(documentos_adm.c.id == document_id).values(**allowed)
                    )
                return await self._document_row(conn, owner_id, document_id)
        except SQLAlchemyError as e:
            logger.error(f"update_document failed for {document_id}: {e}")
            raise UpstreamQueryError(str(e), operation="update_document") from e

    async def delete_document(self, owner_id: str, document_id: str) -> None:
        try:
            async with self.engine.begin() as conn:
                res = await conn.execute(
                    delete(documentos_adm).where(
                        documentos_adm.c.id == document_id, documentos_adm.c.user_id == owner_id
                    )
                )
                if res.rowcount == 0:
                    raise NotFoundError("documento", document_id)
        except SQLAlchemyError as e:
            logger.error(f"delete_document failed for {document_id}: {e}")
            raise UpstreamQueryError(str(e), operation="delete_document") from e
