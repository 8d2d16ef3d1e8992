"""
Pydantic schemas for report data (screens and PDF).
"""
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class ReportFilters(BaseModel):
    tipo: str = Field("todos", description="Box/item type filter, 'todos' for all")
    numero: str = Field("", description="Box-number prefix filter")


class TypeBreakdown(BaseModel):
    """Exact totals per type for the current filter (not just the visible page)."""
    processo_judicial: int = 0
    processo_administrativo: int = 0
    documento_administrativo: int = 0

    @property
    def total(self) -> int:
        return self.processo_judicial + self.processo_administrativo + self.documento_administrativo


class OverviewMetrics(BaseModel):
    total_caixas: int
    dest_preservar: int
    dest_eliminar: int
    p_tot: int
    p_jud: int
    p_adm: int
    docs_adm: int
    cx_jud: int
    cx_adm: int
    cx_doc: int
    usuario: str
    gerado_em: datetime


class BoxRow(BaseModel):
    id: str
    numero_caixa: str
    tipo: str
    descricao: Optional[str] = None
    localizacao: Optional[str] = None
    destinacao: Optional[str] = None
    data_criacao: Optional[datetime] = None


# ============ Process / document union ============


class _ProcDocBase(BaseModel):
    id: str
    caixa_id: Optional[str] = None
    numero_caixa: Optional[str] = None
    created_at: Optional[datetime] = None


class ProcessItem(_ProcDocBase):
    tipo_item: Literal["processo_judicial", "processo_administrativo"]
    classe_processual: Optional[str] = None
    numero_processo: Optional[str] = None
    protocolo: Optional[str] = None


class DocumentItem(_ProcDocBase):
    tipo_item: Literal["documento_administrativo"]
    especie_documental: Optional[str] = None
    data_limite: Optional[str] = None


ProcDocRow = Annotated[Union[ProcessItem, DocumentItem], Field(discriminator="tipo_item")]


# ============ Responses ============


class _Paginated(BaseModel):
    total: int = Field(..., description="Exact row count for the filter")
    page: int
    page_size: int
    total_pages: int
    filtros: ReportFilters
    breakdown: Optional[TypeBreakdown] = Field(
        None, description="Only for tipo='todos'"
    )


class OverviewReport(BaseModel):
    kind: Literal["overview"] = "overview"
    metrics: OverviewMetrics


class BoxListing(_Paginated):
    kind: Literal["listing"] = "listing"
    rows: List[BoxRow]


class ProcDocListing(_Paginated):
    kind: Literal["by-type"] = "by-type"
    rows: List[ProcDocRow]


ReportData = Annotated[
    Union[OverviewReport, BoxListing, ProcDocListing],
    Field(discriminator="kind"),
]


class PdfReportRequest(BaseModel):
    kind: str = Field("listagem", description="overview|listing|by-type (or geral|listagem|por-tipo)")
    filters: ReportFilters = Field(default_factory=ReportFilters)
