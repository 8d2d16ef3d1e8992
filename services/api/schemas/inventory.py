"""
Pydantic schemas for boxes, processes and administrative documents.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models import BoxType, Destination


def _strip(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# ============ Boxes ============


class BoxBase(BaseModel):
    descricao: Optional[str] = Field(None, max_length=2000)
    localizacao: Optional[str] = Field(None, max_length=200, description="Defaults to the configured city")
    destinacao: Optional[Destination] = None


class BoxCreate(BoxBase):
    """Payload to register a new archive box."""
    numero_caixa: str = Field(..., min_length=1, max_length=50, description="Free text, e.g. '42' or 'CX-12'")
    tipo: BoxType

    @field_validator("numero_caixa")
    @classmethod
    def validate_numero(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("numero_caixa cannot be blank")
        return v


class BoxUpdate(BoxBase):
    """Partial update; fields left out are not touched."""
    numero_caixa: Optional[str] = Field(None, min_length=1, max_length=50)
    tipo: Optional[BoxType] = None

    @field_validator("numero_caixa")
    @classmethod
    def validate_numero(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("numero_caixa cannot be blank")
        return v.strip() if v else v


class BoxOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    numero_caixa: str
    tipo: BoxType
    descricao: Optional[str] = None
    localizacao: str
    destinacao: Optional[Destination] = None
    data_criacao: datetime
    data_atualizacao: datetime


# ============ Processes ============


class ProcessBase(BaseModel):
    classe_processual: Optional[str] = Field(None, max_length=300)
    numero_processo: Optional[str] = Field(None, max_length=100)
    protocolo: Optional[str] = Field(None, max_length=100)
    ano: Optional[int] = Field(None, ge=1800, le=2200)
    quantidade_volumes: Optional[int] = Field(None, ge=1)
    numero_caixas: Optional[int] = Field(None, ge=1, description="How many boxes the process spans")
    observacao: Optional[str] = Field(None, max_length=2000)

    @field_validator("classe_processual", "numero_processo", "protocolo")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip(v)


class ProcessCreate(ProcessBase):
    """The process category is taken from the box, never from the payload."""


class ProcessUpdate(ProcessBase):
    pass


class ProcessOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    caixa_id: str
    tipo_processo: str
    classe_processual: Optional[str] = None
    numero_processo: Optional[str] = None
    protocolo: Optional[str] = None
    ano: Optional[int] = None
    quantidade_volumes: Optional[int] = None
    numero_caixas: Optional[int] = None
    observacao: Optional[str] = None
    created_at: datetime


# ============ Administrative documents ============


class DocumentBase(BaseModel):
    especie_documental: Optional[str] = Field(None, max_length=300)
    data_limite: Optional[str] = Field(None, max_length=50, description="Free text, e.g. '2019' or '2015-2018'")
    quantidade_caixas: Optional[int] = Field(None, ge=1)
    numero_caixas: Optional[str] = Field(
        None,
        max_length=1000,
        description="Comma-separated box numbers; defaults to the parent box",
    )
    observacao: Optional[str] = Field(None, max_length=2000)


class DocumentCreate(DocumentBase):
    pass


class DocumentUpdate(DocumentBase):
    pass


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    caixa_id: Optional[str] = None
    especie_documental: Optional[str] = None
    data_limite: Optional[str] = None
    quantidade_caixas: Optional[int] = None
    numero_caixas: Optional[str] = None
    observacao: Optional[str] = None
    created_at: datetime
