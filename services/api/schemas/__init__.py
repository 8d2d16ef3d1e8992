"""
Pydantic schemas for API request/response validation.
"""
from pydantic import BaseModel

from .inventory import (
    BoxCreate,
    BoxOut,
    BoxUpdate,
    DocumentCreate,
    DocumentOut,
    DocumentUpdate,
    ProcessCreate,
    ProcessOut,
    ProcessUpdate,
)
from .report import (
    BoxListing,
    OverviewMetrics,
    OverviewReport,
    PdfReportRequest,
    ProcDocListing,
    ReportData,
    ReportFilters,
    TypeBreakdown,
)


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = "healthy"
    database: str
    version: str


# Re-export all
__all__ = [
    "BoxCreate",
    "BoxOut",
    "BoxUpdate",
    "ProcessCreate",
    "ProcessOut",
    "ProcessUpdate",
    "DocumentCreate",
    "DocumentOut",
    "DocumentUpdate",
    "BoxListing",
    "OverviewMetrics",
    "OverviewReport",
    "PdfReportRequest",
    "ProcDocListing",
    "ReportData",
    "ReportFilters",
    "TypeBreakdown",
    "HealthCheck",
]
