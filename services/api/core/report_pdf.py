# services/api/core/report_pdf.py

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from fpdf import FPDF, XPos, YPos

from core.report_data import FullListing
from core.validation import ReportKind
from models import BOX_TYPE_LABELS, BoxType, humanize_tipo
from schemas.report import OverviewMetrics, TypeBreakdown

logger = logging.getLogger(__name__)

REPORT_NAMES = {
    ReportKind.OVERVIEW: "Relatório Geral",
    ReportKind.LISTING: "Relatório de Caixas",
    ReportKind.BY_TYPE: "Relatório por Tipo",
}

EMPTY_MESSAGE = "Nenhum registro encontrado com os filtros aplicados."


@dataclass
class ReportHeader:
    """Everything printed above the data; resolved before rendering starts."""
    titulo: str
    gerado_em: datetime
    usuario: Optional[str] = None
    logo_path: Optional[str] = None
    timezone_name: str = "America/Fortaleza"


# ---------- Public API -------------------------------------------------------

def render_overview_pdf(metrics: OverviewMetrics, header: ReportHeader) -> bytes:
    """
    Summary of the whole inventory: box KPIs, destinations,
    processes by category and boxes by type (as bar charts).
    """
    report = _ReportBuilder(header=header, report_name=REPORT_NAMES[ReportKind.OVERVIEW])
    report.section_title("Resumo Geral do Inventário")

    report.cards([
        ("Total de Caixas", metrics.total_caixas),
        ("Preservar", metrics.dest_preservar),
        ("Eliminar", metrics.dest_eliminar),
    ])
    report.cards([
        ("Processos", metrics.p_tot),
        ("Judiciais", metrics.p_jud),
        ("Administrativos", metrics.p_adm),
        ("Docs. Administrativos", metrics.docs_adm),
    ])

    report.bar_chart("Processos por tipo", [
        ("Judiciais", metrics.p_jud),
        ("Administrativos", metrics.p_adm),
    ])
    report.bar_chart("Caixas por destinação", [
        ("Preservar", metrics.dest_preservar),
        ("Eliminar", metrics.dest_eliminar),
    ])
    report.bar_chart("Caixas por tipo", [
        ("Processos Judiciais", metrics.cx_jud),
        ("Processos Administrativos", metrics.cx_adm),
        ("Documentos Administrativos", metrics.cx_doc),
    ])
    return report.build()


def render_listing_pdf(listing: FullListing, header: ReportHeader) -> bytes:
    """Box listing or process/document listing, depending on listing.kind."""
    report = _ReportBuilder(header=header, report_name=REPORT_NAMES[listing.kind])
    tipo = listing.filtros.tipo
    show_all = tipo == "todos"

    if listing.kind is ReportKind.BY_TYPE:
        report.section_title("Processos/Documentos" if show_all else humanize_tipo(tipo))
        report.cards([("Tipo", humanize_tipo(tipo)), ("Total de Itens", _fmt_int(listing.total))])
        columns, rows = _proc_doc_table(listing.rows, tipo)
    else:
        report.section_title("Lista de Caixas" if show_all else f"Caixas - {humanize_tipo(tipo)}")
        if show_all:
            report.cards([("Total de Caixas", _fmt_int(listing.total))])
        else:
            report.cards([(humanize_tipo(tipo), _fmt_int(listing.total))])
        columns, rows = _box_table(listing.rows)

    if listing.breakdown is not None:
        report.cards(_breakdown_cards(listing.breakdown))

    if listing.filtros.numero:
        report.note(f"Filtro: caixas iniciadas por \"{listing.filtros.numero}\"")
    if listing.truncated:
        report.note(
            f"Exibindo os primeiros {_fmt_int(len(listing.rows))} de {_fmt_int(listing.total)} registros."
        )

    report.table(columns, rows)
    return report.build()


# ---------- Table shapes -----------------------------------------------------

Column = Tuple[str, float]  # (title, relative width)


def _box_table(rows: Sequence[Dict[str, Any]]) -> Tuple[List[Column], List[List[str]]]:
    columns = [("Nº Caixa", 1.0), ("Tipo", 1.8), ("Localização", 1.3), ("Destinação", 1.1), ("Descrição", 2.8)]
    body = [
        [
            r.get("numero_caixa"),
            humanize_tipo(r.get("tipo")),
            r.get("localizacao"),
            (r.get("destinacao") or "").capitalize() or None,
            r.get("descricao"),
        ]
        for r in rows
    ]
    return columns, body


def _proc_doc_table(rows: Sequence[Dict[str, Any]], tipo: str) -> Tuple[List[Column], List[List[str]]]:
    if tipo == "todos":
        columns = [
            ("Caixa", 0.9),
            ("Classe Processual/Espécie Documental", 2.8),
            ("Nº Processo", 1.6),
            ("Protocolo", 1.2),
            ("Tipo", 1.8),
        ]
        body = [
            [
                r.get("numero_caixa"),
                r.get("classe_processual") or r.get("especie_documental"),
                r.get("numero_processo"),
                r.get("protocolo"),
                humanize_tipo(r.get("tipo_item")),
            ]
            for r in rows
        ]
    elif tipo == BoxType.DOCUMENTO_ADMINISTRATIVO.value:
        columns = [("Caixa", 1.0), ("Espécie Documental", 3.5), ("Data Limite", 1.5)]
        body = [[r.get("numero_caixa"), r.get("especie_documental"), r.get("data_limite")] for r in rows]
    else:
        columns = [("Caixa", 1.0), ("Classe Processual", 2.8), ("Nº Processo", 2.0), ("Protocolo", 1.4)]
        body = [
            [r.get("numero_caixa"), r.get("classe_processual"), r.get("numero_processo"), r.get("protocolo")]
            for r in rows
        ]
    return columns, body


def _breakdown_cards(breakdown: TypeBreakdown) -> List[Tuple[str, Any]]:
    return [
        (BOX_TYPE_LABELS[t], _fmt_int(getattr(breakdown, t.value)))
        for t in BoxType
    ]


# ---------- Internals --------------------------------------------------------

def _fmt_int(n: int) -> str:
    # pt-BR thousands separator
    return f"{n:,}".replace(",", ".")


def _text(value: Any) -> str:
    """Core PDF fonts are latin-1 only; anything else becomes '?'."""
    if value is None or value == "":
        return "-"
    return str(value).encode("latin-1", "replace").decode("latin-1")


def _format_dt(dt: datetime, tz_name: str) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    try:
        dt = dt.astimezone(ZoneInfo(tz_name))
    except Exception as e:
        logger.warning(f"Unknown report timezone {tz_name!r}, using UTC: {e}")
    return dt.strftime("%d/%m/%Y %H:%M:%S")


class _ReportPDF(FPDF):
    """FPDF with the running page header/footer of every report."""

    def __init__(self, *, running_title: str, running_date: str, usuario: str):
        super().__init__(orientation="P", unit="mm", format="A4")
        self._running_title = running_title
        self._running_date = running_date
        self._usuario = usuario

    def header(self):
        self.set_font("Helvetica", "", 8)
        self.set_text_color(90, 90, 90)
        self.cell(0, 5, _text(self._running_title), new_x=XPos.LMARGIN, new_y=YPos.TOP)
        self.cell(0, 5, _text(self._running_date), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(3)
        self.set_text_color(0, 0, 0)

    def footer(self):
        self.set_y(-12)
        self.set_font("Helvetica", "", 8)
        self.set_text_color(90, 90, 90)
        self.cell(0, 5, _text(f"Usuário: {self._usuario}"), new_x=XPos.LMARGIN, new_y=YPos.TOP)
        self.cell(0, 5, f"Página {self.page_no()} / {{nb}}", align="R")
        self.set_text_color(0, 0, 0)


class _ReportBuilder:
    """
    Simple vertical-flow report:
      - A4 portrait, margins (L=R=10mm, T=B=20mm)
      - Header block (logo, title, generation time, user), then sections.
      - Tables repeat their header row after every page break.
    """

    def __init__(self, *, header: ReportHeader, report_name: str):
        generated = _format_dt(header.gerado_em, header.timezone_name)
        usuario = header.usuario or "-"

        self._pdf = _ReportPDF(
            running_title=f"JudBox - {report_name}",
            running_date=generated,
            usuario=usuario,
        )
        self._pdf.set_margins(10, 12, 10)
        self._pdf.set_auto_page_break(auto=True, margin=20)
        self._pdf.set_author(usuario)
        self._pdf.set_title(_text(f"{header.titulo} - {report_name}"))
        self._pdf.add_page()

        self.content_w = self._pdf.w - self._pdf.l_margin - self._pdf.r_margin

        # Header block
        text_x = self._pdf.l_margin
        top_y = self._pdf.get_y()
        if header.logo_path and os.path.isfile(header.logo_path):
            try:
                self._pdf.image(header.logo_path, x=self._pdf.l_margin, y=top_y, w=14)
                text_x += 17
            except Exception as e:
                logger.warning(f"Could not draw report logo {header.logo_path}: {e}")

        self._pdf.set_xy(text_x, top_y)
        self._pdf.set_font("Helvetica", "B", 14)
        self._pdf.cell(0, 7, _text(header.titulo), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.set_x(text_x)
        self._pdf.set_font("Helvetica", "", 9)
        self._pdf.cell(0, 5, _text(f"Gerado em: {generated}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        if header.usuario:
            self._pdf.set_x(text_x)
            self._pdf.cell(0, 5, _text(f"Usuário: {header.usuario}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.set_y(max(self._pdf.get_y(), top_y + 16))
        self._pdf.set_draw_color(200, 200, 200)
        self._pdf.line(self._pdf.l_margin, self._pdf.get_y(), self._pdf.w - self._pdf.r_margin, self._pdf.get_y())
        self._pdf.ln(4)

    def _ensure_space(self, block_h_mm: float) -> bool:
        """Add page if the next block won't fit. Returns True on a new page."""
        if self._pdf.get_y() + block_h_mm > self._pdf.page_break_trigger:
            self._pdf.add_page()
            return True
        return False

    def section_title(self, title: str):
        self._ensure_space(14)
        self._pdf.set_font("Helvetica", "B", 16)
        self._pdf.set_text_color(75, 85, 99)
        self._pdf.cell(0, 10, _text(title), align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.set_text_color(0, 0, 0)
        self._pdf.ln(2)

    def cards(self, items: Sequence[Tuple[str, Any]]):
        """A row of bordered label/value boxes."""
        if not items:
            return
        self._ensure_space(18)
        gap = 3
        w = (self.content_w - gap * (len(items) - 1)) / len(items)
        x0, y0 = self._pdf.l_margin, self._pdf.get_y()
        self._pdf.set_draw_color(220, 220, 220)
        for i, (label, value) in enumerate(items):
            x = x0 + i * (w + gap)
            self._pdf.rect(x, y0, w, 15)
            self._pdf.set_xy(x, y0 + 2)
            self._pdf.set_font("Helvetica", "", 8)
            self._pdf.set_text_color(107, 114, 128)
            self._pdf.cell(w, 4, _text(label), align="C")
            self._pdf.set_xy(x, y0 + 7)
            self._pdf.set_font("Helvetica", "B", 12)
            self._pdf.set_text_color(0, 0, 0)
            self._pdf.cell(w, 6, _text(value), align="C")
        self._pdf.set_xy(x0, y0 + 18)

    def note(self, text: str):
        self._pdf.set_font("Helvetica", "I", 8)
        self._pdf.set_text_color(107, 114, 128)
        self._pdf.cell(0, 5, _text(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.set_text_color(0, 0, 0)

    def bar_chart(self, title: str, data: Sequence[Tuple[str, int]]):
        """Horizontal bars scaled to the largest value."""
        row_h = 6
        self._ensure_space(10 + row_h * len(data))
        self._pdf.set_font("Helvetica", "B", 10)
        self._pdf.cell(0, 7, _text(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        label_w = 55
        value_w = 15
        bar_max = self.content_w - label_w - value_w
        top = max((v for _, v in data), default=0) or 1

        self._pdf.set_font("Helvetica", "", 9)
        self._pdf.set_fill_color(99, 102, 241)
        for label, value in data:
            y = self._pdf.get_y()
            self._pdf.cell(label_w, row_h, _text(label))
            bar_w = bar_max * (value / top)
            if bar_w > 0:
                self._pdf.rect(self._pdf.l_margin + label_w, y + 1, bar_w, row_h - 2, style="F")
            self._pdf.set_xy(self._pdf.l_margin + label_w + bar_max, y)
            self._pdf.cell(value_w, row_h, _fmt_int(value), align="R", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self._pdf.ln(3)

    def _fit(self, text: str, width: float) -> str:
        """Truncate with '...' so a cell never wraps."""
        pad = 2
        if self._pdf.get_string_width(text) <= width - pad:
            return text
        while text and self._pdf.get_string_width(text + "...") > width - pad:
            text = text[:-1]
        return text + "..."

    def _table_header(self, columns: Sequence[Column], widths: Sequence[float]):
        self._pdf.set_font("Helvetica", "B", 9)
        self._pdf.set_fill_color(243, 244, 246)
        self._pdf.set_draw_color(220, 220, 220)
        for (title, _), w in zip(columns, widths):
            self._pdf.cell(w, 7, self._fit(_text(title), w), border=1, fill=True)
        self._pdf.ln(7)
        self._pdf.set_font("Helvetica", "", 9)

    def table(self, columns: Sequence[Column], rows: Sequence[Sequence[Any]]):
        total_weight = sum(weight for _, weight in columns)
        widths = [self.content_w * weight / total_weight for _, weight in columns]
        row_h = 6

        self._ensure_space(7 + row_h)
        self._table_header(columns, widths)

        if not rows:
            self._pdf.set_text_color(107, 114, 128)
            self._pdf.cell(sum(widths), row_h + 2, _text(EMPTY_MESSAGE), border=1)
            self._pdf.ln(row_h + 2)
            self._pdf.set_text_color(0, 0, 0)
            return

        for row in rows:
            if self._ensure_space(row_h):
                self._table_header(columns, widths)
            for value, w in zip(row, widths):
                self._pdf.cell(w, row_h, self._fit(_text(value), w), border=1)
            self._pdf.ln(row_h)

    def build(self) -> bytes:
        # fpdf2 returns a bytearray; old pyfpdf returned str
        data = self._pdf.output()
        if isinstance(data, str):
            return data.encode("latin-1")
        return bytes(data)
