"""
Tests for report data aggregation (overview, box listing, process/document listing).

Run with: pytest tests/test_report_data.py -v
"""
from adapters.base import SOURCE_BOXES, SOURCE_DOCUMENTS, SOURCE_PROC_DOC, SOURCE_PROCESSES
from core.auth import Owner
from core.report_data import (
    collect_listing,
    get_boxes_data,
    get_overview_data,
    get_proc_doc_data,
)
from core.validation import ReportKind
from fakes import FakeInventoryStore, box
from models import BoxType, numeric_box_key

OWNER = Owner(id="u1", email="arquivo@zona10.jus.br")


def item(numero, tipo_item, id, **extra):
    return {
        "id": id,
        "user_id": "u1",
        "numero_caixa": numero,
        "numero_caixa_num": numeric_box_key(numero),
        "tipo_item": tipo_item,
        **extra,
    }


def _inventory() -> FakeInventoryStore:
    boxes = [
        box("2", "processo_judicial", "preservar"),
        box("10", "processo_judicial", "eliminar"),
        box("1", "processo_judicial", "preservar"),
        box("3", "processo_administrativo", "eliminar"),
        box("CX-1", "documento_administrativo", None),
        box("5", "processo_judicial", "preservar", owner="u2"),
    ]
    processes = [
        {"id": "p1", "user_id": "u1", "tipo_processo": "judicial"},
        {"id": "p2", "user_id": "u1", "tipo_processo": "judicial"},
        {"id": "p3", "user_id": "u1", "tipo_processo": "administrativo"},
        {"id": "p4", "user_id": "u2", "tipo_processo": "judicial"},
    ]
    documents = [{"id": "d1", "user_id": "u1"}]
    return FakeInventoryStore({
        SOURCE_BOXES: boxes,
        SOURCE_PROCESSES: processes,
        SOURCE_DOCUMENTS: documents,
    })


class TestOverview:
    async def test_counts_scoped_to_owner(self):
        metrics = await get_overview_data(_inventory(), OWNER)

        assert metrics.total_caixas == 5
        assert metrics.dest_preservar == 2
        assert metrics.dest_eliminar == 2
        assert metrics.p_tot == 3
        assert metrics.p_jud == 2
        assert metrics.p_adm == 1
        assert metrics.docs_adm == 1
        assert metrics.cx_jud == 3
        assert metrics.cx_adm == 1
        assert metrics.cx_doc == 1
        assert metrics.usuario == "arquivo@zona10.jus.br"
        assert metrics.gerado_em.tzinfo is not None

    async def test_missing_email_shows_dash(self):
        metrics = await get_overview_data(FakeInventoryStore(), Owner(id="u9"))
        assert metrics.usuario == "-"
        assert metrics.total_caixas == 0


class TestBoxListing:
    async def test_numeric_aware_order_single_type(self):
        store = _inventory()

        listing = await get_boxes_data(
            store, OWNER, tipo=BoxType.PROCESSO_JUDICIAL, numero=None, page=1, page_size=50
        )

        assert [r.numero_caixa for r in listing.rows] == ["1", "2", "10"]
        assert listing.total == 3
        assert listing.total_pages == 1
        assert listing.breakdown is None
        assert listing.filtros.tipo == "processo_judicial"

    async def test_all_types_has_true_breakdown(self):
        """Breakdown counts the whole filter, not the visible page."""
        store = _inventory()

        listing = await get_boxes_data(store, OWNER, tipo=None, numero=None, page=1, page_size=2)

        assert len(listing.rows) == 2
        assert listing.total == 5
        assert listing.total_pages == 3
        assert listing.breakdown.processo_judicial == 3
        assert listing.breakdown.processo_administrativo == 1
        assert listing.breakdown.documento_administrativo == 1
        assert listing.breakdown.total == 5
        # one page request + one single-row count request per type
        breakdown_calls = [c for c in store.fetch_calls if c["limit"] == 1]
        assert len(breakdown_calls) == 3
        assert all(c["with_count"] for c in breakdown_calls)

    async def test_all_types_sorted_by_category_then_number(self):
        listing = await get_boxes_data(_inventory(), OWNER, tipo=None, numero=None, page=1, page_size=50)

        assert [(r.tipo, r.numero_caixa) for r in listing.rows] == [
            ("documento_administrativo", "CX-1"),
            ("processo_administrativo", "3"),
            ("processo_judicial", "1"),
            ("processo_judicial", "2"),
            ("processo_judicial", "10"),
        ]

    async def test_prefix_filter_is_case_insensitive(self):
        listing = await get_boxes_data(_inventory(), OWNER, tipo=None, numero="cx", page=1, page_size=50)

        assert [r.numero_caixa for r in listing.rows] == ["CX-1"]
        assert listing.filtros.numero == "cx"

    async def test_second_page(self):
        listing = await get_boxes_data(
            _inventory(), OWNER, tipo=BoxType.PROCESSO_JUDICIAL, numero=None, page=2, page_size=2
        )
        assert [r.numero_caixa for r in listing.rows] == ["10"]
        assert listing.page == 2


class TestProcDocListing:
    def _store(self) -> FakeInventoryStore:
        return FakeInventoryStore({
            SOURCE_PROC_DOC: [
                item("2", "processo_judicial", "p2", numero_processo="0001"),
                item("1", "documento_administrativo", "d1", especie_documental="Ofícios"),
                item("1", "processo_judicial", "p1", numero_processo="0002"),
                item("3", "processo_administrativo", "p3", protocolo="PA-9"),
            ],
        })

    async def test_union_rows_are_tagged(self):
        listing = await get_proc_doc_data(self._store(), OWNER, tipo=None, numero=None, page=1, page_size=50)

        assert [(r.tipo_item, r.id) for r in listing.rows] == [
            ("documento_administrativo", "d1"),
            ("processo_administrativo", "p3"),
            ("processo_judicial", "p1"),
            ("processo_judicial", "p2"),
        ]
        assert listing.rows[0].especie_documental == "Ofícios"
        assert listing.rows[2].numero_processo == "0002"
        assert listing.breakdown.processo_judicial == 2
        assert listing.kind == "by-type"

    async def test_single_type(self):
        listing = await get_proc_doc_data(
            self._store(), OWNER, tipo=BoxType.PROCESSO_JUDICIAL, numero=None, page=1, page_size=50
        )
        assert [r.id for r in listing.rows] == ["p1", "p2"]
        assert listing.breakdown is None


class TestCollectListing:
    async def test_full_listing_for_pdf(self):
        listing = await collect_listing(
            _inventory(), OWNER, kind=ReportKind.LISTING, tipo=None, numero=None,
            page_size=2, max_rows=100,
        )
        assert len(listing.rows) == 5
        assert listing.total == 5
        assert listing.truncated is False
        assert listing.breakdown.total == 5

    async def test_truncated_listing(self):
        listing = await collect_listing(
            _inventory(), OWNER, kind=ReportKind.LISTING, tipo=None, numero=None,
            page_size=2, max_rows=3,
        )
        assert len(listing.rows) == 3
        assert listing.total == 5
        assert listing.truncated is True
