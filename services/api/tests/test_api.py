"""
HTTP tests: auth, CSV export, report data, PDF and CRUD routes.

Run with: pytest tests/test_api.py -v
"""
import csv
import io
import logging
from datetime import timedelta

from core.auth import create_access_token
from core.csv_export import UTF8_BOM
from core.errors import UpstreamQueryError
from main import LOG_FORMAT, RequestContextFormatter, request_id_var


async def _create_box(client, headers, numero, tipo="processo_judicial", **extra):
    res = await client.post("/caixas", json={"numero_caixa": numero, "tipo": tipo, **extra}, headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


class TestAuth:
    async def test_health_is_public(self, client):
        res = await client.get("/health")
        assert res.status_code == 200
        assert res.json() == {"status": "healthy", "database": "sqlite+aiosqlite", "version": "1.0.0"}
        assert "X-Request-ID" in res.headers

    async def test_missing_token(self, client):
        res = await client.get("/export/csv", params={"tipo": "processos_jud"})
        assert res.status_code == 401
        assert res.headers["WWW-Authenticate"] == "Bearer"

    async def test_bad_token(self, client):
        res = await client.get("/reports/data", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401
        assert res.json()["code"] == "AUTH_FAILED"

    async def test_expired_token(self, client):
        token = create_access_token("u1", "a@b.c", expires_delta=timedelta(seconds=-5))
        res = await client.get("/caixas", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401


class TestCsvEndpoint:
    async def test_invalid_kind_is_plain_400(self, client, auth_headers):
        res = await client.get("/export/csv", params={"tipo": "xpto"}, headers=auth_headers)

        assert res.status_code == 400
        assert res.headers["content-type"].startswith("text/plain")
        assert res.text == "Parâmetro 'tipo' inválido."

    async def test_process_export(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "3", destinacao="preservar")
        await client.post(
            f"/caixas/{box['id']}/processos",
            json={"classe_processual": 'Ação "Penal"', "numero_processo": "0001", "ano": 2010},
            headers=auth_headers,
        )

        res = await client.get("/export/csv", params={"tipo": "processos_jud"}, headers=auth_headers)

        assert res.status_code == 200
        assert res.headers["content-type"] == "text/csv; charset=utf-8"
        assert res.headers["content-disposition"] == 'attachment; filename="processos_jud.csv"'
        assert res.headers["cache-control"] == "no-store"
        assert res.content.startswith(UTF8_BOM)

        rows = list(csv.reader(io.StringIO(res.content[len(UTF8_BOM):].decode("utf-8"))))
        assert rows[0][0] == "Nº da Caixa"
        assert rows[1] == ["3", 'Ação "Penal"', "0001", "", "2010", "", "", "preservar", ""]

    async def test_document_export(self, client, auth_headers):
        a = await _create_box(client, auth_headers, "CX1", tipo="documento_administrativo", destinacao="preservar")
        await _create_box(client, auth_headers, "CX2", tipo="documento_administrativo", destinacao="eliminar")
        await client.post(
            f"/caixas/{a['id']}/documentos",
            json={"especie_documental": "Ofícios", "numero_caixas": "CX1, CX2, CX2"},
            headers=auth_headers,
        )

        res = await client.get("/export/csv", params={"tipo": "documentos_adm"}, headers=auth_headers)

        rows = list(csv.reader(io.StringIO(res.content[len(UTF8_BOM):].decode("utf-8"))))
        assert rows[1][3] == "CX1, CX2, CX2"
        assert rows[1][4] == "preservar; eliminar"

    async def test_first_page_failure_is_502(self, client, auth_headers, sql_store, monkeypatch):
        async def broken(*args, **kwargs):
            raise UpstreamQueryError("database is locked", operation="fetch")

        monkeypatch.setattr(type(sql_store), "fetch_rows", broken)

        res = await client.get("/export/csv", params={"tipo": "processos_adm"}, headers=auth_headers)

        assert res.status_code == 502
        assert res.json()["detail"] == "database is locked"


class TestReportData:
    async def test_overview(self, client, auth_headers):
        await _create_box(client, auth_headers, "1", destinacao="preservar")

        res = await client.get("/reports/data", params={"kind": "geral"}, headers=auth_headers)

        body = res.json()
        assert res.status_code == 200
        assert body["kind"] == "overview"
        assert body["metrics"]["total_caixas"] == 1
        assert body["metrics"]["dest_preservar"] == 1
        assert body["metrics"]["usuario"] == "arquivo@zona10.jus.br"

    async def test_listing_numeric_order_and_paging(self, client, auth_headers):
        for numero in ["2", "10", "1"]:
            await _create_box(client, auth_headers, numero)

        res = await client.get(
            "/reports/data",
            params={"kind": "listing", "tipo": "processo_judicial", "page": 1, "pageSize": 2},
            headers=auth_headers,
        )

        body = res.json()
        assert [r["numero_caixa"] for r in body["rows"]] == ["1", "2"]
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert body["breakdown"] is None

    async def test_listing_all_has_breakdown(self, client, auth_headers):
        await _create_box(client, auth_headers, "1")
        await _create_box(client, auth_headers, "2", tipo="documento_administrativo")

        res = await client.get("/reports/data", params={"kind": "listagem", "tipo": "todos"}, headers=auth_headers)

        body = res.json()
        assert body["breakdown"] == {
            "processo_judicial": 1,
            "processo_administrativo": 0,
            "documento_administrativo": 1,
        }

    async def test_by_type(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "4", tipo="processo_administrativo")
        await client.post(f"/caixas/{box['id']}/processos", json={"protocolo": "PA-7"}, headers=auth_headers)

        res = await client.get("/reports/data", params={"kind": "por-tipo", "tipo": "adm"}, headers=auth_headers)

        body = res.json()
        assert body["kind"] == "by-type"
        assert body["rows"][0]["tipo_item"] == "processo_administrativo"
        assert body["rows"][0]["protocolo"] == "PA-7"

    async def test_unknown_tipo_is_400(self, client, auth_headers):
        res = await client.get("/reports/data", params={"kind": "listing", "tipo": "xpto"}, headers=auth_headers)
        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"

    async def test_invalid_page(self, client, auth_headers):
        res = await client.get("/reports/data", params={"kind": "listing", "page": 0}, headers=auth_headers)
        assert res.status_code == 400

    async def test_data_is_owner_scoped(self, client, auth_headers, other_auth_headers):
        await _create_box(client, auth_headers, "1")

        res = await client.get("/reports/data", params={"kind": "listing"}, headers=other_auth_headers)

        assert res.json()["total"] == 0


class TestPdfEndpoint:
    async def test_listing_pdf(self, client, auth_headers):
        await _create_box(client, auth_headers, "1", descricao="Processos de 2001 — lote único")

        res = await client.post(
            "/reports/pdf",
            json={"kind": "listagem", "filters": {"tipo": "todos", "numero": ""}},
            headers=auth_headers,
        )

        assert res.status_code == 200
        assert res.headers["content-type"] == "application/pdf"
        assert res.content.startswith(b"%PDF")
        assert "attachment" in res.headers["content-disposition"]

    async def test_overview_pdf(self, client, auth_headers):
        res = await client.post("/reports/pdf", json={"kind": "geral"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.content.startswith(b"%PDF")

    async def test_unknown_kind(self, client, auth_headers):
        res = await client.post("/reports/pdf", json={"kind": "pizza"}, headers=auth_headers)
        assert res.status_code == 400


class TestCrud:
    async def test_box_lifecycle(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "15", descricao="Lote A")
        assert box["localizacao"] == "Guarabira"

        res = await client.patch(f"/caixas/{box['id']}", json={"destinacao": "eliminar"}, headers=auth_headers)
        assert res.status_code == 200
        assert res.json()["destinacao"] == "eliminar"
        assert res.json()["descricao"] == "Lote A"

        res = await client.get(f"/caixas/{box['id']}", headers=auth_headers)
        assert res.json()["destinacao"] == "eliminar"

        res = await client.delete(f"/caixas/{box['id']}", headers=auth_headers)
        assert res.status_code == 204

        res = await client.get(f"/caixas/{box['id']}", headers=auth_headers)
        assert res.status_code == 404

    async def test_long_numeric_box_number(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "12345678901234567890")
        assert box["numero_caixa"] == "12345678901234567890"

    async def test_invalid_box_payload(self, client, auth_headers):
        res = await client.post("/caixas", json={"numero_caixa": "  ", "tipo": "processo_judicial"}, headers=auth_headers)
        assert res.status_code == 422

        res = await client.post("/caixas", json={"numero_caixa": "1", "tipo": "outro"}, headers=auth_headers)
        assert res.status_code == 422

    async def test_delete_box_with_contents_is_409(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "1")
        await client.post(f"/caixas/{box['id']}/processos", json={"numero_processo": "1"}, headers=auth_headers)

        res = await client.delete(f"/caixas/{box['id']}", headers=auth_headers)

        assert res.status_code == 409
        assert res.json()["code"] == "CONFLICT"

    async def test_box_contents(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "1")
        created = await client.post(
            f"/caixas/{box['id']}/processos",
            json={"numero_processo": "0001", "quantidade_volumes": 2},
            headers=auth_headers,
        )
        assert created.status_code == 201
        assert created.json()["tipo_processo"] == "judicial"

        res = await client.get(f"/caixas/{box['id']}/processos", headers=auth_headers)
        assert [p["numero_processo"] for p in res.json()] == ["0001"]

        process_id = created.json()["id"]
        res = await client.patch(f"/processos/{process_id}", json={"protocolo": "P-1"}, headers=auth_headers)
        assert res.json()["protocolo"] == "P-1"
        assert res.json()["numero_processo"] == "0001"

        res = await client.delete(f"/processos/{process_id}", headers=auth_headers)
        assert res.status_code == 204

    async def test_documents(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "20", tipo="documento_administrativo")
        created = await client.post(
            f"/caixas/{box['id']}/documentos", json={"especie_documental": "Atas"}, headers=auth_headers
        )
        assert created.status_code == 201
        doc = created.json()
        assert doc["numero_caixas"] == "20"

        res = await client.get(f"/documentos/{doc['id']}", headers=auth_headers)
        assert res.json()["especie_documental"] == "Atas"

        res = await client.get(f"/caixas/{box['id']}/documentos", headers=auth_headers)
        assert len(res.json()) == 1

        res = await client.delete(f"/documentos/{doc['id']}", headers=auth_headers)
        assert res.status_code == 204

    async def test_process_in_document_box_is_400(self, client, auth_headers):
        box = await _create_box(client, auth_headers, "20", tipo="documento_administrativo")
        res = await client.post(f"/caixas/{box['id']}/processos", json={}, headers=auth_headers)
        assert res.status_code == 400

    async def test_other_owner_cannot_see_box(self, client, auth_headers, other_auth_headers):
        box = await _create_box(client, auth_headers, "1")
        res = await client.get(f"/caixas/{box['id']}", headers=other_auth_headers)
        assert res.status_code == 404

    async def test_list_boxes(self, client, auth_headers):
        for numero in ["10", "9"]:
            await _create_box(client, auth_headers, numero)
        res = await client.get("/caixas", params={"tipo": "judicial"}, headers=auth_headers)
        assert [r["numero_caixa"] for r in res.json()["rows"]] == ["9", "10"]


class TestRequestLogging:
    def _format(self) -> str:
        record = logging.LogRecord("judbox", logging.INFO, __file__, 1, "caixa criada", None, None)
        return RequestContextFormatter(LOG_FORMAT).format(record)

    def test_record_carries_request_id(self):
        token = request_id_var.set("abc12345")
        try:
            assert "[abc12345] caixa criada" in self._format()
        finally:
            request_id_var.reset(token)

    def test_outside_a_request(self):
        assert "[-] caixa criada" in self._format()

    async def test_client_request_id_is_echoed(self, client):
        res = await client.get("/health", headers={"X-Request-ID": "req-42"})
        assert res.headers["X-Request-ID"] == "req-42"
