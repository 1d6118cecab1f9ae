"""HTTP surface: status codes, error bodies, correlation header and degraded publishing."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from meupaozin.api.app import create_app
from meupaozin.container import build_container
from meupaozin.settings import get_default_settings


@pytest.fixture
def app_client(tmp_path: Path, connections, broker):
    settings = get_default_settings()
    settings["database"]["path"] = str(tmp_path / "api.db")
    settings["messaging"]["fallback"]["db_path"] = str(tmp_path / "spool.db")
    container = build_container(settings, project_root=tmp_path, connections=connections, consume=False)
    app = create_app(container)
    with TestClient(app) as client:
        yield client


def _seed(client: TestClient) -> tuple[int, int]:
    cliente = client.post("/clientes", json={"nome": "Maria Santos", "email": "maria@x.com"})
    tipo_pao = client.post("/tipos-pao", json={"nome": "Pão Francês", "precoBase": "0,75"})
    assert cliente.status_code == 201
    assert tipo_pao.status_code == 201
    return cliente.json()["id"], tipo_pao.json()["id"]


class TestHealthAndCorrelation:
    def test_health(self, app_client: TestClient) -> None:
        response = app_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_correlation_id_echoed(self, app_client: TestClient) -> None:
        response = app_client.get("/health", headers={"X-Correlation-Id": "abc-123"})
        assert response.headers["X-Correlation-Id"] == "abc-123"

    def test_correlation_id_generated(self, app_client: TestClient) -> None:
        response = app_client.get("/health")
        assert len(response.headers["X-Correlation-Id"]) == 36

    def test_correlation_id_reaches_event_headers(self, app_client: TestClient, broker) -> None:
        app_client.post(
            "/clientes",
            json={"nome": "João", "email": "joao@x.com"},
            headers={"X-Correlation-Id": "req-42"},
        )
        assert broker.sent[0].header_map["x-correlation-id"] == "req-42"


class TestClientesApi:
    def test_create_and_get(self, app_client: TestClient, broker) -> None:
        created = app_client.post("/clientes", json={"nome": "João", "email": "Joao@X.com"})
        assert created.status_code == 201
        body = created.json()
        assert body["email"] == "joao@x.com"
        assert app_client.get(f"/clientes/{body['id']}").json()["nome"] == "João"
        assert app_client.get("/clientes/email/joao@x.com").status_code == 200
        assert broker.topics_sent() == ["clientes.created", "analytics.events"]

    def test_duplicate_email_is_409(self, app_client: TestClient) -> None:
        app_client.post("/clientes", json={"nome": "João", "email": "joao@x.com"})
        response = app_client.post("/clientes", json={"nome": "Outro", "email": "joao@x.com"})
        assert response.status_code == 409
        assert "email" in response.json()["detail"]

    def test_invalid_body_is_422(self, app_client: TestClient) -> None:
        response = app_client.post("/clientes", json={"nome": "J", "email": "not-an-email"})
        assert response.status_code == 422

    def test_missing_is_404(self, app_client: TestClient) -> None:
        response = app_client.get("/clientes/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Cliente com ID 999 não encontrado"

    def test_patch_and_delete(self, app_client: TestClient) -> None:
        cliente_id = app_client.post("/clientes", json={"nome": "Ana", "email": "ana@x.com"}).json()["id"]
        patched = app_client.patch(f"/clientes/{cliente_id}", json={"endereco": "Rua A, 1"})
        assert patched.status_code == 200
        assert patched.json()["endereco"] == "Rua A, 1"
        assert app_client.delete(f"/clientes/{cliente_id}").status_code == 204
        assert app_client.get(f"/clientes/{cliente_id}").status_code == 404

    def test_ativos_ordered_by_nome(self, app_client: TestClient) -> None:
        app_client.post("/clientes", json={"nome": "Zeca", "email": "zeca@x.com"})
        app_client.post("/clientes", json={"nome": "Ana", "email": "ana@x.com"})
        names = [c["nome"] for c in app_client.get("/clientes/ativos").json()]
        assert names == ["Ana", "Zeca"]


class TestTiposPaoApi:
    def test_stats_and_toggle(self, app_client: TestClient) -> None:
        _, tipo_pao_id = _seed(app_client)
        assert app_client.patch(f"/tipos-pao/{tipo_pao_id}/toggle").json()["ativo"] is False
        assert app_client.get("/tipos-pao/stats").json() == {"total": 1, "ativos": 0, "inativos": 1}
        assert app_client.get("/tipos-pao/ativos").json() == []

    def test_find_by_nome(self, app_client: TestClient) -> None:
        _seed(app_client)
        response = app_client.get("/tipos-pao/nome/pão francês")
        assert response.status_code == 200
        assert response.json()["preco_base"] == 0.75

    def test_delete_with_pedidos_is_409(self, app_client: TestClient, broker) -> None:
        cliente_id, tipo_pao_id = _seed(app_client)
        app_client.post("/pedidos", json={"cliente_id": cliente_id, "tipo_pao_id": tipo_pao_id, "quantidade": 2})
        response = app_client.delete(f"/tipos-pao/{tipo_pao_id}")
        assert response.status_code == 409
        assert "tipos-pao.deleted" not in broker.topics_sent()


class TestPedidosApi:
    def test_create_and_status_change(self, app_client: TestClient, broker) -> None:
        cliente_id, tipo_pao_id = _seed(app_client)
        created = app_client.post(
            "/pedidos", json={"cliente_id": cliente_id, "tipo_pao_id": tipo_pao_id, "quantidade": 10}
        )
        assert created.status_code == 201
        pedido = created.json()
        assert pedido["preco_total"] == 7.5
        assert pedido["status"] == "REALIZADO"

        broker.sent.clear()
        patched = app_client.patch(f"/pedidos/{pedido['id']}", json={"status": "EM_PREPARO"})
        assert patched.json()["status"] == "EM_PREPARO"
        assert broker.topics_sent() == ["pedidos.updated", "pedidos.status-changed"]
        assert [p["id"] for p in app_client.get("/pedidos/status/EM_PREPARO").json()] == [pedido["id"]]

    def test_unknown_cliente_is_404(self, app_client: TestClient) -> None:
        _, tipo_pao_id = _seed(app_client)
        response = app_client.post("/pedidos", json={"cliente_id": 99, "tipo_pao_id": tipo_pao_id, "quantidade": 1})
        assert response.status_code == 404

    def test_status_values(self, app_client: TestClient) -> None:
        values = app_client.get("/pedidos/status").json()
        assert "REALIZADO" in values
        assert "CANCELADO" in values
        assert len(values) == 6

    def test_recent_limit_validation(self, app_client: TestClient) -> None:
        assert app_client.get("/pedidos/recentes?limit=0").status_code == 422
        assert app_client.get("/pedidos/recentes?limit=101").status_code == 422
        assert app_client.get("/pedidos/recentes").json() == []

    def test_invalid_status_path_is_422(self, app_client: TestClient) -> None:
        assert app_client.get("/pedidos/status/PERDIDO").status_code == 422

    def test_delete(self, app_client: TestClient, broker) -> None:
        cliente_id, tipo_pao_id = _seed(app_client)
        pedido_id = app_client.post(
            "/pedidos", json={"cliente_id": cliente_id, "tipo_pao_id": tipo_pao_id, "quantidade": 1}
        ).json()["id"]
        assert app_client.delete(f"/pedidos/{pedido_id}").status_code == 204
        assert broker.topics_sent()[-1] == "audit.events"
        assert app_client.get(f"/pedidos/cliente/{cliente_id}").json() == []


class TestDegradedBroker:
    @pytest.fixture
    def down_client(self, tmp_path: Path, connections, broker):
        broker.down = True
        settings = get_default_settings()
        settings["database"]["path"] = str(tmp_path / "api.db")
        settings["messaging"]["fallback"]["db_path"] = str(tmp_path / "spool.db")
        container = build_container(settings, project_root=tmp_path, connections=connections, consume=False)
        with TestClient(create_app(container)) as client:
            yield client

    def test_writes_succeed_while_broker_down(self, down_client: TestClient, broker) -> None:
        response = down_client.post("/clientes", json={"nome": "João", "email": "joao@x.com"})
        assert response.status_code == 201
        assert down_client.get(f"/clientes/{response.json()['id']}").status_code == 200
        assert broker.sent == []
        assert down_client.portal.call(down_client.app.state.container.fallback.count_pending) == 2
