import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from taskboard.config import Settings
from taskboard.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(database_url=f"sqlite:///{tmp_path / 'taskboard.db'}", statement_timeout_ms=10000)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def database(app):
    return app.state.database


@pytest.fixture
def storage(app):
    return app.state.storage


@pytest.fixture
def count_rows(database):
    def count(table: str, where: str = "") -> int:
        sql = f"SELECT COUNT(*) FROM {table}" + (f" WHERE {where}" if where else "")
        with database.engine.connect() as conn:
            return conn.execute(text(sql)).scalar()

    return count


@pytest.fixture
def user(client):
    resp = client.post("/users", json={"name": "Ada", "email": "ada@example.com"})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def board(client, user):
    resp = client.post("/boards", json={"name": "Sprint", "adminUserId": user["id"]})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def board_list(client, board):
    resp = client.post("/lists", json={"name": "Todo", "boardId": board["id"]})
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture
def card(client, board_list):
    resp = client.post(
        f"/lists/{board_list['id']}/cards",
        json={"title": "Write docs", "description": "README", "due_date": "2026-11-01"},
    )
    assert resp.status_code == 201
    return resp.json()
