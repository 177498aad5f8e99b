from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import event, text

from taskboard.errors import NotFound, TransactionAborted


def test_failure_between_board_inserts_rolls_back(client, storage, user, count_rows, monkeypatch):
    def fail(*args):
        raise RuntimeError("injected")

    monkeypatch.setattr(storage, "_link_board_admin", fail)
    resp = client.post("/boards", json={"name": "Sprint", "adminUserId": user["id"]})
    assert resp.status_code == 422
    assert resp.json()["code"] == "transaction_aborted"
    assert count_rows("boards") == 0
    assert count_rows("board_users") == 0


def test_transaction_commits(database, count_rows):
    with database.transaction() as conn:
        conn.execute(text("INSERT INTO boards (name) VALUES ('A')"))
        conn.execute(text("INSERT INTO boards (name) VALUES ('B')"))
    assert count_rows("boards") == 2


def test_domain_errors_propagate_after_rollback(database, count_rows):
    with pytest.raises(NotFound):
        with database.transaction() as conn:
            conn.execute(text("INSERT INTO boards (name) VALUES ('A')"))
            raise NotFound("user", 1)
    assert count_rows("boards") == 0


def test_driver_errors_become_transaction_aborted(database, count_rows):
    with pytest.raises(TransactionAborted):
        with database.transaction() as conn:
            conn.execute(text("INSERT INTO boards (name) VALUES ('A')"))
            conn.execute(text("INSERT INTO board_users (board_id, user_id, is_admin) VALUES (1, 12345, 1)"))
    assert count_rows("boards") == 0


def test_connections_are_released_after_concurrent_composites(database, storage, user):
    checkouts = []
    checkins = []
    event.listen(database.engine, "checkout", lambda *a: checkouts.append(1))
    event.listen(database.engine, "checkin", lambda *a: checkins.append(1))

    def create(i):
        admin = user["id"] if i % 2 == 0 else 10_000 + i
        try:
            storage.create_board(f"Board {i}", admin)
            return True
        except TransactionAborted:
            return False

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(create, range(12)))

    assert results == [i % 2 == 0 for i in range(12)]
    assert len(checkouts) >= 12
    assert len(checkouts) == len(checkins)


def test_reads_do_not_wait_for_open_transaction(database, storage, user):
    with database.transaction() as conn:
        conn.execute(text("INSERT INTO boards (name) VALUES ('Pending')"))
        with ThreadPoolExecutor(max_workers=1) as pool:
            users = pool.submit(storage.list_users).result(timeout=5)
            boards = pool.submit(storage.list_boards_with_admin).result(timeout=5)
            healthy = pool.submit(database.ping).result(timeout=5)
    assert [u["id"] for u in users] == [user["id"]]
    assert boards == []
    assert healthy is True
