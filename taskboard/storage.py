from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import Boolean, Date, bindparam, text
from sqlalchemy.engine import Connection

from .db import Database
from .errors import NotFound
from .logger import get_logger

logger = get_logger(__name__)


# === Statements ===

INSERT_USER = text(
    "INSERT INTO users (name, email) VALUES (:name, :email) "
    "RETURNING id, name, email"
)
SELECT_USERS = text("SELECT id, name, email FROM users ORDER BY id")
USER_EXISTS = text("SELECT 1 FROM users WHERE id = :user_id")

INSERT_BOARD = text("INSERT INTO boards (name) VALUES (:name) RETURNING id, name")
INSERT_BOARD_ADMIN = text(
    "INSERT INTO board_users (board_id, user_id, is_admin) VALUES (:board_id, :user_id, :is_admin)"
)
SELECT_BOARDS_WITH_ADMIN = text(
    'SELECT b.id, b.name, bu.user_id AS "adminUserId" '
    "FROM boards b JOIN board_users bu ON bu.board_id = b.id "
    "WHERE bu.is_admin = :is_admin ORDER BY b.id"
)

INSERT_LIST = text(
    "INSERT INTO lists (name, board_id) VALUES (:name, :board_id) "
    'RETURNING id, name, board_id AS "boardId"'
)
SELECT_LISTS_BY_BOARD = text(
    'SELECT id, name, board_id AS "boardId" FROM lists WHERE board_id = :board_id ORDER BY id'
)

INSERT_CARD = (
    text(
        "INSERT INTO cards (title, description, due_date, list_id) "
        "VALUES (:title, :description, :due_date, :list_id) "
        'RETURNING id, title, description, due_date, list_id AS "listId"'
    )
    .bindparams(bindparam("due_date", type_=Date))
    .columns(due_date=Date)
)
SELECT_CARD = text(
    'SELECT id, title, description, due_date, list_id AS "listId" FROM cards WHERE id = :card_id'
).columns(due_date=Date)
CARD_EXISTS = text("SELECT 1 FROM cards WHERE id = :card_id")

INSERT_CARD_USER = text(
    "INSERT INTO card_users (card_id, user_id, is_owner) VALUES (:card_id, :user_id, :is_owner) "
    'RETURNING card_id AS "cardId", user_id AS "userId", is_owner AS "isOwner"'
).columns(isOwner=Boolean)
SELECT_CARD_USERS = text(
    'SELECT user_id AS "userId", is_owner AS "isOwner" FROM card_users '
    "WHERE card_id = :card_id ORDER BY id"
).columns(isOwner=Boolean)
SELECT_CARD_OWNER = text(
    "SELECT u.id, u.name, u.email FROM card_users cu JOIN users u ON u.id = cu.user_id "
    "WHERE cu.card_id = :card_id AND cu.is_owner = :is_owner"
)


class Storage:
    """Persistence operations for users, boards, lists and cards.

    Single statements run on a pooled connection; operations writing more
    than one row run inside ``Database.transaction()``.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    # === User operations ===
    def create_user(self, name: str, email: str) -> dict:
        with self.db.connect(write=True) as conn:
            row = conn.execute(INSERT_USER, {"name": name, "email": email}).mappings().one()
            conn.commit()
        logger.info(f"Created user #{row['id']}")
        return dict(row)

    def list_users(self) -> list[dict]:
        with self.db.connect() as conn:
            return [dict(r) for r in conn.execute(SELECT_USERS).mappings()]

    # === Board operations ===
    def create_board(self, name: str, admin_user_id: int) -> dict:
        with self.db.transaction() as conn:
            board = conn.execute(INSERT_BOARD, {"name": name}).mappings().one()
            self._link_board_admin(conn, board["id"], admin_user_id)
        logger.info(f"Created board #{board['id']} with admin user {admin_user_id}")
        return {"id": board["id"], "name": board["name"], "adminUserId": admin_user_id}

    def _link_board_admin(self, conn: Connection, board_id: int, user_id: int) -> None:
        conn.execute(
            INSERT_BOARD_ADMIN,
            {"board_id": board_id, "user_id": user_id, "is_admin": True},
        )

    def list_boards_with_admin(self) -> list[dict]:
        with self.db.connect() as conn:
            rows = conn.execute(SELECT_BOARDS_WITH_ADMIN, {"is_admin": True}).mappings()
            return [dict(r) for r in rows]

    # === List operations ===
    def create_list(self, name: str, board_id: int) -> dict:
        with self.db.connect(write=True) as conn:
            row = conn.execute(INSERT_LIST, {"name": name, "board_id": board_id}).mappings().one()
            conn.commit()
        logger.info(f"Created list #{row['id']} on board {board_id}")
        return dict(row)

    def list_lists_by_board(self, board_id: int) -> list[dict]:
        with self.db.connect() as conn:
            rows = conn.execute(SELECT_LISTS_BY_BOARD, {"board_id": board_id}).mappings()
            return [dict(r) for r in rows]

    # === Card operations ===
    def create_card(
        self,
        list_id: int,
        title: str,
        description: str,
        due_date: date,
        owner_user_id: Optional[int] = None,
    ) -> dict:
        params = {
            "title": title,
            "description": description,
            "due_date": due_date,
            "list_id": list_id,
        }
        if owner_user_id is None:
            with self.db.connect(write=True) as conn:
                card = conn.execute(INSERT_CARD, params).mappings().one()
                conn.commit()
        else:
            with self.db.transaction() as conn:
                card = conn.execute(INSERT_CARD, params).mappings().one()
                self._insert_card_user(conn, card["id"], owner_user_id, True)
        logger.info(f"Created card #{card['id']} in list {list_id}")
        return dict(card)

    def get_card_with_owner(self, card_id: int) -> dict:
        with self.db.connect() as conn:
            card = conn.execute(SELECT_CARD, {"card_id": card_id}).mappings().one_or_none()
            if card is None:
                raise NotFound("card", card_id)
            owner = conn.execute(
                SELECT_CARD_OWNER, {"card_id": card_id, "is_owner": True}
            ).mappings().one_or_none()
        return {**card, "owner": dict(owner) if owner else None}

    # === Card assignment ===
    def assign_user_to_card(self, card_id: int, user_id: int, is_owner: bool = False) -> dict:
        with self.db.transaction() as conn:
            if conn.execute(CARD_EXISTS, {"card_id": card_id}).first() is None:
                raise NotFound("card", card_id)
            if conn.execute(USER_EXISTS, {"user_id": user_id}).first() is None:
                raise NotFound("user", user_id)
            row = self._insert_card_user(conn, card_id, user_id, is_owner)
        logger.info(f"Assigned user {user_id} to card {card_id} (owner={is_owner})")
        return row

    def _insert_card_user(self, conn: Connection, card_id: int, user_id: int, is_owner: bool) -> dict:
        row = conn.execute(
            INSERT_CARD_USER,
            {"card_id": card_id, "user_id": user_id, "is_owner": is_owner},
        ).mappings().one()
        return dict(row)

    def list_card_users(self, card_id: int) -> list[dict]:
        with self.db.connect() as conn:
            return [dict(r) for r in conn.execute(SELECT_CARD_USERS, {"card_id": card_id}).mappings()]
