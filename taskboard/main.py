from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from .config import Settings
from .db import Database
from .errors import NotFound, StorageFailure, TransactionAborted, ValidationFailed
from .logger import get_logger, set_level
from .models import BoardCreate, CardCreate, CardUserCreate, ListCreate, UserCreate
from .schemas import (
    BoardOut,
    CardAssignee,
    CardDetailOut,
    CardOut,
    CardUserOut,
    ErrorEnvelope,
    Health,
    ListOut,
    UserOut,
    Version,
)
from .storage import Storage
from .validation import validate, violations_from, with_path_params

VERSION = "1.0.0"

logger = get_logger(__name__)


# === Helpers ===


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def error_response(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    body = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        requestId=str(uuid.uuid4()),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def storage_error_code(exc: StorageFailure) -> str:
    cause: Optional[BaseException] = exc.cause
    while cause is not None:
        if isinstance(cause, IntegrityError):
            return "constraint_violation"
        cause = cause.__cause__
    if isinstance(exc, TransactionAborted):
        return "transaction_aborted"
    return "storage_failure"


# === Exception handlers ===


async def on_validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return error_response(
        422,
        "validation_failed",
        "payload failed validation",
        {"violations": [v.as_dict() for v in exc.violations]},
    )


async def on_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await on_validation_failed(request, ValidationFailed(violations_from(exc.errors(), skip=1)))


async def on_not_found(request: Request, exc: NotFound) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return error_response(404, "not_found", str(exc), {"entity": exc.entity, "id": exc.entity_id})


async def on_storage_failure(request: Request, exc: StorageFailure) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path}: storage failure: {exc}", exc_info=exc)
    # reads answer 400; writes answer 422
    status_code = 400 if request.method == "GET" else 422
    return error_response(status_code, storage_error_code(exc), "storage operation failed")


# === Application factory ===


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    set_level(settings.log_level)
    database = database or Database.from_settings(settings)
    database.init_schema()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        database.dispose()

    app = FastAPI(title="Taskboard API", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.storage = Storage(database)

    app.add_exception_handler(ValidationFailed, on_validation_failed)
    app.add_exception_handler(RequestValidationError, on_request_validation_error)
    app.add_exception_handler(NotFound, on_not_found)
    app.add_exception_handler(StorageFailure, on_storage_failure)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:

    # === Health & metadata ===

    @app.get("/health", response_model=Health)
    def health(request: Request):
        try:
            request.app.state.database.ping()
        except StorageFailure:
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return Health()

    @app.get("/version", response_model=Version)
    def version():
        return Version(version=VERSION)

    # === User endpoints ===

    @app.get("/users", response_model=list[UserOut])
    def list_users(storage: Storage = Depends(get_storage)):
        return storage.list_users()

    @app.post("/users", response_model=UserOut, status_code=201)
    def create_user(payload: Any = Body(default=None), storage: Storage = Depends(get_storage)):
        user = validate(UserCreate, payload)
        return storage.create_user(user.name, user.email)

    # === Board endpoints ===

    @app.get("/boards", response_model=list[BoardOut])
    def list_boards(storage: Storage = Depends(get_storage)):
        return storage.list_boards_with_admin()

    @app.post("/boards", response_model=BoardOut, status_code=201)
    def create_board(payload: Any = Body(default=None), storage: Storage = Depends(get_storage)):
        board = validate(BoardCreate, payload)
        return storage.create_board(board.name, board.adminUserId)

    @app.get("/boards/{board_id}/lists", response_model=list[ListOut])
    def list_lists(board_id: int, storage: Storage = Depends(get_storage)):
        return storage.list_lists_by_board(board_id)

    # === List endpoints ===

    @app.post("/lists", response_model=ListOut, status_code=201)
    def create_list(payload: Any = Body(default=None), storage: Storage = Depends(get_storage)):
        lst = validate(ListCreate, payload)
        return storage.create_list(lst.name, lst.boardId)

    @app.post("/lists/{list_id}/cards", response_model=CardOut, status_code=201)
    def create_card(list_id: int, payload: Any = Body(default=None), storage: Storage = Depends(get_storage)):
        card = validate(CardCreate, with_path_params(payload, listId=list_id))
        return storage.create_card(
            card.listId,
            card.title,
            card.description,
            card.due_date,
            owner_user_id=card.ownerUserId,
        )

    # === Card endpoints ===

    @app.get("/cards/{card_id}", response_model=CardDetailOut)
    def get_card(card_id: int, storage: Storage = Depends(get_storage)):
        return storage.get_card_with_owner(card_id)

    @app.get("/cards/{card_id}/users", response_model=list[CardAssignee])
    def list_card_users(card_id: int, storage: Storage = Depends(get_storage)):
        return storage.list_card_users(card_id)

    @app.post("/cards/{card_id}/users/{user_id}", response_model=CardUserOut, status_code=201)
    def assign_user(
        card_id: int,
        user_id: int,
        payload: Any = Body(default=None),
        storage: Storage = Depends(get_storage),
    ):
        assignment = validate(CardUserCreate, with_path_params(payload, cardId=card_id, userId=user_id))
        return storage.assign_user_to_card(assignment.cardId, assignment.userId, assignment.isOwner)
