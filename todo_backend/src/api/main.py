import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from src.api import config
from src.api.auth_utils import AUTH_HEADER, get_current_user, get_token
from src.api.db import Database
from src.api.errors import AuthError, ConflictError, NotFoundError, ValidationError
from src.api.models import UserDocument
from src.api.schemas import APIMessage, Todo, TodoCreate, TodoEnvelope, TodoList, TodoUpdate, User, UserCredentials
from src.api.todo_store import TodoStore, to_object_id
from src.api.user_store import UserStore

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service health checks."},
    {"name": "Todos", "description": "Create, list, update and delete todo items."},
    {"name": "Users", "description": "Registration, login and session tokens."},
]

router = APIRouter()


def get_todo_store(request: Request) -> TodoStore:
    return request.app.state.todo_store


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_todo_id(todo_id: str) -> str:
    """Path check that runs before body validation, so a malformed id is always a 404."""
    to_object_id(todo_id)
    return todo_id


@router.get("/", tags=["Health"], summary="Health check")
def health_check() -> APIMessage:
    """Health check endpoint used by the frontend to verify backend availability."""
    return APIMessage(message="Healthy")


# =========================
# Todos
# =========================

@router.post("/todos", response_model=Todo, tags=["Todos"], summary="Create todo")
async def create_todo(payload: TodoCreate, store: TodoStore = Depends(get_todo_store)) -> Todo:
    """Create a todo item and return it."""
    todo = await store.create(payload.text)
    return Todo.from_document(todo)


@router.get("/todos", response_model=TodoList, tags=["Todos"], summary="List todos")
async def list_todos(store: TodoStore = Depends(get_todo_store)) -> TodoList:
    """List every todo item."""
    todos = await store.list_all()
    return TodoList(todos=[Todo.from_document(t) for t in todos])


@router.get("/todos/{todo_id}", response_model=TodoEnvelope, tags=["Todos"], summary="Get todo")
async def get_todo(todo_id: str = Depends(get_todo_id), store: TodoStore = Depends(get_todo_store)) -> TodoEnvelope:
    """Get a todo by id. Malformed ids answer 404 like missing ones."""
    todo = await store.get_by_id(todo_id)
    return TodoEnvelope(todo=Todo.from_document(todo))


@router.patch("/todos/{todo_id}", response_model=TodoEnvelope, tags=["Todos"], summary="Update todo")
async def update_todo(
    payload: TodoUpdate, todo_id: str = Depends(get_todo_id), store: TodoStore = Depends(get_todo_store)
) -> TodoEnvelope:
    """Update text and/or completed; completedAt follows completed."""
    todo = await store.update(todo_id, text=payload.text, completed=payload.completed)
    return TodoEnvelope(todo=Todo.from_document(todo))


@router.delete("/todos/{todo_id}", response_model=TodoEnvelope, tags=["Todos"], summary="Delete todo")
async def delete_todo(todo_id: str = Depends(get_todo_id), store: TodoStore = Depends(get_todo_store)) -> TodoEnvelope:
    """Delete a todo and return the removed document."""
    todo = await store.delete_by_id(todo_id)
    return TodoEnvelope(todo=Todo.from_document(todo))


# =========================
# Users
# =========================

@router.post("/users", response_model=User, tags=["Users"], summary="Sign up")
async def register_user(
    payload: UserCredentials, response: Response, store: UserStore = Depends(get_user_store)
) -> User:
    """Create a user; the session token is returned in the x-auth header."""
    user, token = await store.register(payload.email, payload.password)
    response.headers[AUTH_HEADER] = token
    return User.from_document(user)


@router.post("/users/login", response_model=User, tags=["Users"], summary="Login")
async def login_user(
    payload: UserCredentials, response: Response, store: UserStore = Depends(get_user_store)
) -> User:
    """Authenticate with email and password; a new token is returned in x-auth."""
    try:
        user, token = await store.login(payload.email, payload.password)
    except AuthError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    response.headers[AUTH_HEADER] = token
    return User.from_document(user)


@router.get("/users/me", response_model=User, tags=["Users"], summary="Get current user")
async def me(user: UserDocument = Depends(get_current_user)) -> User:
    """Return the user owning the x-auth token."""
    return User.from_document(user)


@router.delete("/users/me/token", tags=["Users"], summary="Logout")
async def logout_user(
    user: UserDocument = Depends(get_current_user),
    token: str = Depends(get_token),
    store: UserStore = Depends(get_user_store),
) -> Response:
    """Revoke the token used for this request."""
    await store.logout(user, token)
    return Response(status_code=status.HTTP_200_OK)


# =========================
# Error translation
# =========================

def _error(status_code: int, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": jsonable_encoder(detail)})


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # A malformed todo id is a 404 even when the body is also invalid.
    todo_id = request.path_params.get("todo_id")
    if todo_id is not None:
        try:
            to_object_id(todo_id)
        except NotFoundError as e:
            return _error(status.HTTP_404_NOT_FOUND, e.message)
    return _error(status.HTTP_400_BAD_REQUEST, exc.errors())


async def _bad_request_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(status.HTTP_400_BAD_REQUEST, exc.message)


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, exc.message)


async def _auth_handler(request: Request, exc: AuthError) -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, exc.message)


async def _store_failure_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    # Driver errors are passed through as-is.
    logger.error("Document store failure on %s %s: %s", request.method, request.url.path, exc)
    return _error(status.HTTP_400_BAD_REQUEST, str(exc))


# PUBLIC_INTERFACE
def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the API around a database handle.

    The handle is opened on startup and closed on shutdown; pass one in to
    point the app at a different store (tests use an in-memory client).
    """
    database = database or Database()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.open()
        try:
            yield
        finally:
            database.close()

    app = FastAPI(
        title="Todo API",
        description=(
            "Backend API for a personal todo list with user accounts.\n\n"
            f"Auth: send the session token in the `{AUTH_HEADER}` header for protected routes."
        ),
        version="1.0.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )

    app.state.database = database
    app.state.todo_store = TodoStore(database)
    app.state.user_store = UserStore(database)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_allow_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[AUTH_HEADER],
    )

    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(ValidationError, _bad_request_handler)
    app.add_exception_handler(ConflictError, _bad_request_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(AuthError, _auth_handler)
    app.add_exception_handler(PyMongoError, _store_failure_handler)

    app.include_router(router)
    return app
