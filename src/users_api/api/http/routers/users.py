"""Users API router with CRUD and JSON-Patch operations."""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Path, Request, Response, status
from loguru import logger

from src.users_api.api.http.deps import get_user_repository
from src.users_api.core.errors import UserNotFoundError, UserValidationError
from src.users_api.core.patch import PatchOperation, apply_patch
from src.users_api.entities.user import MAX_INTEGER, User, UserCreate, UserRepository

router = APIRouter(prefix="/users", tags=["users"])

_NOT_FOUND = {404: {"description": "User not found"}}
_BAD_REQUEST = {400: {"description": "Validation failed"}}

# Ids outside the range of the id column are rejected before reaching the store
UserId = Annotated[int, Path(ge=-MAX_INTEGER - 1, le=MAX_INTEGER, description="User ID")]


@router.get("", response_model=list[User])
def list_users(
    repository: UserRepository = Depends(get_user_repository),
) -> list[User]:
    """List all users."""
    return repository.list_all()


@router.get("/{user_id}", response_model=User, responses=_NOT_FOUND)
def get_user(
    user_id: UserId,
    repository: UserRepository = Depends(get_user_repository),
) -> User:
    """Get a user by ID."""
    user = repository.get(user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


@router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    responses=_BAD_REQUEST,
)
def create_user(
    payload: UserCreate,
    request: Request,
    response: Response,
    repository: UserRepository = Depends(get_user_repository),
) -> User:
    """Create a new user.

    The response carries a Location header pointing at the new record.
    """
    user = repository.create(payload)
    response.headers["Location"] = str(request.url_for("get_user", user_id=user.id))
    logger.info("Created user {}", user.id)
    return user


@router.patch(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={**_NOT_FOUND, **_BAD_REQUEST},
)
def patch_user(
    user_id: UserId,
    document: list[PatchOperation] = Body(
        ..., examples=[[{"op": "replace", "path": "/age", "value": 31}]]
    ),
    repository: UserRepository = Depends(get_user_repository),
) -> Response:
    """Partially update a user with a JSON-Patch document.

    Every operation is attempted; if any of them fails the errors are
    returned keyed by path and nothing is written.
    """
    user = repository.get(user_id)
    if user is None:
        raise UserNotFoundError(user_id)

    result = apply_patch(document, user)
    if not result.ok:
        raise UserValidationError(result.errors_by_path())

    if not repository.update(result.value):
        # Removed between the read and the write
        raise UserNotFoundError(user_id)

    logger.info("Patched user {} with {} operation(s)", user_id, len(document))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_NOT_FOUND,
)
def delete_user(
    user_id: UserId,
    repository: UserRepository = Depends(get_user_repository),
) -> Response:
    """Delete a user."""
    if repository.get(user_id) is None:
        raise UserNotFoundError(user_id)

    repository.delete(user_id)
    logger.info("Deleted user {}", user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
