# staffdir/routers/user_router.py

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Query

from staffdir.core.config import get_settings
from staffdir.core.response import success
from staffdir.db.database import get_database
from staffdir.db.user_repository import UserRepository
from staffdir.schemas.user_schemas import UserOut

router = APIRouter()


async def get_user_repository(db=Depends(get_database)) -> UserRepository:
    settings = get_settings()
    return UserRepository(db[settings.USERS_COLLECTION], hash_cost=settings.HASH_SALT)


def _public(user) -> Dict[str, Any]:
    return UserOut.from_model(user).model_dump(by_alias=True, mode="json")


# Тело берём как обычный JSON-объект: все нарушения собирает наш валидатор,
# а не FastAPI, и они возвращаются одной пачкой
@router.post("")
async def create_user(
    payload: Dict[str, Any] = Body(...),
    repo: UserRepository = Depends(get_user_repository),
):
    user = await repo.create(payload)
    return success(data=_public(user), message="User created", code=201)


@router.get("")
async def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    repo: UserRepository = Depends(get_user_repository),
):
    users = await repo.list_users(skip=skip, limit=limit)
    return success(
        data=[_public(u) for u in users],
        message="Users fetched",
        pagination={"skip": skip, "limit": limit, "count": len(users)}
    )


@router.get("/{user_id}")
async def get_user(user_id: str, repo: UserRepository = Depends(get_user_repository)):
    user = await repo.get_by_id(user_id)
    return success(data=_public(user), message="User fetched")


@router.patch("/{user_id}")
async def update_user(
    user_id: str,
    payload: Dict[str, Any] = Body(...),
    repo: UserRepository = Depends(get_user_repository),
):
    user = await repo.update(user_id, payload)
    return success(data=_public(user), message="User updated")
