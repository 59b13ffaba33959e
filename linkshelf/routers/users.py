from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linkshelf.database import get_db
from linkshelf.dependencies import get_current_user_id, get_uow
from linkshelf.errors import NotFoundError
from linkshelf.schemas import UserCreate, UserResponse
from linkshelf.services import user_service
from linkshelf.unit_of_work import UnitOfWork

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(data: UserCreate, uow: UnitOfWork = Depends(get_uow)):
    # A duplicate email fails at flush; the unit of work reports it as 409.
    async with uow as db:
        return await user_service.create_user(db, data)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user
