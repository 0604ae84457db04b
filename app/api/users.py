from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel

from app.api.dependencies import Tracker
from app.models.user import User
from app.services.tracker_service import UserValidationError

logger = logging.getLogger(__name__)

# Email-based sign-in: the learner UI looks the email up, and registers
# a new Users row only when nobody has it yet.

router = APIRouter(prefix="/v1/users", tags=["users"])


class UserOut(BaseModel):
    id: str
    email: str | None
    name: str
    created_at: str | None

    @classmethod
    def from_user(cls, user: User) -> UserOut:
        return cls(
            id=user.id, email=user.email, name=user.name, created_at=user.created_at
        )


class UserLookupOut(BaseModel):
    user: UserOut | None


class UserRegisterIn(BaseModel):
    name: str = ""
    email: str | None = None
    user_id: str | None = None
    created_at: str | None = None


class UserRegisterOut(BaseModel):
    user: UserOut
    created: bool


@router.get("/lookup", response_model=UserLookupOut)
async def find_user_by_email(
    tracker: Tracker,
    email: Annotated[str, Query()] = "",
) -> UserLookupOut:
    user = await tracker.find_user_by_email(email)
    return UserLookupOut(user=UserOut.from_user(user) if user else None)


@router.post(
    "",
    response_model=UserRegisterOut,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    payload: UserRegisterIn,
    response: Response,
    tracker: Tracker,
) -> UserRegisterOut:
    try:
        user, created = await tracker.register_user(
            name=payload.name,
            email=payload.email,
            user_id=payload.user_id,
            created_at=payload.created_at,
        )
    except UserValidationError as e:
        logger.warning("Invalid registration payload: %s", e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=str(e),
        ) from None

    if not created:
        # Signing in again with a known email is not an error
        response.status_code = status.HTTP_200_OK
    return UserRegisterOut(user=UserOut.from_user(user), created=created)
