from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.schemas import CurrentUser
from schoolops.auth.security import decode_access_token
from schoolops.core.enums import UserRole
from schoolops.core.models import Teacher
from schoolops.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the caller from the access token. TEACHER tokens must reference an existing teacher."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    role_name = payload.get("role")
    if not user_id_str or not role_name:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        role = UserRole(role_name)
    except ValueError:
        raise credentials_exception

    teacher_id: Optional[UUID] = None
    if role == UserRole.TEACHER:
        try:
            teacher_id = UUID(payload.get("teacher_id") or "")
        except ValueError:
            raise credentials_exception
        if not await db.get(Teacher, teacher_id):
            raise credentials_exception

    return CurrentUser(id=user_id, role=role, teacher_id=teacher_id)
