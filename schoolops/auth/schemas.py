from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from schoolops.core.enums import UserRole


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller, taken from the access token.
    teacher_id is set for TEACHER tokens and identifies the Teacher row used for class-teacher checks.
    """

    id: UUID
    role: UserRole
    teacher_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
