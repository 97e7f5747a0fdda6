'''

'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import TutorStatus, UserRole
from ..common.exceptions import ConflictError, ForbiddenError, NotFoundError
from ..common.logger import log
from ..models import tutor as tutor_models
from .security import authorize_roles


class TutorService:
    """
    Service for tutor profiles and their admin review.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def _get_tutor_by_id_internal(self, tutor_id: UUID, for_update: bool = False) -> db_models.Tutors:
        log.info(f"Internal fetch for tutor by ID: {tutor_id}")
        tutor = await self.db.get(db_models.Tutors, tutor_id, with_for_update=for_update)
        if not tutor:
            raise NotFoundError("Tutor not found.")
        return tutor

    async def get_tutor_by_email(self, email: str) -> db_models.Tutors | None:
        stmt = select(db_models.Tutors).filter(db_models.Tutors.email == email)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def create_tutor_profile(self, tutor_data: tutor_models.TutorCreate, current_user: db_models.Users) -> db_models.Tutors:
        """
        Creates the caller's tutor profile in the pending state.
        Restricted to users with the tutor role, one profile per email.
        """
        authorize_roles(current_user, [UserRole.TUTOR])
        log.info(f"User {current_user.email} submitting tutor profile.")
        try:
            if await self.get_tutor_by_email(current_user.email):
                raise ConflictError("A tutor profile for this email already exists.")

            tutor = db_models.Tutors(
                email=current_user.email,
                status=TutorStatus.PENDING.value,
                **tutor_data.model_dump()
            )
            self.db.add(tutor)
            await self.db.flush()
            return tutor

        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error creating tutor profile for {current_user.email}: {e}", exc_info=True)
            raise

    async def list_tutors(self, current_user: Optional[db_models.Users] = None, status_filter: Optional[TutorStatus] = None) -> list[db_models.Tutors]:
        """
        Approved tutors are public. Only admins may list other statuses.
        """
        is_admin = current_user is not None and current_user.role == UserRole.ADMIN.value
        if status_filter and status_filter != TutorStatus.APPROVED and not is_admin:
            raise ForbiddenError("Only administrators can list unapproved tutors.")

        stmt = select(db_models.Tutors).order_by(db_models.Tutors.rating.desc(), db_models.Tutors.created_at.desc())
        if status_filter:
            stmt = stmt.filter(db_models.Tutors.status == status_filter.value)
        elif not is_admin:
            stmt = stmt.filter(db_models.Tutors.status == TutorStatus.APPROVED.value)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_tutor(self, tutor_id: UUID, for_update: bool = False) -> db_models.Tutors:
        return await self._get_tutor_by_id_internal(tutor_id, for_update=for_update)

    async def set_status(self, tutor_id: UUID, new_status: TutorStatus, current_user: db_models.Users) -> db_models.Tutors:
        """Admin decision on a tutor profile."""
        authorize_roles(current_user, [UserRole.ADMIN])
        tutor = await self._get_tutor_by_id_internal(tutor_id)
        log.info(f"Admin {current_user.id} setting tutor {tutor_id} status to {new_status.value}.")
        tutor.status = new_status.value
        self.db.add(tutor)
        await self.db.flush()
        return tutor
