'''

'''
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException
from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..core import workflow
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import ApplicationStatus, TuitionStatus, UserRole
from ..common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..common.logger import log
from ..models import tuition as tuition_models
from .security import authorize_roles


class TuitionService:
    """
    Service for tuition requests: posting, browsing, editing and publishing.
    Assignment is not handled here; it only happens through ApplicationService.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- 1. Authorization Helpers ---

    def _authorize_owner_or_admin(self, tuition: db_models.Tuitions, current_user: db_models.Users):
        """
        Raises 403 if the user neither owns the tuition nor is an admin.
        """
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.STUDENT.value and tuition.student_email == current_user.email:
            return
        log.warning(f"SECURITY: User {current_user.email} tried to modify tuition {tuition.id} owned by {tuition.student_email}.")
        raise ForbiddenError("You do not have permission to modify this tuition.")

    # --- 2. Internal Fetchers (No Auth) ---

    async def get_tuition_by_id_internal(self, tuition_id: UUID, for_update: bool = False) -> db_models.Tuitions:
        log.info(f"Internal fetch for tuition by ID: {tuition_id}")
        try:
            stmt = select(db_models.Tuitions).filter(db_models.Tuitions.id == tuition_id)
            if for_update:
                stmt = stmt.with_for_update()
            result = await self.db.execute(stmt)
            tuition = result.scalars().first()
            if not tuition:
                raise NotFoundError("Tuition not found.")
            return tuition
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in get_tuition_by_id_internal: {e}", exc_info=True)
            raise

    # --- 3. Read Methods ---

    async def list_tuitions(
        self,
        status_filter: Optional[TuitionStatus] = None,
        subject: Optional[str] = None,
        location: Optional[str] = None,
        limit: int = 50,
        skip: int = 0,
    ) -> list[db_models.Tuitions]:
        """
        Public listing, newest first, with optional filters.
        Subject and location match case-insensitively on substrings.
        """
        stmt = select(db_models.Tuitions).order_by(db_models.Tuitions.created_at.desc())
        if status_filter:
            stmt = stmt.filter(db_models.Tuitions.status == status_filter.value)
        if subject:
            stmt = stmt.filter(db_models.Tuitions.subject.ilike(f"%{subject}%"))
        if location:
            stmt = stmt.filter(db_models.Tuitions.location.ilike(f"%{location}%"))
        stmt = stmt.offset(skip).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_my_tuitions(self, current_user: db_models.Users) -> list[db_models.Tuitions]:
        authorize_roles(current_user, [UserRole.STUDENT])
        stmt = select(db_models.Tuitions).filter(
            db_models.Tuitions.student_email == current_user.email
        ).order_by(db_models.Tuitions.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- 4. Write Methods ---

    async def create_tuition(self, tuition_data: tuition_models.TuitionCreate, current_user: db_models.Users) -> db_models.Tuitions:
        """
        Posts a new tuition request owned by the calling student, in the pending state.
        """
        authorize_roles(current_user, [UserRole.STUDENT])
        log.info(f"Student {current_user.email} posting tuition for {tuition_data.subject}.")
        tuition = db_models.Tuitions(
            student_email=current_user.email,
            status=TuitionStatus.PENDING.value,
            applied_tutors=[],
            **tuition_data.model_dump()
        )
        self.db.add(tuition)
        await self.db.flush()
        return tuition

    async def update_tuition(self, tuition_id: UUID, update_data: tuition_models.TuitionUpdate, current_user: db_models.Users) -> db_models.Tuitions:
        """
        Edits a tuition's descriptive fields. Assigned tuitions are frozen.
        """
        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("No update data provided.")

        tuition = await self.get_tuition_by_id_internal(tuition_id, for_update=True)
        self._authorize_owner_or_admin(tuition, current_user)
        if not workflow.is_tuition_open(tuition.status):
            raise ConflictError("An assigned tuition can no longer be edited.")

        log.info(f"User {current_user.email} updating tuition {tuition_id}: {list(changes)}")
        # the status guard is re-checked by the store; a concurrent assignment wins
        result = await self.db.execute(
            update(db_models.Tuitions)
            .where(
                db_models.Tuitions.id == tuition_id,
                db_models.Tuitions.status != TuitionStatus.ASSIGNED.value
            )
            .values(**changes)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            log.warning(f"Tuition {tuition_id} was assigned before the update of {current_user.email} landed.")
            raise ConflictError("An assigned tuition can no longer be edited.")
        await self.db.flush()
        await self.db.refresh(tuition)
        return tuition

    async def delete_tuition(self, tuition_id: UUID, current_user: db_models.Users) -> None:
        """
        Deletes a tuition and its applications. Assigned tuitions cannot be deleted.
        """
        tuition = await self.get_tuition_by_id_internal(tuition_id, for_update=True)
        self._authorize_owner_or_admin(tuition, current_user)
        if not workflow.is_tuition_open(tuition.status):
            raise ConflictError("An assigned tuition cannot be deleted.")

        log.info(f"User {current_user.email} deleting tuition {tuition_id}.")
        await self.db.execute(
            delete(db_models.Applications)
            .where(
                db_models.Applications.tuition_id == tuition_id,
                db_models.Applications.status != ApplicationStatus.APPROVED.value
            )
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.db.execute(
            delete(db_models.Tuitions)
            .where(
                db_models.Tuitions.id == tuition_id,
                db_models.Tuitions.status != TuitionStatus.ASSIGNED.value
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            # the caller's request rolls back, restoring the applications deleted above
            log.warning(f"Tuition {tuition_id} was assigned before the delete of {current_user.email} landed.")
            raise ConflictError("An assigned tuition cannot be deleted.")
        await self.db.flush()

    async def publish_tuition(self, tuition_id: UUID, current_user: db_models.Users) -> db_models.Tuitions:
        """
        Admin approval of a posted tuition: pending -> active.
        """
        authorize_roles(current_user, [UserRole.ADMIN])
        tuition = await self.get_tuition_by_id_internal(tuition_id, for_update=True)
        workflow.ensure_tuition_transition(tuition.status, TuitionStatus.ACTIVE.value)

        log.info(f"Admin {current_user.email} publishing tuition {tuition_id}.")
        result = await self.db.execute(
            update(db_models.Tuitions)
            .where(
                db_models.Tuitions.id == tuition_id,
                db_models.Tuitions.status.in_(workflow.tuition_states_allowing(TuitionStatus.ACTIVE.value))
            )
            .values(status=TuitionStatus.ACTIVE.value)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            log.warning(f"Tuition {tuition_id} left the pending state before it was published.")
            raise ConflictError("Only a pending tuition can be published.")
        await self.db.flush()
        await self.db.refresh(tuition)
        return tuition
