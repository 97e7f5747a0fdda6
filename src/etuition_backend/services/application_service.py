'''
Tutor applications and the approval workflow.

The assignment sequence (approve one application, reject its siblings,
mark the tuition assigned) lives in `assign_application` and is shared by
manual approval and payment settlement. It runs inside the request's
transaction and is guarded by a conditional update on the tuition row, so
two approvals racing on the same tuition cannot both succeed.
'''
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core import workflow
from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import ApplicationStatus, TuitionStatus, UserRole
from ..common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..common.logger import log
from ..models import application as application_models
from .security import authorize_roles
from .tuition_service import TuitionService


class ApplicationService:
    """
    Service for submitting, reviewing and maintaining tutor applications.
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        self.db = db
        self.tuition_service = tuition_service

    # --- 1. Authorization Helpers ---

    def _authorize_tuition_owner(self, tuition: db_models.Tuitions, current_user: db_models.Users):
        """
        Approving and rejecting is reserved to the student who posted the tuition, or an admin.
        """
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.STUDENT.value and tuition.student_email == current_user.email:
            return
        log.warning(f"SECURITY: User {current_user.email} tried to decide on applications for tuition {tuition.id} owned by {tuition.student_email}.")
        raise ForbiddenError("Only the student who posted this tuition can decide on its applications.")

    def _authorize_applicant(self, application: db_models.Applications, current_user: db_models.Users):
        """
        Editing and withdrawing is reserved to the applying tutor, or an admin.
        """
        if current_user.role == UserRole.ADMIN.value:
            return
        if current_user.role == UserRole.TUTOR.value and application.tutor_email == current_user.email:
            return
        log.warning(f"SECURITY: User {current_user.email} tried to modify application {application.id} of {application.tutor_email}.")
        raise ForbiddenError("You do not have permission to modify this application.")

    # --- 2. Internal Fetchers (No Auth) ---

    async def get_application_by_id_internal(self, application_id: UUID) -> db_models.Applications:
        log.info(f"Internal fetch for application by ID: {application_id}")
        try:
            stmt = select(db_models.Applications).filter(db_models.Applications.id == application_id)
            result = await self.db.execute(stmt)
            application = result.scalars().first()
            if not application:
                raise NotFoundError("Application not found.")
            return application
        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in get_application_by_id_internal: {e}", exc_info=True)
            raise

    async def _find_open_application(self, tuition_id: UUID, tutor_email: str) -> db_models.Applications | None:
        stmt = select(db_models.Applications).filter(
            db_models.Applications.tuition_id == tuition_id,
            db_models.Applications.tutor_email == tutor_email,
            db_models.Applications.status.in_(workflow.OPEN_APPLICATION_STATUSES)
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    # --- 3. The Assignment Sequence ---

    async def assign_application(self, application: db_models.Applications) -> None:
        """
        Approves `application`, rejects every other application of its tuition
        and marks the tuition assigned, as one unit of the current transaction.

        Raises ConflictError if the application is not pending or the tuition
        has already been assigned by a concurrent approval.
        """
        workflow.ensure_application_transition(application.status, ApplicationStatus.APPROVED.value)
        tuition_id = application.tuition_id
        log.info(f"Assigning tuition {tuition_id} to application {application.id} ({application.tutor_email}).")

        assignable_states = workflow.tuition_states_allowing(TuitionStatus.ASSIGNED.value)
        try:
            # 1. Claim the tuition. The row lock serializes concurrent approvals;
            #    the loser re-reads the row as assigned and matches nothing.
            claimed = await self.db.execute(
                update(db_models.Tuitions)
                .where(
                    db_models.Tuitions.id == tuition_id,
                    db_models.Tuitions.status.in_(assignable_states)
                )
                .values(status=TuitionStatus.ASSIGNED.value)
                .execution_options(synchronize_session="evaluate")
            )
            if claimed.rowcount != 1:
                log.warning(f"Tuition {tuition_id} was already assigned; approval of {application.id} refused.")
                raise ConflictError("This tuition has already been assigned to another tutor.")

            # 2. Approve the application, only if it is still pending.
            approved = await self.db.execute(
                update(db_models.Applications)
                .where(
                    db_models.Applications.id == application.id,
                    db_models.Applications.status == ApplicationStatus.PENDING.value
                )
                .values(status=ApplicationStatus.APPROVED.value)
                .execution_options(synchronize_session="evaluate")
            )
            if approved.rowcount != 1:
                raise ConflictError("This application is no longer pending.")

            # 3. Reject the siblings.
            rejected = await self.db.execute(
                update(db_models.Applications)
                .where(
                    db_models.Applications.tuition_id == tuition_id,
                    db_models.Applications.id != application.id,
                    db_models.Applications.status == ApplicationStatus.PENDING.value
                )
                .values(status=ApplicationStatus.REJECTED.value)
                .execution_options(synchronize_session="evaluate")
            )
            await self.db.flush()
            log.info(f"Tuition {tuition_id} assigned; {rejected.rowcount} sibling application(s) rejected.")

        except IntegrityError as e:
            # the one-approved-per-tuition index caught a concurrent approval
            log.warning(f"Integrity violation while assigning tuition {tuition_id}: {e}")
            raise ConflictError("This tuition has already been assigned to another tutor.")

    # --- 4. API-Facing Write Methods (With Auth) ---

    async def submit_application(self, application_data: application_models.ApplicationCreate, current_user: db_models.Users) -> db_models.Applications:
        """
        A tutor applies to a tuition. The tuition must exist and still be open,
        and the tutor must not already have a pending or approved application for it.
        """
        authorize_roles(current_user, [UserRole.TUTOR])
        if application_data.tutor_email != current_user.email:
            log.warning(f"SECURITY: Tutor {current_user.email} tried to apply as {application_data.tutor_email}.")
            raise ForbiddenError("You can only apply on your own behalf.")

        log.info(f"Tutor {current_user.email} applying to tuition {application_data.tuition_id}.")
        try:
            tuition = await self.tuition_service.get_tuition_by_id_internal(application_data.tuition_id, for_update=True)
            if not workflow.is_tuition_open(tuition.status):
                raise ConflictError("This tuition has already been assigned.")

            if await self._find_open_application(tuition.id, current_user.email):
                raise ConflictError("You have already applied to this tuition.")

            application = db_models.Applications(
                tuition_id=tuition.id,
                tutor_email=current_user.email,
                tutor_name=application_data.tutor_name,
                qualifications=application_data.qualifications,
                experience=application_data.experience,
                expected_salary=application_data.expected_salary,
                status=ApplicationStatus.PENDING.value,
            )
            self.db.add(application)

            if current_user.email not in (tuition.applied_tutors or []):
                tuition.applied_tutors = [*(tuition.applied_tutors or []), current_user.email]
                self.db.add(tuition)

            await self.db.flush()
            return application

        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error in submit_application for tuition {application_data.tuition_id}: {e}", exc_info=True)
            raise

    async def approve_application(self, application_id: UUID, current_user: db_models.Users) -> application_models.WorkflowMessage:
        """
        Approves a pending application and assigns its tuition.
        Calling it again on a processed application is a no-op.
        """
        log.info(f"User {current_user.email} approving application {application_id}.")
        application = await self.get_application_by_id_internal(application_id)
        tuition = await self.tuition_service.get_tuition_by_id_internal(application.tuition_id)
        self._authorize_tuition_owner(tuition, current_user)

        if application.status != ApplicationStatus.PENDING.value:
            log.info(f"Application {application_id} already {application.status}; nothing to do.")
            return application_models.WorkflowMessage(
                message=f"Application already processed ({application.status}).",
                already_processed=True
            )

        await self.assign_application(application)
        return application_models.WorkflowMessage(message="Application approved and tuition assigned.")

    async def reject_application(self, application_id: UUID, current_user: db_models.Users) -> application_models.WorkflowMessage:
        """
        Rejects a pending application. Approved applications cannot be rejected.
        """
        log.info(f"User {current_user.email} rejecting application {application_id}.")
        application = await self.get_application_by_id_internal(application_id)
        tuition = await self.tuition_service.get_tuition_by_id_internal(application.tuition_id)
        self._authorize_tuition_owner(tuition, current_user)
        workflow.ensure_application_mutable(application.status)

        if application.status == ApplicationStatus.REJECTED.value:
            return application_models.WorkflowMessage(
                message="Application already processed (rejected).",
                already_processed=True
            )

        workflow.ensure_application_transition(application.status, ApplicationStatus.REJECTED.value)
        result = await self.db.execute(
            update(db_models.Applications)
            .where(
                db_models.Applications.id == application_id,
                db_models.Applications.status == ApplicationStatus.PENDING.value
            )
            .values(status=ApplicationStatus.REJECTED.value)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            raise ConflictError("This application is no longer pending.")
        await self.db.flush()
        return application_models.WorkflowMessage(message="Application rejected.")

    async def update_application(self, application_id: UUID, update_data: application_models.ApplicationUpdate, current_user: db_models.Users) -> db_models.Applications:
        """
        Edits the tutor-supplied fields of an application that is not approved.
        """
        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("No update data provided.")

        application = await self.get_application_by_id_internal(application_id)
        self._authorize_applicant(application, current_user)
        workflow.ensure_application_mutable(application.status)

        log.info(f"User {current_user.email} updating application {application_id}: {list(changes)}")
        result = await self.db.execute(
            update(db_models.Applications)
            .where(
                db_models.Applications.id == application_id,
                db_models.Applications.status != ApplicationStatus.APPROVED.value
            )
            .values(**changes)
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            raise ForbiddenError("An approved application cannot be modified.")
        await self.db.flush()
        await self.db.refresh(application)
        return application

    async def delete_application(self, application_id: UUID, current_user: db_models.Users) -> None:
        """
        Withdraws an application that is not approved.
        """
        application = await self.get_application_by_id_internal(application_id)
        self._authorize_applicant(application, current_user)
        workflow.ensure_application_mutable(application.status)

        log.info(f"User {current_user.email} deleting application {application_id}.")
        result = await self.db.execute(
            delete(db_models.Applications)
            .where(
                db_models.Applications.id == application_id,
                db_models.Applications.status != ApplicationStatus.APPROVED.value
            )
            .execution_options(synchronize_session="evaluate")
        )
        if result.rowcount != 1:
            raise ForbiddenError("An approved application cannot be deleted.")
        await self.db.flush()

    # --- 5. API-Facing Read Methods (With Auth) ---

    async def list_for_tuition(self, tuition_id: UUID, current_user: db_models.Users) -> list[db_models.Applications]:
        tuition = await self.tuition_service.get_tuition_by_id_internal(tuition_id)
        self._authorize_tuition_owner(tuition, current_user)
        stmt = select(db_models.Applications).filter(
            db_models.Applications.tuition_id == tuition_id
        ).order_by(db_models.Applications.created_at)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_tutor(self, current_user: db_models.Users) -> list[db_models.Applications]:
        authorize_roles(current_user, [UserRole.TUTOR])
        stmt = select(db_models.Applications).filter(
            db_models.Applications.tutor_email == current_user.email
        ).order_by(db_models.Applications.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
