"""Moving the school from the active academic year to the next one.

A transition runs validating -> archiving -> promoting -> activating -> done.
Archiving failures abort before any student moves. Student moves are independent
writes: one failing student is reported and the rest continue, unless the store
runs the transition inside a transaction, in which case any failure rolls back
the whole transition. Activation is always the last write, so the new year never
shows as active while students are still being moved.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from app.errors import NotFoundError, PartialPromotionFailure, StoreError, ValidationError
from app.models.academic_year import AcademicYearOut
from app.models.common import ApiModel
from app.models.user import UserInDB
from app.services.academic_year import activate_year
from app.services.archive import archivable_students, archive_year
from app.services.promotion import PromotionStrategy, resolve_next_class
from app.services.store import EnrolledStudent, SchoolStore

logger = logging.getLogger(__name__)


class TransitionState(str, Enum):
    VALIDATING = "validating"
    ARCHIVING = "archiving"
    PROMOTING = "promoting"
    ACTIVATING = "activating"
    DONE = "done"
    FAILED = "failed"


class FailedPromotion(ApiModel):
    student_id: str
    reason: str


class TransitionSummary(ApiModel):
    message: str
    active_year: AcademicYearOut
    archived_count: int = 0
    promoted_count: int = 0
    succeeded: list[str] = []
    failed: list[FailedPromotion] = []


class YearTransition:
    """One run of the year transition. Not reusable; create one per request."""

    def __init__(
        self,
        store: SchoolStore,
        next_year_id: str,
        acting_user: Optional[UserInDB] = None,
        strategy: Optional[PromotionStrategy] = None,
    ):
        self.store = store
        self.next_year_id = next_year_id
        self.acting_user = acting_user
        self.strategy = strategy
        self.state = TransitionState.VALIDATING

    def _set_state(self, state: TransitionState) -> None:
        self.state = state
        logger.debug("Year transition to %s: %s", self.next_year_id, state.value)

    async def run(self) -> TransitionSummary:
        try:
            summary = await self._run()
        except Exception:
            logger.error("Year transition to %s failed during %s", self.next_year_id, self.state.value)
            self._set_state(TransitionState.FAILED)
            raise
        self._set_state(TransitionState.DONE)
        logger.info(summary.message)
        return summary

    async def _run(self) -> TransitionSummary:
        actor = f"{self.acting_user.name} ({self.acting_user.id})" if self.acting_user else "system"
        logger.info("Year transition to %s requested by %s", self.next_year_id, actor)

        next_year = await self.store.get_year(self.next_year_id)
        if not next_year:
            raise NotFoundError("Next academic year not found")

        current = await self.store.get_active_year()
        if current is None:
            # First year: nothing to archive or promote.
            self._set_state(TransitionState.ACTIVATING)
            active = await activate_year(self.store, next_year.id)
            return TransitionSummary(message=f"Academic year activated: {active.name}", active_year=active)
        if current.id == next_year.id:
            raise ValidationError(f"Academic year {next_year.name} is already active")

        async with self.store.transaction():
            students = await self.store.list_enrolled_students(current.id)

            self._set_state(TransitionState.ARCHIVING)
            history = await archive_year(self.store, current.id, students)

            self._set_state(TransitionState.PROMOTING)
            succeeded, failed = await self._promote(archivable_students(students), next_year.id)

            self._set_state(TransitionState.ACTIVATING)
            active = await activate_year(self.store, next_year.id)

        message = f"Academic year incremented to {active.name}. {len(succeeded)} student(s) promoted."
        if failed:
            message += f" {len(failed)} student(s) could not be moved."
        return TransitionSummary(
            message=message,
            active_year=active,
            archived_count=len(history),
            promoted_count=len(succeeded),
            succeeded=succeeded,
            failed=failed,
        )

    async def _promote(
        self, students: list[EnrolledStudent], next_year_id: str
    ) -> tuple[list[str], list[FailedPromotion]]:
        succeeded: list[str] = []
        failed: list[FailedPromotion] = []
        for enrolled in students:
            student_id = enrolled.student.id
            try:
                next_class = await resolve_next_class(self.store, enrolled.current_class, self.strategy)
                await self.store.update_enrollment(
                    student_id, next_class.id if next_class else None, next_year_id
                )
            except (StoreError, NotFoundError) as exc:
                if self.store.supports_transactions:
                    raise PartialPromotionFailure(
                        f"Could not promote student {student_id}: {exc.message}", student_id
                    ) from exc
                logger.warning("Could not promote student %s: %s", student_id, exc.message, exc_info=exc)
                failed.append(FailedPromotion(student_id=student_id, reason=exc.message))
                continue
            succeeded.append(student_id)
        return succeeded, failed


async def transition_year(
    store: SchoolStore,
    next_year_id: str,
    acting_user: Optional[UserInDB] = None,
) -> TransitionSummary:
    return await YearTransition(store, next_year_id, acting_user).run()
