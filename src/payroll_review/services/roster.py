"""Reviewer roster: level ordering, validation and safe reordering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator

from payroll_review.client.base import PayrollService
from payroll_review.errors import (
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from payroll_review.events import (
    EventEmitter,
    EventMetadata,
    ReviewerAdded,
    ReviewerLevelChanged,
    ReviewerRemoved,
    ReviewersReordered,
)
from payroll_review.models import CompanyUser, LevelAssignment, Reviewer

logger = logging.getLogger(__name__)


class MoveDirection(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class LevelSwap:
    """Both target assignments of a level exchange."""

    first: LevelAssignment
    second: LevelAssignment

    @property
    def assignments(self) -> list[LevelAssignment]:
        return [self.first, self.second]


class ReviewerRoster:
    """Ordered reviewers of one company.

    Immutable: operations that change levels return a new roster. Levels
    order reviewers but are not identities; they may be sparse after a
    removal.
    """

    def __init__(self, reviewers: Iterable[Reviewer] = ()):
        self._reviewers = tuple(sorted(reviewers, key=lambda r: (r.level, r.full_name)))

    def __len__(self) -> int:
        return len(self._reviewers)

    def __iter__(self) -> Iterator[Reviewer]:
        return iter(self._reviewers)

    def in_order(self) -> list[Reviewer]:
        """Reviewers ascending by level."""
        return list(self._reviewers)

    def get(self, reviewer_id: str) -> Reviewer:
        for reviewer in self._reviewers:
            if reviewer.reviewer_id == reviewer_id:
                return reviewer
        raise NotFoundError(f"Reviewer {reviewer_id} not found")

    def find_by_company_user(self, company_user_id: str) -> Reviewer | None:
        for reviewer in self._reviewers:
            if reviewer.company_user_id == company_user_id:
                return reviewer
        return None

    def at_level(self, level: int) -> Reviewer | None:
        for reviewer in self._reviewers:
            if reviewer.level == level:
                return reviewer
        return None

    def has_unique_levels(self) -> bool:
        """Invariant: no two active reviewers share a level."""
        levels = [r.level for r in self._reviewers if r.is_active]
        return len(levels) == len(set(levels))

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_new_reviewer(
        self,
        company_user_id: str,
        level: int,
        user: CompanyUser | None,
    ) -> None:
        """Check an add-reviewer request before it reaches the backend.

        A level already held by someone else is accepted; the backend
        adjusts levels as needed.
        """
        if not company_user_id:
            raise ValidationError("Please select a user and set reviewer level")
        if level < 1:
            raise ValidationError("Reviewer level must be at least 1")
        if self.find_by_company_user(company_user_id) is not None:
            raise ValidationError("User is already a reviewer")
        if user is None:
            raise ValidationError("User is not eligible to review payroll")
        if not user.can_review:
            raise ValidationError(
                f"Only ADMIN or MANAGER users can review payroll (got {user.role.value})"
            )

    def validate_level_change(self, reviewer_id: str, new_level: int) -> Reviewer:
        reviewer = self.get(reviewer_id)
        if new_level < 1:
            raise ValidationError("Reviewer level must be at least 1")
        holder = self.at_level(new_level)
        if holder is not None and holder.reviewer_id != reviewer_id:
            raise ValidationError(
                f"Level {new_level} is already held by {holder.full_name or holder.reviewer_id}"
            )
        return reviewer

    def validate_removal(self, reviewer_id: str, acting_user_id: str | None) -> Reviewer:
        reviewer = self.get(reviewer_id)
        if acting_user_id and reviewer.user_id == acting_user_id:
            raise InvalidOperationError("You cannot remove yourself as a reviewer")
        return reviewer

    # =========================================================================
    # Reordering
    # =========================================================================

    def neighbor(self, reviewer_id: str, direction: MoveDirection) -> Reviewer | None:
        """Adjacent reviewer in level order, or None at either end."""
        ordered = self._reviewers
        for index, reviewer in enumerate(ordered):
            if reviewer.reviewer_id != reviewer_id:
                continue
            target = index - 1 if direction == MoveDirection.UP else index + 1
            if 0 <= target < len(ordered):
                return ordered[target]
            return None
        raise NotFoundError(f"Reviewer {reviewer_id} not found")

    def plan_swap(self, first_id: str, second_id: str) -> LevelSwap:
        """Exchange two reviewers' levels."""
        if first_id == second_id:
            raise ValidationError("Select two different reviewers to swap")
        first = self.get(first_id)
        second = self.get(second_id)
        return LevelSwap(
            first=LevelAssignment(first.reviewer_id, second.level),
            second=LevelAssignment(second.reviewer_id, first.level),
        )

    def plan_move(self, reviewer_id: str, direction: MoveDirection) -> LevelSwap | None:
        """Swap with the adjacent reviewer; None when already at the end."""
        other = self.neighbor(reviewer_id, direction)
        if other is None:
            return None
        return self.plan_swap(reviewer_id, other.reviewer_id)

    def apply_swap(self, swap: LevelSwap) -> ReviewerRoster:
        targets = {a.reviewer_id: a.level for a in swap.assignments}
        return ReviewerRoster(
            _with_level(r, targets[r.reviewer_id]) if r.reviewer_id in targets else r
            for r in self._reviewers
        )


def _with_level(reviewer: Reviewer, level: int) -> Reviewer:
    return replace(reviewer, level=level)


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a reorder request."""

    changed: bool
    roster: ReviewerRoster
    swap: LevelSwap | None = None


class RosterService:
    """Reviewer roster operations against the payroll service.

    Operations:
    - refresh: re-fetch the roster
    - add_reviewer / remove_reviewer / set_level: validated CRUD
    - swap_levels: atomic two-reviewer level exchange
    - move_up / move_down: swap with the adjacent reviewer

    The local roster is only ever replaced by a fresh fetch after the
    backend accepts a mutation, never patched optimistically.
    """

    def __init__(
        self,
        service: PayrollService,
        emitter: EventEmitter | None = None,
        actor_id: str | None = None,
    ):
        self.service = service
        self.emitter = emitter or EventEmitter()
        self.actor_id = actor_id
        self.roster = ReviewerRoster()
        self._loaded = False

    async def refresh(self) -> ReviewerRoster:
        self.roster = ReviewerRoster(await self.service.list_reviewers())
        self._loaded = True
        return self.roster

    async def current(self) -> ReviewerRoster:
        if not self._loaded:
            await self.refresh()
        return self.roster

    async def add_reviewer(self, company_user_id: str, level: int) -> ReviewerRoster:
        roster = await self.current()
        eligible = {u.company_user_id: u for u in await self.service.list_eligible_users()}
        roster.validate_new_reviewer(company_user_id, level, eligible.get(company_user_id))

        await self._mutate(self.service.create_reviewer(company_user_id, level))
        logger.info("Added reviewer %s at level %s", company_user_id, level)
        self._emit(ReviewerAdded(self._metadata(), company_user_id=company_user_id, level=level))
        return await self.refresh()

    async def remove_reviewer(
        self, reviewer_id: str, acting_user_id: str | None = None
    ) -> ReviewerRoster:
        """Remove a reviewer; remaining levels are not renumbered."""
        roster = await self.current()
        roster.validate_removal(reviewer_id, acting_user_id or self.actor_id)

        await self._mutate(self.service.delete_reviewer(reviewer_id))
        logger.info("Removed reviewer %s", reviewer_id)
        self._emit(ReviewerRemoved(self._metadata(), reviewer_id=reviewer_id))
        return await self.refresh()

    async def set_level(self, reviewer_id: str, new_level: int) -> ReviewerRoster:
        """Direct level edit. Conflict resolution belongs to the backend."""
        roster = await self.current()
        reviewer = roster.validate_level_change(reviewer_id, new_level)
        if reviewer.level == new_level:
            return roster

        await self._mutate(self.service.update_reviewer_level(reviewer_id, new_level))
        logger.info("Reviewer %s level %s -> %s", reviewer_id, reviewer.level, new_level)
        self._emit(
            ReviewerLevelChanged(
                self._metadata(),
                reviewer_id=reviewer_id,
                from_level=reviewer.level,
                to_level=new_level,
            )
        )
        return await self.refresh()

    async def swap_levels(self, first_id: str, second_id: str) -> MoveResult:
        roster = await self.current()
        return await self._apply(roster.plan_swap(first_id, second_id))

    async def move_up(self, reviewer_id: str) -> MoveResult:
        return await self._move(reviewer_id, MoveDirection.UP)

    async def move_down(self, reviewer_id: str) -> MoveResult:
        return await self._move(reviewer_id, MoveDirection.DOWN)

    async def _move(self, reviewer_id: str, direction: MoveDirection) -> MoveResult:
        roster = await self.current()
        swap = roster.plan_move(reviewer_id, direction)
        if swap is None:
            return MoveResult(changed=False, roster=roster)
        return await self._apply(swap)

    async def _apply(self, swap: LevelSwap) -> MoveResult:
        # Both levels travel in one request so no two reviewers share a level
        await self._mutate(self.service.reorder_reviewers(swap.assignments))
        logger.info(
            "Swapped reviewer levels: %s",
            ", ".join(f"{a.reviewer_id}->{a.level}" for a in swap.assignments),
        )
        self._emit(
            ReviewersReordered(
                self._metadata(),
                assignments=tuple((a.reviewer_id, a.level) for a in swap.assignments),
            )
        )
        return MoveResult(changed=True, roster=await self.refresh(), swap=swap)

    async def _mutate(self, call) -> None:
        try:
            await call
        except NotFoundError:
            await self.refresh()
            raise

    def _metadata(self) -> EventMetadata:
        return EventMetadata.create(self.service.company_id, self.actor_id)

    def _emit(self, event) -> None:
        self.emitter.emit(event)
