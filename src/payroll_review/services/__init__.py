"""Review pipeline services."""

from payroll_review.services.orchestrator import (
    PipelineOrchestrator,
    PipelineState,
    StageGate,
    pipeline_state_of,
)
from payroll_review.services.review_items import ReviewItemStore
from payroll_review.services.review_service import ReviewService, TransitionResult
from payroll_review.services.roster import (
    LevelSwap,
    MoveDirection,
    MoveResult,
    ReviewerRoster,
    RosterService,
)
from payroll_review.services.search import matches_term, search_allowances
from payroll_review.services.state_machine import ApprovalStateMachine, InvalidTransitionError

__all__ = [
    "PipelineOrchestrator",
    "PipelineState",
    "StageGate",
    "pipeline_state_of",
    "ReviewItemStore",
    "ReviewService",
    "TransitionResult",
    "LevelSwap",
    "MoveDirection",
    "MoveResult",
    "ReviewerRoster",
    "RosterService",
    "matches_term",
    "search_allowances",
    "ApprovalStateMachine",
    "InvalidTransitionError",
]
