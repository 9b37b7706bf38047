"""
Editorial Workflow State Machine.

Encodes the article review lifecycle and applies transitions to the article
store with a compare-and-set write, so two concurrent requests can never both
move the same article out of the same status.

States:
    draft ──submit──▶ pending_review ──approve──▶ approved ──publish──▶ published
                          │    │
                          │    └──reject──▶ rejected
                          └──needs_changes──▶ needs_changes ──submit──▶ pending_review

Usage:
    machine = EditorialStateMachine(article, repository)
    machine.ensure_can_transition(ArticleStatus.APPROVED, action='review')
    machine.transition_to(ArticleStatus.APPROVED, actor_id=reviewer.id)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Set

from django.utils import timezone

from apps.core.exceptions import InvalidTransitionError
from apps.core.metrics import increment_transition

logger = logging.getLogger(__name__)


class ArticleStatus(Enum):
    """Editorial statuses an article can be in."""
    DRAFT = 'draft'
    PENDING_REVIEW = 'pending_review'
    APPROVED = 'approved'
    NEEDS_CHANGES = 'needs_changes'
    REJECTED = 'rejected'
    PUBLISHED = 'published'

    @classmethod
    def from_string(cls, value: str) -> 'ArticleStatus':
        """Convert string to ArticleStatus."""
        for state in cls:
            if state.value == value:
                return state
        raise ValueError(f"Unknown status: {value}")

    @property
    def is_terminal(self) -> bool:
        """Rejected and published articles never move again."""
        return self in (ArticleStatus.REJECTED, ArticleStatus.PUBLISHED)


class ReviewDecision(Enum):
    """Outcome an editor records when reviewing a pending article."""
    APPROVE = 'approve'
    REJECT = 'reject'
    NEEDS_CHANGES = 'needs_changes'

    @classmethod
    def from_string(cls, value: str) -> 'ReviewDecision':
        for decision in cls:
            if decision.value == value:
                return decision
        raise ValueError(f"Unknown decision: {value}")

    @property
    def target_status(self) -> ArticleStatus:
        return DECISION_TO_STATUS[self]


DECISION_TO_STATUS: Dict[ReviewDecision, ArticleStatus] = {
    ReviewDecision.APPROVE: ArticleStatus.APPROVED,
    ReviewDecision.REJECT: ArticleStatus.REJECTED,
    ReviewDecision.NEEDS_CHANGES: ArticleStatus.NEEDS_CHANGES,
}

# Define valid state transitions
VALID_TRANSITIONS: Dict[ArticleStatus, Set[ArticleStatus]] = {
    ArticleStatus.DRAFT: {ArticleStatus.PENDING_REVIEW},
    ArticleStatus.PENDING_REVIEW: {
        ArticleStatus.APPROVED,
        ArticleStatus.REJECTED,
        ArticleStatus.NEEDS_CHANGES,
    },
    ArticleStatus.NEEDS_CHANGES: {ArticleStatus.PENDING_REVIEW},
    ArticleStatus.APPROVED: {ArticleStatus.PUBLISHED},
    ArticleStatus.REJECTED: set(),  # Terminal state
    ArticleStatus.PUBLISHED: set(),  # Terminal state
}


@dataclass
class StateTransition:
    """Record of a committed state transition."""
    article_id: int
    from_state: ArticleStatus
    to_state: ArticleStatus
    timestamp: datetime
    actor_id: Optional[int] = None
    fields: Dict[str, Any] = field(default_factory=dict)


class EditorialStateMachine:
    """
    State machine for one article's editorial workflow.

    The caller owns the database transaction; the machine only validates
    and writes. ``transition_to`` raises InvalidTransitionError when the
    stored status no longer matches the one this machine was built from.
    """

    def __init__(self, article, repository):
        self.article = article
        self.repository = repository

    @property
    def current_state(self) -> ArticleStatus:
        return ArticleStatus.from_string(self.article.status)

    def can_transition_to(self, target: ArticleStatus) -> bool:
        return target in VALID_TRANSITIONS.get(self.current_state, set())

    def get_valid_transitions(self) -> Set[ArticleStatus]:
        return VALID_TRANSITIONS.get(self.current_state, set()).copy()

    def ensure_can_transition(self, target: ArticleStatus, action: str):
        """Raise InvalidTransitionError unless ``target`` is reachable now."""
        if self.can_transition_to(target):
            return

        current = self.current_state
        allowed = sorted(
            source.value for source, targets in VALID_TRANSITIONS.items()
            if target in targets
        )
        raise InvalidTransitionError(
            f"Cannot {action} article {self.article.pk}: status is "
            f"'{current.value}', expected one of {allowed}",
            details={
                'current_status': current.value,
                'target_status': target.value,
            },
        )

    def transition_to(
        self,
        target: ArticleStatus,
        actor_id: Optional[int] = None,
        fields: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> StateTransition:
        """
        Move the article to ``target`` with a conditional write.

        Args:
            target: Status to move to
            actor_id: User performing the transition, for logging
            fields: Extra article columns to write alongside the status
            now: Timestamp for ``updated_at``; defaults to timezone.now()

        Raises:
            InvalidTransitionError: If the transition is not allowed or the
                stored status changed since the article was read.
        """
        current = self.current_state
        self.ensure_can_transition(target, action=f"move to {target.value}")

        now = now or timezone.now()
        fields = dict(fields or {})

        written = self.repository.compare_and_set_status(
            self.article.pk,
            expected=current.value,
            new_status=target.value,
            updated_at=now,
            **fields,
        )
        if not written:
            logger.warning(
                f"Article {self.article.pk} changed status concurrently; "
                f"{current.value} → {target.value} not applied"
            )
            raise InvalidTransitionError(
                f"Article {self.article.pk} is no longer '{current.value}'; "
                f"another request changed it first",
                details={'expected_status': current.value, 'target_status': target.value},
            )

        self.article.status = target.value
        self.article.updated_at = now
        for name, value in fields.items():
            setattr(self.article, name, value)

        increment_transition(current.value, target.value)
        logger.info(
            f"Article {self.article.pk} transitioned: "
            f"{current.value} → {target.value} (actor={actor_id})"
        )

        return StateTransition(
            article_id=self.article.pk,
            from_state=current,
            to_state=target,
            timestamp=now,
            actor_id=actor_id,
            fields=fields,
        )
