from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class TimestampMixin:
    """Adds created/updated audit columns."""

    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=TimezoneUtils.utc_now, onupdate=TimezoneUtils.utc_now, nullable=True
    )


class StatusWorkflowMixin:
    """Simple state machine helper for ledger documents.

    Subclasses declare ``TRANSITIONS`` as ``{action: (allowed_from, target)}``.
    """

    TRANSITIONS: dict = {}

    def can_transition(self, action: str) -> bool:
        allowed_from, _ = self.TRANSITIONS[action]
        return self.status in allowed_from

    def transition(self, action: str) -> None:
        from ..errors import InvalidTransitionError

        if action not in self.TRANSITIONS:
            raise KeyError(action)
        allowed_from, target = self.TRANSITIONS[action]
        if self.status not in allowed_from:
            raise InvalidTransitionError(self.__tablename__, self.status, action)
        self.status = target
