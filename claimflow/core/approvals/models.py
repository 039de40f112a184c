"""
Approval Data Models

Data classes for claims, workflows, steps, approval history and the
decisions produced by the DecisionEngine. Rows coming from the
repositories are plain dicts; ``from_row`` builds the typed model.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

logger = logging.getLogger('claimflow.core.approvals.models')


class ClaimStatus(Enum):
    """Lifecycle status of an expense claim. Owned by the caller."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ActionStatus(Enum):
    """An approver's action on a claim."""
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RuleType(Enum):
    """Completion strategy of a workflow."""
    SEQUENTIAL = "SEQUENTIAL"
    PERCENTAGE = "PERCENTAGE"
    SPECIFIC_APPROVER = "SPECIFIC_APPROVER"
    HYBRID = "HYBRID"


class ApproverRole(Enum):
    """Organizational roles a step can be assigned to."""
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class DecisionOutcome(Enum):
    """What a single evaluation concluded."""
    APPROVED = "approved"          # terminal approval
    REJECTED = "rejected"          # terminal rejection
    ADVANCED = "advanced"          # moved to another step, still pending
    UNAUTHORIZED = "unauthorized"  # actor may not act on the current step


def _enum_or_raw(enum_cls, value):
    """Coerce ``value`` into ``enum_cls``; unknown strings are kept as-is."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return bool(value)


# ── Approver designation (tagged union) ──

@dataclass(frozen=True)
class ByUser:
    """Step assigned to one specific user."""
    user_id: str


@dataclass(frozen=True)
class ByRole:
    """Step assigned to an organizational role, resolved against the claim owner."""
    role: Union[ApproverRole, str]

    def __post_init__(self):
        object.__setattr__(self, 'role', _enum_or_raw(ApproverRole, self.role))

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, ApproverRole) else str(self.role)


ApproverDesignation = Union[ByUser, ByRole, None]


# ── Entities ──

@dataclass
class Claim:
    """Snapshot of an expense claim as seen by the engine."""
    id: str
    owner_id: str
    workflow_id: Optional[str] = None
    current_step_number: Optional[int] = None
    status: ClaimStatus = ClaimStatus.PENDING

    def __post_init__(self):
        """Convert string status to enum if needed."""
        if isinstance(self.status, str):
            self.status = ClaimStatus(self.status)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Claim':
        return cls(
            id=row['id'],
            owner_id=row['user_id'],
            workflow_id=row.get('workflow_id'),
            current_step_number=row.get('current_step_number'),
            status=row.get('status') or ClaimStatus.PENDING,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'workflow_id': self.workflow_id,
            'current_step_number': self.current_step_number,
            'status': self.status.value,
        }


@dataclass
class Workflow:
    """Approval workflow configuration.

    ``rule_config`` is a loose option bag. Recognized keys:
    ``requiredPercentage``, ``specificApproverId``, ``usePercentage``.
    An unrecognized ``rule_type`` is kept as the raw string.
    """
    id: str
    rule_type: Union[RuleType, str]
    rule_config: Dict[str, Any] = field(default_factory=dict)
    name: Optional[str] = None
    company_id: Optional[str] = None

    def __post_init__(self):
        self.rule_type = _enum_or_raw(RuleType, self.rule_type)
        if isinstance(self.rule_config, str):
            self.rule_config = json.loads(self.rule_config or '{}')
        if self.rule_config is None:
            self.rule_config = {}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Workflow':
        return cls(
            id=row['id'],
            rule_type=row['rule_type'],
            rule_config=row.get('rule_config'),
            name=row.get('name'),
            company_id=row.get('company_id'),
        )

    @property
    def required_percentage(self) -> Optional[float]:
        """Configured quorum, or None when unset, zero or not a number."""
        value = self.rule_config.get('requiredPercentage')
        if not value:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.warning(f'Workflow {self.id}: ignoring non-numeric requiredPercentage {value!r}')
            return None

    @property
    def specific_approver_id(self) -> Optional[str]:
        return self.rule_config.get('specificApproverId') or None

    @property
    def use_percentage(self) -> bool:
        return _truthy(self.rule_config.get('usePercentage', False))


@dataclass
class WorkflowStep:
    """One stage of a workflow. ``step_number`` is 1-based."""
    workflow_id: str
    step_number: int
    approver: ApproverDesignation = None
    id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'WorkflowStep':
        if row.get('approver_user_id'):
            approver = ByUser(row['approver_user_id'])
        elif row.get('approver_role'):
            approver = ByRole(row['approver_role'])
        else:
            approver = None
        return cls(
            id=row.get('id'),
            workflow_id=row['workflow_id'],
            step_number=row['step_number'],
            approver=approver,
        )


@dataclass
class ApprovalHistoryEntry:
    """Immutable audit record of one approve/reject action."""
    claim_id: str
    approver_id: str
    status: ActionStatus
    comment: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = ActionStatus(self.status)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ApprovalHistoryEntry':
        return cls(
            claim_id=row['expense_id'],
            approver_id=row['approver_id'],
            status=row['status'],
            comment=row.get('comment'),
            created_at=row.get('created_at'),
        )


# ── Engine output ──

def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip a directory row down to the fields safe to expose."""
    return {
        'id': user.get('id'),
        'name': user.get('name'),
        'email': user.get('email'),
        'role': user.get('role'),
    }


@dataclass(frozen=True)
class Decision:
    """Result of evaluating one approve/reject action.

    ``next_step_number`` is set only for ADVANCED decisions and
    ``next_approvers`` is empty whenever ``completed`` is true.
    """
    outcome: DecisionOutcome
    approved: bool
    completed: bool
    reason: str
    next_step_number: Optional[int] = None
    next_approvers: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def approve(cls, reason: str) -> 'Decision':
        return cls(DecisionOutcome.APPROVED, approved=True, completed=True, reason=reason)

    @classmethod
    def reject(cls, reason: str) -> 'Decision':
        return cls(DecisionOutcome.REJECTED, approved=False, completed=True, reason=reason)

    @classmethod
    def advance(cls, next_step_number: int, next_approvers, reason: str) -> 'Decision':
        return cls(
            DecisionOutcome.ADVANCED, approved=False, completed=False, reason=reason,
            next_step_number=next_step_number,
            next_approvers=tuple(next_approvers),
        )

    @classmethod
    def unauthorized(cls, reason: str) -> 'Decision':
        return cls(DecisionOutcome.UNAUTHORIZED, approved=False, completed=False, reason=reason)

    @property
    def is_authorized(self) -> bool:
        return self.outcome is not DecisionOutcome.UNAUTHORIZED

    @property
    def claim_status(self) -> ClaimStatus:
        """Claim status the caller should persist for this decision."""
        if self.outcome is DecisionOutcome.APPROVED:
            return ClaimStatus.APPROVED
        if self.outcome is DecisionOutcome.REJECTED:
            return ClaimStatus.REJECTED
        return ClaimStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outcome': self.outcome.value,
            'approved': self.approved,
            'completed': self.completed,
            'next_step_number': self.next_step_number,
            'next_approvers': [public_user(u) for u in self.next_approvers],
            'reason': self.reason,
        }
