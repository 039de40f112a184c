"""ApprovalService: applies DecisionEngine results to claims.

This is the caller side of the engine. For each approve/reject action it
validates the request, serializes actions on the same claim, evaluates,
persists the claim update and history entry together, and fires hooks.

``actor`` arguments are the acting user (anything with ``id`` and ``role``,
normally flask-login's ``current_user``).
"""

import logging
import threading
import zlib

from claimflow.core.utils.logging_config import log_with_context

from . import hooks
from .engine import DecisionEngine, parse_action
from .exceptions import (
    ClaimNotFoundError, ConcurrentDecisionError, InvalidActionError,
    InvalidStateError, NotAuthorizedError, WorkflowNotFoundError,
)
from .models import ActionStatus, ApproverRole, Claim, ClaimStatus, DecisionOutcome
from .repositories import (
    ApprovalHistoryRepository, ClaimRepository, UserDirectory, WorkflowRepository,
)

logger = logging.getLogger('claimflow.core.approvals.service')

# Striped per-claim locks: serializes actions on one claim within this process.
# Across processes, ClaimRepository.apply_decision's snapshot guard catches the race.
_LOCK_STRIPES = 64
_claim_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]

DECIDER_ROLES = (ApproverRole.MANAGER, ApproverRole.ADMIN)
WORKFLOW_ADMIN_ROLES = (ApproverRole.ADMIN,)


def _claim_lock(claim_id):
    return _claim_locks[zlib.crc32(str(claim_id).encode()) % _LOCK_STRIPES]


def has_role(actor, roles) -> bool:
    """Check the actor's role (enum or raw string) against ``roles``."""
    role = getattr(actor, 'role', None)
    if isinstance(role, ApproverRole):
        role = role.value
    return role in {r.value for r in roles}


class ApprovalService:

    def __init__(self):
        self._claim_repo = ClaimRepository()
        self._workflow_repo = WorkflowRepository()
        self._directory = UserDirectory()
        self._history_repo = ApprovalHistoryRepository()
        self._engine = DecisionEngine(
            self._directory, self._history_repo, self._workflow_repo)

    # ════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════

    def decide(self, claim_id, actor, action, comment=None):
        """Apply an approve/reject action by ``actor`` to a claim and return the Decision.

        1. Actor must be a MANAGER or ADMIN
        2. Validate action (rejections need a comment)
        3. Load claim, must be PENDING
        4. Evaluate; unauthorized actors change nothing
        5. Persist claim update + history entry atomically
        6. Fire hooks
        """
        if not has_role(actor, DECIDER_ROLES):
            raise NotAuthorizedError(claim_id, actor.id, 'Manager access required')

        approver_id = actor.id
        action = parse_action(action)
        comment = (comment or '').strip() or None
        if action is ActionStatus.REJECTED and not comment:
            raise InvalidActionError('Comment required for rejection')

        with _claim_lock(claim_id):
            claim = self._get_pending_claim(claim_id)

            decision = self._engine.evaluate(claim, approver_id, action)
            if not decision.is_authorized:
                raise NotAuthorizedError(claim_id, approver_id, decision.reason)

            if not self._claim_repo.apply_decision(
                    claim, approver_id, action, decision, comment=comment):
                raise ConcurrentDecisionError(claim_id)

        log_with_context(
            logger, logging.INFO, f'Expense {claim_id} {decision.outcome.value}',
            claim_id=claim_id, approver_id=approver_id, action=action.value,
            next_step=decision.next_step_number, reason=decision.reason,
        )
        self._fire_decision_hooks(claim, approver_id, action, decision, comment)
        return decision

    def assign_workflow(self, claim_id, workflow_id, actor):
        """Attach a workflow to a PENDING claim and start it at its first step.

        Admin only. ``workflow_id=None`` detaches the workflow. Once any
        approver has acted on the claim its workflow can no longer be
        replaced or detached.
        """
        if not has_role(actor, WORKFLOW_ADMIN_ROLES):
            raise NotAuthorizedError(claim_id, actor.id, 'Admin access required')

        with _claim_lock(claim_id):
            claim = self._get_pending_claim(claim_id)

            if workflow_id != claim.workflow_id and \
                    self._history_repo.get_approval_history(claim_id):
                raise InvalidStateError(
                    f'Expense {claim_id} already has approval history, workflow cannot be changed')

            first_step = None
            if workflow_id is not None:
                if self._workflow_repo.get_workflow(workflow_id) is None:
                    raise WorkflowNotFoundError(workflow_id)
                steps = self._workflow_repo.get_workflow_steps(workflow_id)
                first_step = steps[0].step_number if steps else None

            self._claim_repo.assign_workflow(claim_id, workflow_id, first_step)

        logger.info(f'Workflow {workflow_id} assigned to expense {claim_id} by {actor.id}')
        updated = Claim(
            id=claim.id, owner_id=claim.owner_id, workflow_id=workflow_id,
            current_step_number=first_step, status=claim.status,
        )
        hooks.fire('claim.workflow_assigned', {
            'claim_id': claim_id, 'workflow_id': workflow_id,
            'current_step_number': first_step, 'assigned_by': actor.id,
        })
        return updated

    def get_next_approvers(self, claim_id):
        """Users who may currently act on the claim."""
        claim = self._claim_repo.get_by_id(claim_id)
        if claim is None:
            raise ClaimNotFoundError(claim_id)
        if claim.status is not ClaimStatus.PENDING:
            return []
        return self._engine.next_approvers(claim)

    # ════════════════════════════════════════════
    # Internal
    # ════════════════════════════════════════════

    def _get_pending_claim(self, claim_id):
        claim = self._claim_repo.get_by_id(claim_id)
        if claim is None:
            raise ClaimNotFoundError(claim_id)
        if claim.status is not ClaimStatus.PENDING:
            raise InvalidStateError(
                f'Expense {claim_id} is {claim.status.value}, cannot decide')
        return claim

    def _fire_decision_hooks(self, claim, approver_id, action, decision, comment):
        payload = {
            'claim_id': claim.id, 'owner_id': claim.owner_id,
            'approver_id': approver_id, 'action': action.value,
            'comment': comment, 'reason': decision.reason,
        }
        hooks.fire('claim.decided', payload)

        if decision.outcome is DecisionOutcome.ADVANCED:
            hooks.fire('claim.step_advanced', {
                **payload,
                'from_step': claim.current_step_number,
                'to_step': decision.next_step_number,
                'next_approver_ids': [u['id'] for u in decision.next_approvers],
            })
        elif decision.outcome is DecisionOutcome.APPROVED:
            hooks.fire('claim.approved', payload)
        elif decision.outcome is DecisionOutcome.REJECTED:
            hooks.fire('claim.rejected', payload)
