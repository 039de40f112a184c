"""DecisionEngine: decides the outcome of one approve/reject action.

Given a claim snapshot, the acting approver and the action, it returns a
Decision (approve, reject, advance to step N, or unauthorized) plus the
users authorized at the resulting step. It reads the Directory, History
and Workflow store collaborators and writes nothing; persisting the
outcome is the caller's job (see ApprovalService).
"""

import logging

from claimflow.config import get_config
from claimflow.core.utils.logging_config import log_with_context

from .exceptions import InvalidActionError
from .models import ActionStatus, Decision
from .resolver import ApproverResolver
from .strategies import EvaluationContext, get_strategy

logger = logging.getLogger('claimflow.core.approvals.engine')

UNAUTHORIZED_REASON = 'Unauthorized: You are not an authorized approver for this step'


def parse_action(action) -> ActionStatus:
    """Coerce "APPROVED"/"REJECTED" into ActionStatus; anything else is an InvalidActionError."""
    if isinstance(action, ActionStatus):
        return action
    try:
        return ActionStatus(action)
    except ValueError:
        raise InvalidActionError(
            f'Valid status required (APPROVED or REJECTED), got {action!r}') from None


class DecisionEngine:

    def __init__(self, directory, history, workflows, config=None):
        """
        Args:
            directory: provides get_user, get_users_by_company, get_user_manager
            history: provides get_approval_history(claim_id)
            workflows: provides get_workflow(id), get_workflow_steps(workflow_id)
            config: ClaimflowConfig, defaults to the environment config
        """
        self._resolver = ApproverResolver(directory)
        self._history = history
        self._workflows = workflows
        self._config = config or get_config()

    # ════════════════════════════════════════════
    # Public API
    # ════════════════════════════════════════════

    def evaluate(self, claim, approver_id, action) -> Decision:
        """Decide the outcome of ``approver_id`` taking ``action`` on ``claim``.

        1. Reject: authorized approvers always end the claim
        2. No workflow: auto-approve
        3. Missing workflow or no steps: approve (fail open)
        4. Authorization, then the workflow's rule-type strategy
        """
        action = parse_action(action)

        if action is ActionStatus.REJECTED:
            steps = self._load_steps(claim)
            if not self._resolver.is_authorized(claim, steps, approver_id):
                return self._unauthorized(claim, approver_id, action)
            return self._log(claim, approver_id, action,
                             Decision.reject('Expense rejected by approver'))

        if not claim.workflow_id:
            return self._log(claim, approver_id, action,
                             Decision.approve('No workflow assigned - auto-approved'))

        workflow = self._workflows.get_workflow(claim.workflow_id)
        if workflow is None:
            logger.warning(f'Workflow {claim.workflow_id} for expense {claim.id} not found, auto-approving')
            return self._log(claim, approver_id, action,
                             Decision.approve('Workflow not found - auto-approved'))

        steps = self._load_steps(claim)
        if not steps:
            logger.warning(f'Workflow {workflow.id} has no steps, auto-approving expense {claim.id}')
            return self._log(claim, approver_id, action,
                             Decision.approve('No workflow steps - auto-approved'))

        if not self._resolver.is_authorized(claim, steps, approver_id):
            return self._unauthorized(claim, approver_id, action)

        strategy = get_strategy(workflow.rule_type)
        if strategy is None:
            logger.warning(
                f'Unknown rule type {workflow.rule_type!r} on workflow {workflow.id}, auto-approving')
            return self._log(claim, approver_id, action,
                             Decision.approve('Unknown rule type - auto-approved'))

        ctx = EvaluationContext(
            claim, workflow, steps, approver_id,
            resolver=self._resolver,
            history_source=self._history,
            default_required_percentage=self._config.DEFAULT_REQUIRED_PERCENTAGE,
        )
        return self._log(claim, approver_id, action, strategy.evaluate(ctx))

    def is_authorized(self, claim, approver_id) -> bool:
        """Check if ``approver_id`` may act on the claim's current step."""
        return self._resolver.is_authorized(claim, self._load_steps(claim), approver_id)

    def next_approvers(self, claim):
        """Users who may act on the claim's current step."""
        return self._resolver.next_approvers(claim, self._load_steps(claim))

    # ════════════════════════════════════════════
    # Internal
    # ════════════════════════════════════════════

    def _load_steps(self, claim):
        if not claim.workflow_id:
            return []
        return list(self._workflows.get_workflow_steps(claim.workflow_id))

    def _unauthorized(self, claim, approver_id, action):
        log_with_context(
            logger, logging.INFO, 'Unauthorized approval attempt',
            claim_id=claim.id, approver_id=approver_id, action=action.value,
            step=claim.current_step_number,
        )
        return Decision.unauthorized(UNAUTHORIZED_REASON)

    def _log(self, claim, approver_id, action, decision):
        log_with_context(
            logger, logging.DEBUG, f'Expense {claim.id}: {decision.reason}',
            claim_id=claim.id, approver_id=approver_id, action=action.value,
            outcome=decision.outcome.value, next_step=decision.next_step_number,
        )
        return decision
