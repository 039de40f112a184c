"""Resolves which users may act on a workflow step.

Approvers are named by designation, not identity:

    ByUser(id)           -> that user, if it exists
    ByRole(MANAGER)      -> the claim owner's direct manager, if any
    ByRole(<other role>) -> every user in the owner's company holding that role
    no designation       -> nobody

Resolution reads the Directory at call time and is never cached, so
role or reporting-line changes take effect on the next action.
"""

import logging

from .models import ApproverRole, ByRole, ByUser

logger = logging.getLogger('claimflow.core.approvals.resolver')


def find_step(steps, step_number):
    """Return the step with ``step_number`` from ``steps``, or None."""
    for step in steps:
        if step.step_number == step_number:
            return step
    return None


class ApproverResolver:

    def __init__(self, directory):
        self._directory = directory

    def resolve(self, step, owner_id):
        """List the users entitled to act on ``step`` for a claim owned by ``owner_id``."""
        approver = step.approver if step is not None else None

        if isinstance(approver, ByUser):
            user = self._directory.get_user(approver.user_id)
            return [user] if user else []

        if isinstance(approver, ByRole):
            if approver.role is ApproverRole.MANAGER:
                manager = self._directory.get_user_manager(owner_id)
                return [manager] if manager else []

            owner = self._directory.get_user(owner_id)
            if not owner:
                return []
            return [
                u for u in self._directory.get_users_by_company(owner['company_id'])
                if u.get('role') == approver.role_name
            ]

        logger.debug(f"Step {getattr(step, 'step_number', None)} has no approver designation")
        return []

    def is_authorized(self, claim, steps, approver_id):
        """Check if ``approver_id`` may act on the claim's current step.

        A claim with no workflow or no current step is open to any approver,
        as is a claim whose current step number matches none of ``steps``.
        """
        if not claim.workflow_id or not claim.current_step_number:
            return True

        step = find_step(steps, claim.current_step_number)
        if step is None:
            logger.warning(
                f'Expense {claim.id} points at missing step {claim.current_step_number} '
                f'of workflow {claim.workflow_id}'
            )
            return True

        return any(u['id'] == approver_id for u in self.resolve(step, claim.owner_id))

    def next_approvers(self, claim, steps):
        """Users who may act on the claim's current step (empty if none is pending)."""
        if not claim.workflow_id or not claim.current_step_number:
            return []
        step = find_step(steps, claim.current_step_number)
        if step is None:
            return []
        return self.resolve(step, claim.owner_id)
