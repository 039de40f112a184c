"""
Approval Exceptions

Raised by the caller-side ApprovalService. The DecisionEngine itself
reports unauthorized actors and unresolvable configuration as Decisions.
"""


class ApprovalError(Exception):
    """Base error for the approval module."""


class InvalidActionError(ApprovalError, ValueError):
    """Action is not APPROVED/REJECTED, or is missing required data."""


class ClaimNotFoundError(ApprovalError):
    """Raised when a claim does not exist."""
    def __init__(self, claim_id):
        self.claim_id = claim_id
        super().__init__(f"Expense {claim_id} not found")


class InvalidStateError(ApprovalError):
    """Claim is not in a state that accepts this operation."""


class NotAuthorizedError(ApprovalError):
    """Acting user is not an authorized approver for the current step."""
    def __init__(self, claim_id, approver_id, reason=None):
        self.claim_id = claim_id
        self.approver_id = approver_id
        super().__init__(
            reason or f"User {approver_id} is not authorized to act on expense {claim_id}"
        )


class ConcurrentDecisionError(ApprovalError):
    """Claim changed between evaluation and persistence; the action was not applied."""
    def __init__(self, claim_id):
        self.claim_id = claim_id
        super().__init__(
            f"Expense {claim_id} was modified by another approver, reload and retry"
        )


class WorkflowNotFoundError(ApprovalError):
    """Raised when assigning a workflow that does not exist."""
    def __init__(self, workflow_id):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} not found")
