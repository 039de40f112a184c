"""Approval collaborators backed by PostgreSQL."""
from .directory_repo import UserDirectory
from .history_repo import ApprovalHistoryRepository
from .workflow_repo import WorkflowRepository
from .claim_repo import ClaimRepository

__all__ = [
    'UserDirectory', 'ApprovalHistoryRepository',
    'WorkflowRepository', 'ClaimRepository',
]
