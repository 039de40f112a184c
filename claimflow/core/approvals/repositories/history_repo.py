"""Repository for the approval_history table. Read side only; entries are
appended by ClaimRepository.apply_decision in the same transaction as the
claim update."""

from typing import List

from claimflow.core.base_repository import BaseRepository

from ..models import ApprovalHistoryEntry


class ApprovalHistoryRepository(BaseRepository):

    def get_approval_history(self, claim_id) -> List[ApprovalHistoryEntry]:
        """All actions recorded for a claim, oldest first."""
        rows = self.query_all('''
            SELECT * FROM approval_history
            WHERE expense_id = %s
            ORDER BY created_at
        ''', (claim_id,))
        return [ApprovalHistoryEntry.from_row(r) for r in rows]
