"""Repository for the approval-related columns of the expenses table."""

import logging
from typing import Optional

from claimflow.core.base_repository import BaseRepository

from ..models import Claim, ClaimStatus

logger = logging.getLogger('claimflow.core.approvals.claim_repo')


class ClaimRepository(BaseRepository):

    def get_by_id(self, claim_id) -> Optional[Claim]:
        row = self.query_one('''
            SELECT id, user_id, workflow_id, current_step_number, status
            FROM expenses WHERE id = %s
        ''', (claim_id,))
        return Claim.from_row(row) if row else None

    def assign_workflow(self, claim_id, workflow_id, current_step_number) -> bool:
        return self.execute('''
            UPDATE expenses SET workflow_id = %s, current_step_number = %s
            WHERE id = %s
        ''', (workflow_id, current_step_number, claim_id)) > 0

    def apply_decision(self, claim, approver_id, action, decision, comment=None) -> bool:
        """Persist a decision and its history entry in one transaction.

        The update only matches while the claim still looks like ``claim``
        (PENDING, same workflow and step). Returns False without writing
        anything if another decision got there first.
        """
        status = decision.claim_status
        step_number = decision.next_step_number if not decision.completed else None

        def _work(cursor):
            cursor.execute('''
                UPDATE expenses SET status = %s, current_step_number = %s
                WHERE id = %s
                  AND status = %s
                  AND workflow_id IS NOT DISTINCT FROM %s
                  AND current_step_number IS NOT DISTINCT FROM %s
            ''', (
                status.value, step_number, claim.id,
                ClaimStatus.PENDING.value, claim.workflow_id, claim.current_step_number,
            ))
            if cursor.rowcount == 0:
                logger.warning(
                    f'Lost update on expense {claim.id}: expected PENDING at step '
                    f'{claim.current_step_number}, decision by {approver_id} discarded'
                )
                return False
            cursor.execute('''
                INSERT INTO approval_history (expense_id, approver_id, status, comment)
                VALUES (%s, %s, %s, %s)
            ''', (claim.id, approver_id, action.value, comment))
            return True

        return self.execute_many(_work)
