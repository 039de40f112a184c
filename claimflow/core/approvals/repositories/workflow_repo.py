"""Workflow store: approval_workflows and workflow_steps tables."""

from typing import List, Optional

from claimflow.core.base_repository import BaseRepository

from ..models import Workflow, WorkflowStep


class WorkflowRepository(BaseRepository):

    def get_workflow(self, workflow_id) -> Optional[Workflow]:
        row = self.query_one(
            'SELECT * FROM approval_workflows WHERE id = %s', (workflow_id,)
        )
        return Workflow.from_row(row) if row else None

    def get_workflow_steps(self, workflow_id) -> List[WorkflowStep]:
        """Steps of a workflow ordered by step_number ascending."""
        rows = self.query_all('''
            SELECT * FROM workflow_steps
            WHERE workflow_id = %s
            ORDER BY step_number ASC
        ''', (workflow_id,))
        return [WorkflowStep.from_row(r) for r in rows]
