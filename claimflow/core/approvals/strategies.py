"""
Approval Strategies

One strategy per workflow rule type, all behind ``ApprovalStrategy.evaluate``.
Each receives an EvaluationContext for an authorized APPROVED action on a
claim whose workflow has at least one step, and returns a Decision.

Adding a rule type means adding a RuleType member and registering a
strategy for it; the engine's dispatch does not change.
"""

import logging
from abc import ABC, abstractmethod
from functools import cached_property
from typing import Dict, List, Optional

from .models import ActionStatus, Decision, RuleType

logger = logging.getLogger('claimflow.core.approvals.strategies')


class EvaluationContext:
    """Inputs for one evaluation. History is loaded at most once, on first use."""

    def __init__(self, claim, workflow, steps, approver_id, resolver, history_source,
                 default_required_percentage=50):
        self.claim = claim
        self.workflow = workflow
        self.steps = steps
        self.approver_id = approver_id
        self.resolver = resolver
        self.default_required_percentage = default_required_percentage
        self._history_source = history_source

    @cached_property
    def history(self) -> List:
        return list(self._history_source.get_approval_history(self.claim.id))

    @property
    def current_step_number(self) -> int:
        return self.claim.current_step_number or 1

    def approvers_for(self, step) -> List[Dict]:
        return self.resolver.resolve(step, self.claim.owner_id)


def advance_or_finish(ctx: EvaluationContext, exhausted: Decision,
                      reason: Optional[str] = None) -> Decision:
    """Move to the step after the current one, or return ``exhausted`` if there is none."""
    next_step_number = ctx.current_step_number + 1
    if next_step_number > len(ctx.steps):
        return exhausted

    next_step = ctx.steps[next_step_number - 1]
    return Decision.advance(
        next_step_number,
        ctx.approvers_for(next_step),
        reason or f'Moving to step {next_step_number}',
    )


class ApprovalStrategy(ABC):
    """Completion rule for one workflow rule type."""

    rule_type: RuleType

    @abstractmethod
    def evaluate(self, ctx: EvaluationContext) -> Decision:
        pass


_registry: Dict[RuleType, ApprovalStrategy] = {}


def register_strategy(cls):
    """Class decorator: instantiate and register a strategy under its rule_type."""
    _registry[cls.rule_type] = cls()
    return cls


def get_strategy(rule_type) -> Optional[ApprovalStrategy]:
    """Strategy for ``rule_type``, or None when the rule type is unknown."""
    if not isinstance(rule_type, RuleType):
        return None
    return _registry.get(rule_type)


@register_strategy
class SequentialStrategy(ApprovalStrategy):
    """One authorized approval per step; the last step's approval completes the claim."""

    rule_type = RuleType.SEQUENTIAL

    def evaluate(self, ctx):
        return advance_or_finish(ctx, Decision.approve('All steps completed'))


def _format_pct(value) -> str:
    return f'{value:g}%'


@register_strategy
class PercentageStrategy(ApprovalStrategy):
    """Quorum of approvals over every approver resolvable across all steps."""

    rule_type = RuleType.PERCENTAGE

    def evaluate(self, ctx):
        required = ctx.workflow.required_percentage or ctx.default_required_percentage

        # The action being evaluated is not in history yet
        approved_count = sum(
            1 for entry in ctx.history if entry.status is ActionStatus.APPROVED
        ) + 1

        # NOTE: summed per step without dedup; a user resolved by two steps counts twice
        total_approvers = sum(len(ctx.approvers_for(step)) for step in ctx.steps)

        if total_approvers == 0:
            logger.warning(
                f'Workflow {ctx.workflow.id} resolves no approvers for expense {ctx.claim.id}'
            )
            return Decision.reject('No approvers available - workflow cannot proceed')

        percentage = approved_count / total_approvers * 100
        met = percentage >= required

        if met:
            return Decision.approve(f'{_format_pct(percentage)} approval threshold met')

        return advance_or_finish(
            ctx,
            Decision.reject(f'Final percentage: {_format_pct(percentage)}'),
            f'Current approval: {_format_pct(percentage)}, need {_format_pct(required)}',
        )


@register_strategy
class SpecificApproverStrategy(ApprovalStrategy):
    """The configured approver's approval is required, and sufficient on its own."""

    rule_type = RuleType.SPECIFIC_APPROVER

    def evaluate(self, ctx):
        specific_approver_id = ctx.workflow.specific_approver_id

        if ctx.approver_id == specific_approver_id:
            return Decision.approve('Approved by specific approver')

        return advance_or_finish(
            ctx,
            Decision.reject('Specific approver did not approve'),
            f'Waiting for specific approver (User ID: {specific_approver_id})',
        )


@register_strategy
class HybridStrategy(ApprovalStrategy):
    """Specific-approver gate in front of percentage or sequential evaluation.

    While a configured specific approver has not approved, the claim only
    advances step by step and is rejected when steps run out. Once the gate
    is satisfied (or none is configured), ``usePercentage`` picks the
    secondary rule.
    """

    rule_type = RuleType.HYBRID

    def evaluate(self, ctx):
        specific_approver_id = ctx.workflow.specific_approver_id

        if specific_approver_id and ctx.approver_id == specific_approver_id:
            return Decision.approve('Approved by specific approver (hybrid rule)')

        if specific_approver_id and not self._has_approved(ctx, specific_approver_id):
            return advance_or_finish(
                ctx,
                Decision.reject(
                    'Workflow complete but specific approver has not approved - rejected'),
                f'Waiting for specific approver (User ID: {specific_approver_id}) '
                f'in hybrid workflow',
            )

        secondary = RuleType.PERCENTAGE if ctx.workflow.use_percentage else RuleType.SEQUENTIAL
        return get_strategy(secondary).evaluate(ctx)

    @staticmethod
    def _has_approved(ctx, user_id) -> bool:
        return any(
            entry.approver_id == user_id and entry.status is ActionStatus.APPROVED
            for entry in ctx.history
        )
