"""Simple in-process callback registry for claim approval events.

Usage:
    from claimflow.core.approvals.hooks import on, fire

    on('claim.approved', my_handler)
    fire('claim.approved', {'claim_id': 'e-1', 'approver_id': 'u-7'})

Events (fired by ApprovalService after the decision is persisted):
    claim.decided           - an approve/reject action was applied
    claim.step_advanced     - claim moved to its next step
    claim.approved          - terminal approval
    claim.rejected          - terminal rejection
    claim.workflow_assigned - workflow attached to (or removed from) a claim
"""

import logging

logger = logging.getLogger('claimflow.core.approvals.hooks')

_registry: dict[str, list] = {}


def on(event_type: str, callback):
    """Register a callback for an event type."""
    _registry.setdefault(event_type, []).append(callback)
    logger.debug(f"Registered hook for {event_type}: {getattr(callback, '__name__', callback)}")


def fire(event_type: str, payload: dict):
    """Call all registered callbacks for event_type. Handler errors are logged, not raised."""
    for cb in _registry.get(event_type, []):
        try:
            cb(payload)
        except Exception as e:
            logger.error(
                f"Hook error for {event_type} in {getattr(cb, '__name__', cb)}: {e}",
                exc_info=True,
            )


def clear(event_type: str = None):
    """Clear hooks. If event_type given, clear only that type. Used in tests."""
    if event_type:
        _registry.pop(event_type, None)
    else:
        _registry.clear()
