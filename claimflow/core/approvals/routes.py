"""API routes for expense approvals."""

import logging
from flask import jsonify
from flask_login import login_required, current_user

from . import approvals_bp
from .exceptions import (
    ClaimNotFoundError, ConcurrentDecisionError, InvalidActionError,
    InvalidStateError, NotAuthorizedError, WorkflowNotFoundError,
)
from .models import public_user
from .service import ApprovalService
from claimflow.core.utils.api_helpers import get_json_or_error, safe_error_response

logger = logging.getLogger('claimflow.core.approvals.routes')

_service = ApprovalService()


@approvals_bp.route('/api/expenses/<claim_id>/approve', methods=['POST'])
@login_required
def api_decide(claim_id):
    """Approve or reject an expense as the current user."""
    data, error = get_json_or_error()
    if error:
        return error

    try:
        decision = _service.decide(
            claim_id, current_user, data.get('status'),
            comment=data.get('comment'),
        )
        return jsonify({'success': True, 'decision': decision.to_dict()})
    except InvalidActionError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except NotAuthorizedError as e:
        return jsonify({'success': False, 'error': str(e)}), 403
    except ClaimNotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404
    except (InvalidStateError, ConcurrentDecisionError) as e:
        return jsonify({'success': False, 'error': str(e)}), 409
    except Exception as e:
        return safe_error_response(e)


@approvals_bp.route('/api/expenses/<claim_id>/approvers', methods=['GET'])
@login_required
def api_next_approvers(claim_id):
    """Users who may act on the expense's current step."""
    try:
        approvers = _service.get_next_approvers(claim_id)
        return jsonify({'success': True, 'approvers': [public_user(u) for u in approvers]})
    except ClaimNotFoundError as e:
        return jsonify({'success': False, 'error': str(e)}), 404
    except Exception as e:
        return safe_error_response(e)


@approvals_bp.route('/api/expenses/<claim_id>/workflow', methods=['PUT'])
@login_required
def api_assign_workflow(claim_id):
    """Attach a workflow to a pending expense (admin only, ``workflow_id: null`` detaches it)."""
    data, error = get_json_or_error()
    if error:
        return error

    try:
        claim = _service.assign_workflow(claim_id, data.get('workflow_id'), current_user)
        return jsonify({'success': True, 'expense': claim.to_dict()})
    except NotAuthorizedError as e:
        return jsonify({'success': False, 'error': str(e)}), 403
    except (ClaimNotFoundError, WorkflowNotFoundError) as e:
        return jsonify({'success': False, 'error': str(e)}), 404
    except InvalidStateError as e:
        return jsonify({'success': False, 'error': str(e)}), 409
    except Exception as e:
        return safe_error_response(e)
