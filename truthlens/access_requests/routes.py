"""
Access request routes: code redemption and admin review.
"""
import logging

from flask import Blueprint, request, jsonify
from pydantic import ValidationError

from truthlens.store import StoreError
from truthlens.user_management.services import UserService
from .models import (
    AccessRequestSubmission,
    RequestAlreadyProcessedError,
    RequestNotFoundError,
    RequestStatus,
)
from .services import AccessRequestService

logger = logging.getLogger(__name__)


def create_access_request_routes(service: AccessRequestService, user_service: UserService) -> Blueprint:
    """Create Flask routes for access requests."""
    bp = Blueprint('access_requests', __name__)

    @bp.route("/api/access/submit", methods=["POST"])
    def submit_request():
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"success": False, "error": "Invalid request payload"}), 400
        if isinstance(data.get("code"), str):
            data["code"] = data["code"].strip()

        try:
            submission = AccessRequestSubmission.model_validate(data)
        except ValidationError as e:
            return jsonify({"success": False, "error": "Invalid request payload", "message": str(e)}), 400

        try:
            result = service.submit(uid, submission)
        except Exception as e:
            logger.error(f"Access request submission error for {uid}: {e}")
            return jsonify({"success": False, "error": "Submission failed", "message": str(e)}), 500

        if result.success:
            return jsonify(result.to_dict())
        if result.internal_error:
            return jsonify(result.to_dict()), 500
        return jsonify(result.to_dict()), 409

    @bp.route("/api/access/requests", methods=["GET"])
    def my_requests():
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        try:
            requests_ = service.list_for_user(uid)
        except StoreError as e:
            return jsonify({"error": "Failed to load access requests", "message": str(e)}), 500
        return jsonify({"requests": [r.to_json() for r in requests_]})

    # =====================
    # Admin routes
    # =====================

    @bp.route("/api/admin/access-requests", methods=["GET"])
    def list_requests():
        _, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        status_filter = request.args.get("status") or None
        if status_filter and status_filter not in [s.value for s in RequestStatus]:
            return jsonify({"error": f"Unknown status: {status_filter}"}), 400

        try:
            requests_ = service.list_all(status_filter)
        except StoreError as e:
            return jsonify({"error": "Failed to list access requests", "message": str(e)}), 500
        return jsonify({"requests": [r.to_json() for r in requests_]})

    @bp.route("/api/admin/access-requests/<request_id>/approve", methods=["POST"])
    def approve_request(request_id):
        admin_id, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        try:
            access_request = service.approve(request_id, admin_id)
        except RequestNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except RequestAlreadyProcessedError as e:
            return jsonify({"error": str(e)}), 409
        except StoreError as e:
            logger.error(f"Failed to approve access request {request_id}: {e}")
            return jsonify({"error": "Failed to approve access request", "message": str(e)}), 500

        return jsonify({"status": "ok", "request": access_request.to_json()})

    @bp.route("/api/admin/access-requests/<request_id>/deny", methods=["POST"])
    def deny_request(request_id):
        admin_id, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        data = request.get_json(silent=True) or {}
        try:
            access_request = service.deny(request_id, admin_id, str(data.get("reason") or ""))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except RequestNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except RequestAlreadyProcessedError as e:
            return jsonify({"error": str(e)}), 409
        except StoreError as e:
            logger.error(f"Failed to deny access request {request_id}: {e}")
            return jsonify({"error": "Failed to deny access request", "message": str(e)}), 500

        return jsonify({"status": "ok", "request": access_request.to_json()})

    return bp
