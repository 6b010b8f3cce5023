"""
Access code routes: public validation and admin management.
"""
import logging

from flask import Blueprint, request, jsonify

from truthlens.store import StoreError
from truthlens.user_management.services import UserService
from truthlens.utils import parse_datetime
from .repository import AccessCodeRepository
from .validator import AccessCodeValidator

logger = logging.getLogger(__name__)


def create_access_code_routes(
    repository: AccessCodeRepository,
    validator: AccessCodeValidator,
    user_service: UserService,
) -> Blueprint:
    """Create Flask routes for access codes."""
    bp = Blueprint('access_codes', __name__)

    @bp.route("/api/access/validate", methods=["POST"])
    def validate_code():
        """Validate an access code without redeeming it.

        Policy rejections (inactive, expired, exhausted) are normal results
        and return 200; only malformed input and system faults are errors.
        """
        data = request.get_json(silent=True)
        code = data.get("code") if isinstance(data, dict) else None
        if not isinstance(code, str) or not code.strip():
            return jsonify({"valid": False, "error": "Invalid code format"}), 400

        try:
            result = validator.validate(code.strip())
        except Exception as e:
            logger.error(f"Access code validation error: {e}")
            return jsonify({"valid": False, "error": "Internal validation error"}), 500

        if result.internal_error:
            return jsonify(result.to_dict()), 500
        return jsonify(result.to_dict())

    # =====================
    # Admin routes
    # =====================

    @bp.route("/api/admin/access-codes", methods=["GET"])
    def list_codes():
        _, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        try:
            codes = repository.list_all()
        except StoreError as e:
            return jsonify({"error": "Failed to list access codes", "message": str(e)}), 500
        return jsonify({"codes": [c.to_admin_dict() for c in codes]})

    @bp.route("/api/admin/access-codes", methods=["POST"])
    def create_code():
        admin_id, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        data = request.get_json(silent=True) or {}
        try:
            usage_limit = int(data.get("usage_limit", 0))
            expires_at = parse_datetime(data.get("expires_at"))
        except (TypeError, ValueError):
            return jsonify({"error": "Invalid usage_limit or expires_at"}), 400

        try:
            access_code = repository.create(
                code=str(data.get("code", "")),
                tier=str(data.get("tier", "")),
                code_type=str(data.get("type", "general")),
                usage_limit=usage_limit,
                expires_at=expires_at,
                admin_id=admin_id,
            )
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        except StoreError as e:
            return jsonify({"error": "Failed to create access code", "message": str(e)}), 500

        return jsonify({"status": "ok", "code": access_code.to_admin_dict()}), 201

    @bp.route("/api/admin/access-codes/<code_id>/toggle", methods=["POST"])
    def toggle_code(code_id):
        _, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        data = request.get_json(silent=True) or {}
        if "active" not in data:
            return jsonify({"error": "Missing active flag"}), 400

        if repository.get(code_id) is None:
            return jsonify({"error": "Access code not found"}), 404
        access_code = repository.set_active(code_id, bool(data["active"]))
        return jsonify({"status": "ok", "code": access_code.to_admin_dict()})

    @bp.route("/api/admin/access-codes/<code_id>", methods=["DELETE"])
    def delete_code(code_id):
        _, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        if not repository.delete(code_id):
            return jsonify({"error": "Access code not found"}), 404
        return jsonify({"status": "ok"})

    return bp
