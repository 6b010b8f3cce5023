"""
Quota routes: quota display and the rate-limited scan endpoint.
"""
import logging

from flask import Blueprint, request, jsonify

from truthlens.store import StoreError
from truthlens.user_management.services import UserService
from .manager import QuotaManager
from .models import QuotaAction

logger = logging.getLogger(__name__)


def create_quota_routes(quota_manager: QuotaManager, user_service: UserService) -> Blueprint:
    """Create quota routes."""
    bp = Blueprint('quota', __name__)

    @bp.route("/api/quota", methods=["GET"])
    def get_quota():
        """Get the current user's daily quota."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        action_name = request.args.get("action", QuotaAction.SCAN.value)
        try:
            action = QuotaAction(action_name)
        except ValueError:
            return jsonify({"error": f"Unknown action: {action_name}"}), 400

        try:
            tier = user_service.get_effective_tier(uid)
            result = quota_manager.check_limit(uid, tier, action)
            return jsonify({"success": True, "quota": result.to_dict()})
        except Exception as e:
            logger.error(f"Failed to get quota for {uid}: {e}")
            return jsonify({
                "error": "Failed to get quota information",
                "message": str(e)
            }), 500

    @bp.route("/api/scan", methods=["POST"])
    def scan():
        """Record a product scan if the user still has quota today."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        data = request.get_json(silent=True) or {}
        barcode = str(data.get("barcode", "")).strip()
        if not barcode:
            return jsonify({"error": "Barcode is required"}), 400

        try:
            tier = user_service.get_effective_tier(uid)
            result, scan_id = quota_manager.consume(uid, tier, QuotaAction.SCAN, {"barcode": barcode})
            if scan_id is None:
                return jsonify({
                    "error": result.reason or "Daily limit exceeded",
                    "message": result.message,
                    "quota": result.to_dict()
                }), 429

            remaining = result.remaining if result.limit is None else max(0, result.remaining - 1)
            return jsonify({
                "success": True,
                "scan_id": scan_id,
                "barcode": barcode,
                "remaining": remaining,
                "limit": result.limit,
                "message": quota_manager.get_limit_message(tier, remaining),
            })
        except StoreError as e:
            logger.error(f"Scan failed for {uid}: {e}")
            return jsonify({"error": "Server error", "message": "Could not record scan"}), 500

    return bp
