"""
User routes for subscription status and notifications.
"""
from flask import Blueprint, request, jsonify

from truthlens.quota.models import UserTier, get_tier_features
from .services import UserService


def create_user_routes(user_service: UserService) -> Blueprint:
    """Create user management routes."""
    bp = Blueprint('user_management', __name__)

    @bp.route("/api/subscription", methods=["GET"])
    def get_subscription():
        """Get the current user's subscription and tier features."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        tier = user_service.get_effective_tier(uid)
        subscription = user_service.get_subscription(uid)
        features = get_tier_features(tier)
        return jsonify({
            "tier": tier,
            "subscription": subscription.to_json(),
            "features": {
                "daily_scan_limit": features.daily_scan_limit,
                "multi_scan_limit": features.multi_scan_limit,
                "history_limit": features.history_limit,
                "recommendation_limit": features.recommendation_limit,
                "ai_chat_limit": features.ai_chat_limit,
                "product_compare": features.product_compare,
                "ai_truth_detector": features.ai_truth_detector,
                "pc_builder": features.pc_builder,
            },
            "is_admin": user_service.is_admin_user(uid),
        })

    @bp.route("/api/notifications", methods=["GET"])
    def list_notifications():
        """List the current user's notifications, newest first."""
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        notifications = user_service.list_notifications(uid)
        return jsonify({
            "notifications": [n.to_json() for n in notifications],
            "unread": sum(1 for n in notifications if not n.read),
        })

    @bp.route("/api/notifications/<notification_id>/read", methods=["POST"])
    def mark_notification_read(notification_id):
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        if not user_service.mark_notification_read(uid, notification_id):
            return jsonify({"error": "Notification not found"}), 404
        return jsonify({"status": "ok"})

    @bp.route("/api/admin/users/<target_uid>/tier", methods=["POST"])
    def set_user_tier(target_uid):
        """Set a user's tier (admin)."""
        _, error, status = user_service.require_admin_json()
        if error:
            return jsonify(error), status

        data = request.get_json(silent=True) or {}
        tier = str(data.get("tier", "")).strip().lower()
        if not UserTier.is_valid(tier):
            return jsonify({"error": f"Unknown tier: {tier}"}), 400

        subscription = user_service.set_tier(target_uid, tier)
        return jsonify({"status": "ok", "subscription": subscription.to_json()})

    return bp
