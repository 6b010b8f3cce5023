"""
Upload routes: student proof upload and admin file access.
"""
import logging

from flask import Blueprint, request, jsonify, send_file

from truthlens.user_management.services import UserService
from .services import UploadService, UploadRejectedError

logger = logging.getLogger(__name__)


def create_upload_routes(upload_service: UploadService, user_service: UserService) -> Blueprint:
    """Create Flask routes for uploads."""
    bp = Blueprint('uploads', __name__)

    @bp.route("/api/uploads/student-proof", methods=["POST"])
    def upload_student_proof():
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401

        if "file" not in request.files:
            return jsonify({"error": "No file uploaded"}), 400
        file = request.files["file"]
        if not file.filename:
            return jsonify({"error": "No file selected"}), 400

        try:
            stored = upload_service.save_upload(uid, file.filename, file.read())
        except UploadRejectedError as e:
            return jsonify({"error": str(e)}), 400
        except OSError as e:
            logger.error(f"Failed to store upload for {uid}: {e}")
            return jsonify({"error": "Failed to store file", "message": str(e)}), 500

        return jsonify({"success": True, **stored.to_dict()})

    @bp.route("/api/uploads/files/<dir_name>/<stored_name>", methods=["GET"])
    def get_upload(dir_name, stored_name):
        uid, error = user_service.require_auth_json()
        if error:
            return jsonify(error), 401
        # Owners and admins only
        if upload_service.user_dir_name(uid) != dir_name and not user_service.is_admin_user(uid):
            return jsonify({"error": "forbidden"}), 403

        path = upload_service.resolve_path(dir_name, stored_name)
        if path is None:
            return jsonify({"error": "File not found"}), 404
        return send_file(path)

    return bp
