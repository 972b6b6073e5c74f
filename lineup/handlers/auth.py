from flask import Blueprint, jsonify, request

from lineup.extensions import session_scope
from lineup.utils.jwt_tokens.generate_jwt import create_jwt_token
from lineup.utils.users import accounts

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")


def _token_for(user):
    return create_jwt_token(user_id=user.id, role=user.role, name=user.name)


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        user = accounts.register_user(session, data)
        body = {
            "success": True,
            "message": (
                "Vendor registered successfully. Awaiting admin approval."
                if user.role == "vendor"
                else "User registered successfully"
            ),
            "user": user.to_dict(),
            "token": _token_for(user),
        }
    return jsonify(body), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        user = accounts.authenticate(session, data.get("email"), data.get("password"))
        body = {
            "success": True,
            "message": "Login successful",
            "user": user.to_dict(),
            "token": _token_for(user),
        }
    return jsonify(body), 200


@auth_bp.route("/users", methods=["GET"])
def list_users():
    with session_scope() as session:
        users = [
            user.to_dict()
            for user in accounts.list_users(
                session,
                role=request.args.get("role"),
                active=request.args.get("active"),
            )
        ]
    return jsonify({"success": True, "count": len(users), "users": users}), 200


@auth_bp.route("/user/<int:user_id>", methods=["GET"])
def get_user(user_id):
    with session_scope() as session:
        user = accounts.get_user(session, user_id).to_dict()
    return jsonify({"success": True, "user": user}), 200


@auth_bp.route("/user/<int:user_id>", methods=["PUT"])
def update_user(user_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        user = accounts.update_user(session, user_id, data).to_dict()
    return jsonify({
        "success": True,
        "message": "User updated successfully",
        "user": user,
    }), 200


@auth_bp.route("/user/<int:user_id>/password", methods=["PUT"])
def change_password(user_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        accounts.change_password(
            session, user_id, data.get("currentPassword"), data.get("newPassword")
        )
    return jsonify({"success": True, "message": "Password changed successfully"}), 200


@auth_bp.route("/user/<int:user_id>", methods=["DELETE"])
def deactivate_user(user_id):
    with session_scope() as session:
        user, archived = accounts.deactivate_user(session, user_id)
        body = {
            "success": True,
            "message": "User account deactivated successfully",
            "user": user.to_dict(),
            "deletedMenuItemsCount": archived,
        }
    return jsonify(body), 200


@auth_bp.route("/pending-vendors", methods=["GET"])
def pending_vendors():
    with session_scope() as session:
        vendors = [vendor.to_dict() for vendor in accounts.pending_vendors(session)]
    return jsonify({"success": True, "count": len(vendors), "vendors": vendors}), 200


@auth_bp.route("/approve-vendor/<int:vendor_id>", methods=["PUT"])
def approve_vendor(vendor_id):
    with session_scope() as session:
        vendor = accounts.approve_vendor(session, vendor_id).to_dict()
    return jsonify({
        "success": True,
        "message": "Vendor approved successfully",
        "vendor": vendor,
    }), 200


@auth_bp.route("/reject-vendor/<int:vendor_id>", methods=["PUT", "DELETE"])
def reject_vendor(vendor_id):
    with session_scope() as session:
        deleted = accounts.reject_vendor(session, vendor_id)
    return jsonify({
        "success": True,
        "message": "Vendor rejected and removed",
        "deletedMenuItemsCount": deleted,
    }), 200
