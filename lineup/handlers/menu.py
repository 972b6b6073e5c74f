from flask import Blueprint, current_app, jsonify, request

from lineup.extensions import session_scope
from lineup.utils.catalog import menu_catalog
from lineup.utils.helpers.validators import paginate, parse_bool
from lineup.utils.orders.order_ledger import total_pages

menu_bp = Blueprint("menu_bp", __name__, url_prefix="/api/menu")


@menu_bp.route("", methods=["GET"])
def list_menu():
    args = request.args
    page, limit = paginate(
        args.get("page"),
        args.get("limit"),
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 50),
    )

    with session_scope() as session:
        items, total = menu_catalog.list_menu_items(
            session,
            category=args.get("category"),
            vendor=args.get("vendor"),
            search=args.get("search"),
            sort_by=args.get("sortBy"),
            page=page,
            limit=limit,
            include_inactive=parse_bool(args.get("includeInactive")),
            include_unavailable=parse_bool(args.get("includeUnavailable")),
        )
        payload = [item.to_dict(include_vendor=True) for item in items]

    return jsonify({
        "success": True,
        "count": len(payload),
        "totalItems": total,
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "items": payload,
    }), 200


@menu_bp.route("/categories", methods=["GET"])
def categories():
    with session_scope() as session:
        names = menu_catalog.list_categories(session)
    return jsonify({"success": True, "categories": names}), 200


@menu_bp.route("/vendor/<int:vendor_id>", methods=["GET"])
def vendor_menu(vendor_id):
    include_inactive = parse_bool(request.args.get("includeInactive"))
    with session_scope() as session:
        items = [
            item.to_dict()
            for item in menu_catalog.vendor_menu(session, vendor_id, include_inactive=include_inactive)
        ]
    return jsonify({"success": True, "count": len(items), "items": items}), 200


@menu_bp.route("/<int:item_id>", methods=["GET"])
def get_item(item_id):
    with session_scope() as session:
        item = menu_catalog.get_menu_item(session, item_id).to_dict(include_vendor=True)
    return jsonify({"success": True, "item": item}), 200


@menu_bp.route("", methods=["POST"])
def create_item():
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        item = menu_catalog.create_menu_item(session, data.get("vendor"), data).to_dict(include_vendor=True)
    return jsonify({
        "success": True,
        "message": "Menu item created successfully",
        "item": item,
    }), 201


@menu_bp.route("/<int:item_id>", methods=["PUT"])
def update_item(item_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        item = menu_catalog.update_menu_item(session, item_id, data).to_dict(include_vendor=True)
    return jsonify({
        "success": True,
        "message": "Menu item updated successfully",
        "item": item,
    }), 200


@menu_bp.route("/<int:item_id>/stock", methods=["PUT"])
def update_stock(item_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        item = menu_catalog.adjust_stock(
            session, item_id, data.get("quantity"), data.get("operation")
        ).to_dict()
    return jsonify({
        "success": True,
        "message": "Stock updated successfully",
        "item": item,
    }), 200


@menu_bp.route("/<int:item_id>/rating", methods=["PUT"])
def rate_item(item_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        item = menu_catalog.record_rating(session, item_id, data.get("rating")).to_dict()
    return jsonify({
        "success": True,
        "message": "Rating added successfully",
        "item": item,
    }), 200


@menu_bp.route("/<int:item_id>/toggle", methods=["PUT"])
def toggle_item(item_id):
    with session_scope() as session:
        item = menu_catalog.toggle_availability(session, item_id).to_dict()
    state = "available" if item["available"] else "unavailable"
    return jsonify({
        "success": True,
        "message": f"Menu item marked as {state}",
        "item": item,
    }), 200


@menu_bp.route("/<int:item_id>", methods=["DELETE"])
def delete_item(item_id):
    with session_scope() as session:
        item = menu_catalog.soft_delete_menu_item(session, item_id).to_dict()
    return jsonify({
        "success": True,
        "message": "Menu item deleted successfully",
        "item": item,
    }), 200


@menu_bp.route("/<int:item_id>/restore", methods=["PUT"])
def restore_item(item_id):
    with session_scope() as session:
        item = menu_catalog.restore_menu_item(session, item_id).to_dict()
    return jsonify({
        "success": True,
        "message": "Menu item restored successfully",
        "item": item,
    }), 200
