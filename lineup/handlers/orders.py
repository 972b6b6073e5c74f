from flask import Blueprint, current_app, jsonify, request

from lineup.extensions import session_scope
from lineup.utils.helpers.validators import paginate, parse_int
from lineup.utils.orders import order_ledger

orders_bp = Blueprint("orders_bp", __name__, url_prefix="/api/orders")


@orders_bp.route("", methods=["GET"])
def list_orders():
    args = request.args
    page, limit = paginate(
        args.get("page"),
        args.get("limit"),
        default_limit=current_app.config.get("DEFAULT_PAGE_SIZE", 50),
    )

    with session_scope() as session:
        orders, total = order_ledger.list_orders(
            session,
            customer=args.get("customer"),
            vendor=args.get("vendor"),
            status=args.get("status"),
            page=page,
            limit=limit,
            sort_by=args.get("sortBy", "createdAt"),
            sort_order=args.get("sortOrder", "desc"),
        )
        payload = [order.to_dict(include_parties=True) for order in orders]

    return jsonify({
        "success": True,
        "count": len(payload),
        "totalOrders": total,
        "totalPages": order_ledger.total_pages(total, limit),
        "currentPage": page,
        "orders": payload,
    }), 200


@orders_bp.route("/<int:order_id>", methods=["GET"])
def get_order(order_id):
    with session_scope() as session:
        order = order_ledger.get_order(session, order_id).to_dict(include_parties=True)
    return jsonify({"success": True, "order": order}), 200


@orders_bp.route("/customer/<int:customer_id>", methods=["GET"])
def customer_orders(customer_id):
    limit = parse_int(request.args.get("limit"), "limit", minimum=1, maximum=200, default=20)
    with session_scope() as session:
        orders = [
            order.to_dict(include_parties=True)
            for order in order_ledger.customer_orders(
                session, customer_id, status=request.args.get("status"), limit=limit
            )
        ]
    return jsonify({"success": True, "count": len(orders), "orders": orders}), 200


@orders_bp.route("/vendor/<int:vendor_id>", methods=["GET"])
def vendor_orders(vendor_id):
    limit = parse_int(request.args.get("limit"), "limit", minimum=1, maximum=200, default=50)
    with session_scope() as session:
        orders = [
            order.to_dict(include_parties=True)
            for order in order_ledger.vendor_orders(
                session, vendor_id, status=request.args.get("status"), limit=limit
            )
        ]
    return jsonify({"success": True, "count": len(orders), "orders": orders}), 200


@orders_bp.route("/analytics/<int:vendor_id>", methods=["GET"])
def analytics(vendor_id):
    with session_scope() as session:
        report = order_ledger.vendor_analytics(session, vendor_id, days=request.args.get("days", 7))
    return jsonify({"success": True, **report}), 200


@orders_bp.route("", methods=["POST"])
def place_order():
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        order = order_ledger.place_order(session, data).to_dict(include_parties=True)
    return jsonify({
        "success": True,
        "message": "Order placed successfully",
        "order": order,
    }), 201


@orders_bp.route("/<int:order_id>", methods=["PUT"])
def update_order(order_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        order = order_ledger.update_order_details(
            session,
            order_id,
            estimated_time=data.get("estimatedTime"),
            notes=data.get("notes"),
        ).to_dict(include_parties=True)
    return jsonify({
        "success": True,
        "message": "Order updated successfully",
        "order": order,
    }), 200


@orders_bp.route("/<int:order_id>/status", methods=["PUT"])
def update_status(order_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        order = order_ledger.update_status(
            session,
            order_id,
            data.get("status"),
            note=data.get("notes"),
            estimated_time=data.get("estimatedTime"),
            actor=data.get("actor") or "vendor",
        ).to_dict(include_parties=True)
    return jsonify({
        "success": True,
        "message": "Order status updated successfully",
        "order": order,
    }), 200


@orders_bp.route("/<int:order_id>/rating", methods=["PUT"])
def rate_order(order_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        order = order_ledger.rate_order(
            session,
            order_id,
            food=data.get("food"),
            service=data.get("service"),
            overall=data.get("overall"),
            comment=data.get("comment"),
        ).to_dict()
    return jsonify({
        "success": True,
        "message": "Rating added successfully",
        "order": order,
    }), 200


@orders_bp.route("/<int:order_id>/cancel", methods=["PATCH"])
def cancel_order(order_id):
    data = request.get_json(silent=True) or {}
    with session_scope() as session:
        order = order_ledger.cancel_order(
            session,
            order_id,
            reason=data.get("reason"),
            cancelled_by=data.get("cancelledBy") or "customer",
        ).to_dict(include_parties=True)
    return jsonify({
        "success": True,
        "message": "Order cancelled successfully",
        "order": order,
    }), 200


@orders_bp.route("/<int:order_id>", methods=["DELETE"])
def delete_order(order_id):
    with session_scope() as session:
        order_ledger.delete_order(session, order_id)
    return jsonify({"success": True, "message": "Order deleted successfully"}), 200
