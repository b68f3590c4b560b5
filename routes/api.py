"""Storefront API: catalog, cart, checkout and order tracking."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from flask import Blueprint, current_app, jsonify, request, session


api_bp = Blueprint("order_desk_api", __name__, url_prefix="/api")


def _components() -> Dict[str, Any]:
    return current_app.extensions["order_desk_components"]


def _identity() -> Tuple[Optional[str], Optional[str]]:
    # sign-in lives outside this service; the gateway in front sets X-User-Id
    user_id = (request.headers.get("X-User-Id") or "").strip() or None
    session_id = session.get("cart_session_id")
    if not user_id and not session_id:
        session_id = session["cart_session_id"] = uuid4().hex
    return session_id, user_id


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


@api_bp.get("/products")
def list_products():
    result = _components()["catalog"].list_products(
        query=request.args.get("q"),
        category=request.args.get("category"),
        page=request.args.get("page", 1),
        page_size=request.args.get("page_size", 20),
    )
    return jsonify(result)


@api_bp.get("/products/<product_id>")
def get_product(product_id: str):
    return jsonify(_components()["catalog"].get_product(product_id))


@api_bp.get("/cart")
def get_cart():
    session_id, user_id = _identity()
    cart = _components()["cart"].get_cart(
        session_id=session_id,
        user_id=user_id,
        coupon_code=request.args.get("coupon"),
    )
    return jsonify(cart)


@api_bp.post("/cart/items")
def add_cart_item():
    payload = _payload()
    session_id, user_id = _identity()
    result = _components()["cart"].add_item(
        session_id=session_id,
        user_id=user_id,
        product_id=str(payload.get("product_id", "")).strip(),
        variant_name=payload.get("variant_name"),
        quantity=payload.get("quantity", 1),
    )
    return jsonify(result), 201


@api_bp.patch("/cart/items/<item_id>")
def update_cart_item(item_id: str):
    payload = _payload()
    if "quantity" not in payload:
        return jsonify({"error": "invalid_request", "message": "quantity required"}), 400
    return jsonify(_components()["cart"].update_item(item_id=item_id, quantity=payload["quantity"]))


@api_bp.delete("/cart/items/<item_id>")
def remove_cart_item(item_id: str):
    _components()["cart"].remove_item(item_id=item_id)
    return jsonify({"status": "removed", "item_id": item_id})


@api_bp.post("/cart/coupon")
def apply_coupon():
    payload = _payload()
    session_id, user_id = _identity()
    result = _components()["cart"].apply_coupon(
        session_id=session_id,
        user_id=user_id,
        code=str(payload.get("code", "")),
    )
    return jsonify(result)


@api_bp.post("/orders")
def place_order():
    payload = _payload()
    session_id, user_id = _identity()
    order = _components()["orders"].create_order(
        session_id=session_id,
        user_id=user_id,
        shipping_address=payload.get("shipping_address"),
        payment_method=payload.get("payment_method") or "online",
        coupon_code=payload.get("coupon_code"),
        request_id=request.headers.get("Idempotency-Key") or payload.get("request_id"),
    )
    return jsonify(order.to_dict()), 201


def _own_order(order_id: str):
    order = _components()["orders"].get_order(order_id)
    session_id, user_id = _identity()
    owner = order.user_id
    if owner and owner != user_id:
        return None
    return order


@api_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    order = _own_order(order_id)
    if order is None:
        return jsonify({"error": "not_found", "message": f"order {order_id} not found"}), 404
    data = order.to_dict()
    data.pop("payments", None)
    return jsonify(data)


@api_bp.get("/orders/<order_id>/tracking")
def track_order(order_id: str):
    order = _own_order(order_id)
    if order is None:
        return jsonify({"error": "not_found", "message": f"order {order_id} not found"}), 404
    return jsonify(
        {
            "order_number": order.order_number,
            "status": order.status,
            "delivery": order.delivery.to_dict() if order.delivery else None,
        }
    )


@api_bp.post("/payments/notify")
def payment_notification():
    """Outcome reported by the payment gateway for one order."""
    payload = _payload()
    order_id = str(payload.get("order_id", "")).strip()
    if not order_id or "success" not in payload:
        return jsonify({"error": "invalid_request", "message": "order_id and success required"}), 400
    entry = _components()["ledger"].record_gateway_result(
        order_id,
        success=bool(payload["success"]),
        amount=payload.get("amount"),
        reference=payload.get("reference"),
    )
    return jsonify({"status": "recorded" if entry else "unchanged", "payment": entry.to_dict() if entry else None})
