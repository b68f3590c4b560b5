"""Admin API: order processing, deliveries, refunds and store settings."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request, session


admin_bp = Blueprint("order_desk_admin", __name__, url_prefix="/admin")


def _components() -> Dict[str, Any]:
    return current_app.extensions["order_desk_components"]


def _config():
    return current_app.config["ORDER_DESK_CONFIG"]


def _payload() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def _is_authenticated() -> bool:
    return bool(session.get("order_desk_admin"))


@admin_bp.before_request
def guard_private_routes():
    if request.endpoint == "order_desk_admin.login":
        return None
    if not _is_authenticated():
        return jsonify({"error": "unauthorized", "message": "admin login required"}), 401
    return None


@admin_bp.post("/login")
def login():
    payload = _payload()
    username = str(payload.get("username", "")).strip()
    password = str(payload.get("password", "")).strip()
    cfg = _config()
    if username == cfg.admin_username and password == cfg.admin_password:
        session["order_desk_admin"] = True
        return jsonify({"status": "ok"})
    return jsonify({"error": "unauthorized", "message": "invalid username or password"}), 401


@admin_bp.post("/logout")
def logout():
    session.pop("order_desk_admin", None)
    return jsonify({"status": "ok"})


@admin_bp.get("/orders")
def list_orders():
    result = _components()["orders"].list_orders(
        status=request.args.get("status") or None,
        page=request.args.get("page", 1),
        page_size=request.args.get("page_size", 20),
    )
    result["items"] = [o.to_dict(detail=False) for o in result["items"]]
    return jsonify(result)


@admin_bp.get("/orders/<order_id>")
def get_order(order_id: str):
    return jsonify(_components()["orders"].get_order(order_id).to_dict())


@admin_bp.post("/orders/<order_id>/status")
def update_order_status(order_id: str):
    status = str(_payload().get("status", "")).strip()
    if not status:
        return jsonify({"error": "invalid_request", "message": "status required"}), 400
    order = _components()["orders"].update_status(order_id, status)
    return jsonify(order.to_dict())


@admin_bp.post("/orders/<order_id>/payment-status")
def update_payment_status(order_id: str):
    payload = _payload()
    status = str(payload.get("payment_status", "")).strip()
    if not status:
        return jsonify({"error": "invalid_request", "message": "payment_status required"}), 400
    components = _components()
    components["ledger"].record_payment(
        order_id,
        status,
        amount=payload.get("amount"),
        reference=payload.get("reference"),
    )
    return jsonify(components["orders"].get_order(order_id).to_dict())


@admin_bp.get("/orders/<order_id>/refunds")
def list_refunds(order_id: str):
    refunds = _components()["ledger"].refunds(order_id)
    return jsonify({"refunds": [r.to_dict() for r in refunds]})


@admin_bp.post("/orders/<order_id>/refunds")
def create_refund(order_id: str):
    payload = _payload()
    if payload.get("amount") in (None, ""):
        return jsonify({"error": "invalid_request", "message": "amount required"}), 400
    result = _components()["ledger"].refund(order_id, payload["amount"], payload.get("reason"))
    return jsonify(result.to_dict()), 201


@admin_bp.get("/orders/<order_id>/documents/<kind>")
def order_document(order_id: str, kind: str):
    return jsonify(_components()["documents"].build(kind, order_id))


@admin_bp.patch("/deliveries/<delivery_id>")
def update_delivery(delivery_id: str):
    payload = dict(_payload())
    status = payload.pop("status", None)
    delivery = _components()["deliveries"].update(delivery_id, status=status, **payload)
    return jsonify(delivery.to_dict())


@admin_bp.post("/deliveries/<delivery_id>/cod-collected")
def set_cod_collected(delivery_id: str):
    collected = _payload().get("collected", True)
    if not isinstance(collected, bool):
        return jsonify({"error": "invalid_request", "message": "collected must be true or false"}), 400
    delivery = _components()["deliveries"].set_cod_collected(delivery_id, collected)
    return jsonify(delivery.to_dict())


@admin_bp.get("/settings/<key>")
def get_settings(key: str):
    return jsonify(_components()["settings"].get(key).to_dict())


@admin_bp.put("/settings/<key>")
def save_settings(key: str):
    settings = _components()["settings"].save(key, _payload())
    _components()["catalog"].invalidate_cache()
    return jsonify(settings.to_dict())
