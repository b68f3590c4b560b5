"""Order desk Flask application."""

from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify

from orderdesk.config import AppConfig, load_env
from orderdesk.db.session import SessionFactory
from orderdesk.errors import OrderDeskError
from orderdesk.services import logging as event_log
from orderdesk.services.cart_service import CartService
from orderdesk.services.catalog_service import CatalogService
from orderdesk.services.delivery_service import DeliveryService
from orderdesk.services.document_service import DocumentService
from orderdesk.services.logging import log_event
from orderdesk.services.order_service import OrderService
from orderdesk.services.refund_ledger import RefundLedger
from orderdesk.services.settings_service import SettingsService
from routes import admin, api


def build_components(config: AppConfig, session_factory) -> dict:
    return {
        "catalog": CatalogService(session_factory),
        "cart": CartService(session_factory),
        "orders": OrderService(session_factory, currency=config.currency),
        "deliveries": DeliveryService(session_factory),
        "ledger": RefundLedger(session_factory),
        "settings": SettingsService(session_factory),
        "documents": DocumentService(session_factory),
    }


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(OrderDeskError)
    def handle_order_desk_error(exc: OrderDeskError):
        if exc.http_status >= 500:
            log_event("error", "request.failed", error=exc.code, message=exc.message)
        return jsonify(exc.to_dict()), exc.http_status

    @app.errorhandler(ValueError)
    def handle_value_error(exc: ValueError):
        return jsonify({"error": "invalid_request", "message": str(exc)}), 400


def create_app(config: Optional[AppConfig] = None, session_factory=None) -> Flask:
    config = config or load_env()
    event_log.configure(config.log_level)
    if session_factory is None:
        session_factory = SessionFactory(config.database_url)
        session_factory.create_all()

    app = Flask(__name__)
    app.config["SECRET_KEY"] = config.secret_key
    app.config["ORDER_DESK_CONFIG"] = config
    app.extensions["order_desk_components"] = build_components(config, session_factory)

    _register_error_handlers(app)
    app.register_blueprint(api.api_bp)
    app.register_blueprint(admin.admin_bp)
    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=5000, debug=False)


if __name__ == "__main__":
    main()
