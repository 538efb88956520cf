# controllers/error_handlers.py
from flask import jsonify, current_app, request

from services.errors import WalletError


def register_error_handlers(app):
    """Render domain errors as JSON with the error's own status code."""

    @app.errorhandler(WalletError)
    def handle_wallet_error(exc):
        current_app.logger.warning("wallet_error code=%s path=%s message=%s",
                                   exc.code, request.path, exc.message)
        return jsonify(exc.to_response()), exc.http_status

    @app.errorhandler(ValueError)
    def handle_value_error(exc):
        return jsonify({"message": str(exc)}), 400
