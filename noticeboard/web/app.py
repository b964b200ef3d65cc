"""
Noticeboard Web Application

Flask application factory. Every outcome leaves as a JSON envelope;
classified errors keep their safe message, anything else becomes a
generic 500 with the details logged server-side only.
"""

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.board import NoticeBoard
from ..errors import NoticeBoardError, ValidationError

logger = logging.getLogger(__name__)


def create_app(board: NoticeBoard) -> Flask:
    """
    Build the Flask app serving ``board``.

    The board must already be set up (database open, services built).
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["noticeboard"] = board

    from .routes import api as api_blueprint
    app.register_blueprint(api_blueprint, url_prefix="/api")

    @app.errorhandler(NoticeBoardError)
    def handle_noticeboard_error(error: NoticeBoardError):
        body = {"success": False, "message": error.message}
        if isinstance(error, ValidationError):
            body["errors"] = [e.to_dict() for e in error.errors]
        return jsonify(body), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unhandled error while serving request")
        return jsonify({"success": False, "message": "Server error"}), 500

    logger.debug("Application created and configured")
    return app
