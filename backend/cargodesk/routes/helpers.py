# Overview: Shared JSON error responses and query-string parsing for routes.

from flask import current_app, jsonify, request

from ..errors import CargoError
from ..extensions import db


def cargo_error_response(exc: CargoError):
    """Roll back the unit of work and serialize a domain error."""
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def server_error_response(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": message}), 500


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def page_args() -> tuple:
    return request.args.get("page", 1), request.args.get("limit", 10)
