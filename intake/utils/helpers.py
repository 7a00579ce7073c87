"""Shared blueprint helpers.

get_json_body:       request body as a dict, or a 400 error tuple
register_error_handlers:  maps service exceptions to api_error responses
"""
import logging

from flask import request
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from intake.core.exceptions import ConflictError, GenerationError, NotFoundError, ValidationError
from intake.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def get_json_body(required=()):
    """Parse the JSON request body.

    Returns:
        (data, None) on success.
        (None, error_tuple) when the body is not an object or a required key is missing.
    """
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    missing = [key for key in required if data.get(key) in (None, "")]
    if missing:
        return None, api_error(
            E.VALIDATION_REQUIRED, f"{', '.join(missing)} is required",
            details={key: "required" for key in missing},
        )
    return data, None


def register_error_handlers(bp):
    """Attach service-exception handlers to a blueprint.

    NotFoundError → 404, ValidationError → 422, ConflictError → 409,
    GenerationError → 500, database errors → 409 / 500.
    """

    @bp.errorhandler(NotFoundError)
    def _not_found(exc):
        logger.info("Not found: %s", exc)
        return api_error(E.NOT_FOUND, f"{exc.resource} not found")

    @bp.errorhandler(ValidationError)
    def _invalid(exc):
        return api_error(E.VALIDATION_RULE, str(exc), details=exc.details)

    @bp.errorhandler(ConflictError)
    def _conflict(exc):
        return api_error(
            E.CONFLICT_VERSION, str(exc),
            details={"resource": exc.resource, "expected": exc.value, "current": exc.current},
        )

    @bp.errorhandler(GenerationError)
    def _generation(exc):
        return api_error(E.GENERATION_FAILED, str(exc))

    @bp.errorhandler(IntegrityError)
    def _integrity(exc):
        logger.warning("Integrity error: %s", exc.orig)
        return api_error(E.CONFLICT_STATE, "Duplicate or constraint violation")

    @bp.errorhandler(OperationalError)
    def _operational(exc):
        logger.error("Database operational error: %s", exc)
        return api_error(E.DATABASE, "Database error")

    @bp.errorhandler(SQLAlchemyError)
    def _database(exc):
        logger.error("Database error: %s", exc)
        return api_error(E.DATABASE, "Database error")

    return bp
