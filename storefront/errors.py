# storefront/errors.py
import logging

from flask import jsonify
from pydantic import ValidationError as PydanticValidationError

from .utils.api import api_error

logger = logging.getLogger("storefront.errors")


class QuoteError(Exception):
    """Base class for errors that fail a whole quote request."""
    status_code = 400
    message = "could not price your cart"

    def __init__(self, message=None, data=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.data = data or {}

    def to_payload(self):
        return api_error(self.message, self.data)


class QuoteValidationError(QuoteError):
    status_code = 400
    message = "Invalid payload"

    def __init__(self, message=None, errors=None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError):
        errors = [
            {
                "field": ".".join(str(p) for p in e.get("loc", ())),
                "message": e.get("msg", "invalid value"),
            }
            for e in exc.errors()
        ]
        return cls("Invalid payload", errors)


class CatalogUnavailableError(QuoteError):
    """Catalog could not be read; the request may be retried."""
    status_code = 503
    message = "could not price your cart, try again"
    retriable = True


class CouponRejectedError(QuoteError):
    """Raised only when COUPON_REJECTION_POLICY is "reject"."""
    status_code = 422

    def __init__(self, rejection):
        super().__init__(rejection.message, {"coupon": rejection.as_api()})
        self.rejection = rejection


def register_error_handlers(app):
    @app.errorhandler(QuoteError)
    def handle_quote_error(e: QuoteError):
        r = jsonify(e.to_payload())
        r.status_code = e.status_code
        if isinstance(e, CatalogUnavailableError):
            r.headers["Retry-After"] = str(app.config.get("CATALOG_RETRY_AFTER_SECONDS", 5))
        return r

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_error(e: PydanticValidationError):
        return handle_quote_error(QuoteValidationError.from_pydantic(e))

    @app.errorhandler(404)
    def handle_not_found(e):
        r = jsonify(api_error("not found"))
        r.status_code = 404
        return r

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        r = jsonify(api_error("method not allowed"))
        r.status_code = 405
        return r
