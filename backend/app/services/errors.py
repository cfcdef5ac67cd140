# Overview: Exception types raised by the stock services; each carries its HTTP status.

"""
Stock Service Errors

Routes map these to {"error": message} responses using status_code.
Messages are safe to show to the caller as-is.
"""


class StockError(Exception):
    """Base class for stock service failures."""
    status_code = 400


class ValidationFailedError(StockError):
    """Bad input shape or range, including malformed CSV rows."""
    status_code = 400


class NotFoundError(StockError):
    """Entity missing or outside the caller's owner scope."""
    status_code = 404


class InsufficientStockError(StockError):
    """An adjustment would take a product's quantity below zero."""
    status_code = 409


class ForbiddenError(StockError):
    status_code = 403


class TransactionTimeoutError(StockError):
    """The atomic unit ran longer than its configured timeout."""
    status_code = 503
