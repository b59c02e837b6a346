"""
Error types raised by the Price Manager service.
Each error carries the HTTP status and error code used when it reaches the API.
"""


class PriceManagerError(Exception):
    """Base error for the service; rendered as {code, message, timestamp}"""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PriceNotFoundError(PriceManagerError):
    """No rate applies to the requested brand, product and instant"""

    status_code = 404
    code = "PRICE_NOT_FOUND"


class InvalidPriceRateError(PriceManagerError, ValueError):
    """A rate record failed the consistency check on ingestion"""

    status_code = 422
    code = "INVALID_PRICE_RATE"
