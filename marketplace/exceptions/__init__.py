"""Custom exceptions for the marketplace application."""

class MarketplaceError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(MarketplaceError):
    """Exception raised for invalid arguments and business rule violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(MarketplaceError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class UnauthenticatedError(MarketplaceError):
    """Raised when the request carries no valid session for the required actor."""
    def __init__(self, message="Unauthorized"):
        super().__init__(message, 401)

class ForbiddenError(MarketplaceError):
    """Raised when an actor tries to touch a resource it does not own."""
    def __init__(self, message="Forbidden"):
        super().__init__(message, 403)

class ConflictError(MarketplaceError):
    """Raised on unique-key collisions and illegal state transitions."""
    def __init__(self, message="Conflict", payload=None):
        super().__init__(message, 409, payload)

class NotOrderableError(BusinessLogicError):
    """Raised when an inactive or out-of-stock product is added or ordered."""
    def __init__(self, product_name):
        super().__init__(f'Product "{product_name}" is not available for ordering')
