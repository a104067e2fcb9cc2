"""
Errors raised by the order, payment and rider services.
Views turn them into JSON responses via utils.service_errors.
"""


class MarketplaceError(Exception):
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = 400
    default_message = 'Invalid data'


class Unauthorized(MarketplaceError):
    status_code = 401
    default_message = 'Authentication required'


class Forbidden(MarketplaceError):
    status_code = 403
    default_message = 'Forbidden'


class NotFound(MarketplaceError):
    status_code = 404
    default_message = 'Not found'


class InvalidTransition(MarketplaceError):
    """Requested status change is not allowed from the order's current state."""
    status_code = 409
    default_message = 'Invalid status transition'


class Conflict(MarketplaceError):
    """A guarded update matched nothing (already paid, already cashed out, rider busy)."""
    status_code = 409
    default_message = 'Conflict'


class GatewayError(MarketplaceError):
    """Upstream payment provider failed; message carries the provider's reason."""
    status_code = 500
    default_message = 'Payment gateway error'
