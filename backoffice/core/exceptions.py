"""Domain errors raised by the services and mapped to HTTP responses in main."""


class BackofficeError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(BackofficeError):
    status_code = 404

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class UnprocessableOrderError(BackofficeError):
    status_code = 422
    default_message = "One or more items in your order are invalid or unavailable."


class InvalidStatusTransitionError(BackofficeError):
    status_code = 409

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Order status cannot change from {current} to {requested}")


class OrderConflictError(BackofficeError):
    status_code = 409
    default_message = "Order was modified concurrently, please retry"
