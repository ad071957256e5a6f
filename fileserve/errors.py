class ServeError(Exception):
    """Base for every failure that ends a request.

    ``message`` is safe to show to the client. ``detail`` is for the server
    log only and may carry raw OS error text.
    """

    status = 500
    message = "Internal server error"

    def __init__(self, message=None, detail=None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)


class InvalidRequestPath(ServeError):
    status = 400
    message = "Invalid file path"


class TraversalRejected(ServeError):
    status = 403
    message = "Access denied"


class AccessDenied(ServeError):
    status = 403
    message = "Access denied"


class NotFound(ServeError):
    status = 404
    message = "File not found"


class IoFailure(ServeError):
    status = 500
    message = "Cannot read the requested location"
