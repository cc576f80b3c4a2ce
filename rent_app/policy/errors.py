class RentEngineError(ValueError):
    """Base for rejections raised by the rent engine.

    ``code`` is a stable machine-readable identifier that the service layer
    passes through to API callers alongside the message.
    """

    code = "rent_engine_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidLeaseError(RentEngineError):
    code = "invalid_lease"


class AllocationError(RentEngineError):
    code = "invalid_allocation"
