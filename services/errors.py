"""
Domain exceptions raised by repositories and services.
Routes translate these into HTTP responses.
"""


class NotFoundError(Exception):
    """Tenant-scoped lookup found nothing (missing or owned by another business)."""
    def __init__(self, message: str = "Not found"):
        self.message = message
        super().__init__(self.message)


class ConflictError(Exception):
    """A uniqueness rule would be violated (duplicate email, template name, ...)."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)
