"""Base domain exception."""


class DomainException(Exception):
    """
    Base exception for all resilience-layer errors.

    Every error carries a stable machine-readable ``code`` so callers and the
    HTTP error handlers can branch on the kind of failure.
    """

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)
