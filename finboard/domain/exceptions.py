"""Domain-specific exceptions"""

from typing import Dict, List, Optional


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Candidate record or patch is malformed or incomplete"""

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed"):
        super().__init__(message)
        self.message = message
        self.errors = errors

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]


class NotFoundError(DomainException):
    """Referenced record does not exist"""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class AuthorizationError(DomainException):
    """Caller does not own the record or lacks the required role"""

    pass


class AuthenticationError(AuthorizationError):
    """No caller identity could be established"""

    pass


class AuthorizationUnavailableError(AuthorizationError):
    """Identity service could not be reached; the request is denied"""

    pass


class PersistenceError(DomainException):
    """Storage backend failure"""

    pass
