import enum
from typing import List, Tuple


class Outcome(str, enum.Enum):
    """Result of a service operation whose failure is an expected condition."""

    OK = "ok"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"


class ValidationFailed(Exception):
    """Raised by request handlers; rendered as 400 ``errorsMessages``."""

    def __init__(self, *errors: Tuple[str, str]):
        # (field, message) pairs
        self.errors: List[Tuple[str, str]] = list(errors)
        super().__init__(", ".join(f"{field}: {message}" for field, message in self.errors))

    @classmethod
    def field(cls, field: str, message: str) -> "ValidationFailed":
        return cls((field, message))
