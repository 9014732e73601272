"""Service-level exceptions shared by the reconciler, importer, and routes."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Optional


class ServiceError(Exception):
    """Base error carrying the HTTP status the routes answer with."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class InvalidReferenceError(ServiceError):
    """Raised when a payload references ids that do not exist."""

    status_code = 422

    def __init__(self, entity: str, missing_ids: Iterable[int]) -> None:
        self.entity = entity
        self.missing_ids = sorted(missing_ids)
        ids = ", ".join(str(item) for item in self.missing_ids)
        super().__init__(f"Unknown {entity} id(s): {ids}")


class TransactionFailedError(ServiceError):
    """Raised after a transaction was rolled back."""

    status_code = 500


class UnsupportedFormatError(ServiceError):
    """Raised when an import file's extension has no decoder."""


class FileDecodeError(ServiceError):
    """Raised when a recognized import file cannot be read."""


class ConflictError(ServiceError):
    status_code = 409


class ValidationError(ServiceError):
    """Raised when a request payload fails its schema."""

    def __init__(self, errors: dict[str, str], message: Optional[str] = None) -> None:
        super().__init__(message or "Validation failed.")
        self.errors = errors


@dataclass(frozen=True)
class RowError:
    """One failed import row."""

    row: int
    field: str
    message: str

    def to_dict(self) -> dict[str, object]:
        return asdict(self)
