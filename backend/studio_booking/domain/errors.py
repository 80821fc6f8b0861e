from __future__ import annotations

from typing import Iterable, Sequence


class DomainError(Exception):
    """Base class for errors whose message can be shown to the caller as-is."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class CapacityError(DomainError):
    def __init__(self, message: str, *, available: int, requested: int, slot_id: int | None = None) -> None:
        super().__init__(message)
        self.available = available
        self.requested = requested
        self.slot_id = slot_id

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.available, 0)


class ConflictError(DomainError):
    def __init__(self, message: str, *, admins: Iterable[str], slot_ids: Sequence[int] = ()) -> None:
        super().__init__(message)
        self.admins = sorted(set(admins))
        self.slot_ids = list(slot_ids)


class NotFoundError(DomainError):
    pass


class StorageError(DomainError):
    pass
