"""Typed outcomes returned by engine mutations."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from vaxdog.errors import (
    ERROR_INVALID_PRODUCT,
    ERROR_PERSISTENCE_FAILED,
    INFO_ALREADY_IN_WISHLIST,
    CommerceError,
    InvalidInputError,
    PersistenceError,
    StockExceededError,
)

from .observers import EventKind


class OperationStatus(str, Enum):
    """How a mutation ended."""
    OK = "ok"
    NOOP = "noop"  # nothing to do (absent id)
    ALREADY_EXISTS = "already_exists"  # duplicate wishlist add
    INVALID_INPUT = "invalid_input"
    STOCK_EXCEEDED = "stock_exceeded"


_SUCCESSFUL = frozenset({OperationStatus.OK, OperationStatus.NOOP, OperationStatus.ALREADY_EXISTS})


@dataclass(frozen=True)
class OperationResult:
    """Result of a cart or wishlist mutation."""
    status: OperationStatus
    product_id: Optional[str] = None
    quantity: int = 0
    stock_limit: Optional[int] = None
    requested: int = 0
    message: str = ""
    persisted: bool = True
    persistence_error: Optional[str] = None
    event: Optional[EventKind] = None

    @property
    def ok(self) -> bool:
        """True unless the request was rejected."""
        return self.status in _SUCCESSFUL

    @classmethod
    def from_error(cls, error: CommerceError) -> "OperationResult":
        """Map a rejection raised inside the engine to a result."""
        if isinstance(error, StockExceededError):
            return cls(
                status=OperationStatus.STOCK_EXCEEDED,
                product_id=error.product_id,
                stock_limit=error.limit,
                requested=error.requested,
                message=str(error),
            )
        return cls(
            status=OperationStatus.INVALID_INPUT,
            product_id=error.product_id,
            message=str(error),
        )

    @classmethod
    def already_exists(cls, product_id: str) -> "OperationResult":
        return cls(
            status=OperationStatus.ALREADY_EXISTS,
            product_id=product_id,
            message=INFO_ALREADY_IN_WISHLIST,
        )

    def with_persistence_failure(self, error: PersistenceError) -> "OperationResult":
        return replace(self, persisted=False, persistence_error=str(error))

    def raise_for_status(self) -> "OperationResult":
        """
        Raise the matching exception for a rejected or unsaved result.

        Returns:
            self, for chaining, when the result is successful and persisted
        """
        if self.status is OperationStatus.STOCK_EXCEEDED:
            raise StockExceededError(self.product_id or "", self.stock_limit or 0, self.requested)
        if self.status is OperationStatus.INVALID_INPUT:
            raise InvalidInputError(self.message or ERROR_INVALID_PRODUCT, product_id=self.product_id)
        if not self.persisted:
            raise PersistenceError(self.persistence_error or ERROR_PERSISTENCE_FAILED)
        return self
