"""
errors.py — AppError base class and error code registry.

Every error surfaced by the ledger must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

The ledger's error taxonomy maps onto these codes:
  - Validation errors   → 400 (request shape) / 422 (business rule)
  - Not-found errors    → 404
  - Persistence trouble → never an error; reported as a WarningCode in the
                          `warnings` array of the response envelope.

Error codes are a versioned contract. Messages are human-readable prose and
may be improved at any time.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which input field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# These are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    INVALID_SPLIT_MODE         = "INVALID_SPLIT_MODE"
    DUPLICATE_SPLIT_USER       = "DUPLICATE_SPLIT_USER"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    SPLIT_NOT_FOUND            = "SPLIT_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    PAYER_NOT_MEMBER           = "PAYER_NOT_MEMBER"
    SPLIT_USER_NOT_MEMBER      = "SPLIT_USER_NOT_MEMBER"
    SPLIT_SUM_MISMATCH         = "SPLIT_SUM_MISMATCH"
    PERCENTAGE_SUM_MISMATCH    = "PERCENTAGE_SUM_MISMATCH"
    SELF_SETTLEMENT            = "SELF_SETTLEMENT"
    NO_CURRENT_GROUP           = "NO_CURRENT_GROUP"

    # ── Authorization (403) ────────────────────────────────────────────────
    # Profile fields are editable by their owner only.
    FORBIDDEN                  = "FORBIDDEN"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They never block the operation that produced them.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # The stored snapshot could not be read or parsed; bootstrap data in use.
    SNAPSHOT_LOAD_FAILED = "SNAPSHOT_LOAD_FAILED"

    # The in-memory change stands but was not written to durable storage.
    SNAPSHOT_SAVE_FAILED = "SNAPSHOT_SAVE_FAILED"

    # add-member on an existing member is a no-op.
    ALREADY_MEMBER       = "ALREADY_MEMBER"
