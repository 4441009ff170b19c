"""Pointsman exceptions."""


class PointsmanError(Exception):
    """
    Structured exception for ledger and enrollment operations.

    Every error carries a stable machine-readable ``code``, a human-readable
    ``message`` and free-form ``data`` (keyword arguments).

    Usage:
        try:
            service.redeem(actor, "biz-1", "cust-1", program_id, 80, "Mug")
        except PointsmanError as e:
            if e.code == "INSUFFICIENT_BALANCE":
                show(e.data["available"])
    """

    _default_messages = {
        "INVALID_AMOUNT": "Points amount must be a positive integer",
        "INVALID_IDENTIFIER": "Malformed identifier",
        "ACCOUNT_UNAVAILABLE": "Loyalty card is not available",
        "INSUFFICIENT_BALANCE": "Insufficient points for redemption",
        "DUPLICATE_PENDING": "A pending invitation already exists",
        "ALREADY_RESOLVED": "Invitation was already resolved",
        "ALREADY_ENROLLED": "Customer is already enrolled in this program",
        "FORBIDDEN": "Actor is not allowed to perform this operation",
        "NOT_FOUND": "Not found",
        "IDEMPOTENCY_CONFLICT": "source_reference was already used for a different operation",
        "STORE_UNAVAILABLE": "Ledger store is unavailable, safe to retry",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }

    @property
    def retryable(self) -> bool:
        """Only infrastructure failures leave the outcome unknown."""
        return self.code == "STORE_UNAVAILABLE"
