"""
Pointsman Gates - Validation rules run before any store access.

G1: AmountPositive - Points amount is a positive integer within the cap
G2: IdentifierWellFormed - Customer/business ids are short opaque tokens
G3: ProgramIdentifier - Program ids are positive integers
G4: PageBounds - History pagination stays within configured limits
G5: ActorAuthorized - The AccessGuard allows the actor on the target
"""

import re
from dataclasses import dataclass

from pointsman.exceptions import PointsmanError
from pointsman.protocols.access import AccessGuard, Actor


@dataclass
class GateResult:
    """Result of a gate check."""

    passed: bool
    gate_name: str
    message: str = ""


# =============================================================================
# Gates
# =============================================================================


class Gates:
    """Pointsman validation gates."""

    # =========================================================================
    # G1: Amount Positive
    # =========================================================================

    @classmethod
    def amount_positive(cls, amount, maximum: int | None = None) -> GateResult:
        """
        G1: amount must be an int > 0 (bools rejected) and <= maximum.

        Raises:
            PointsmanError: INVALID_AMOUNT
        """
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise PointsmanError(
                "INVALID_AMOUNT",
                message="Points amount must be an integer",
                amount=repr(amount),
            )
        if amount <= 0:
            raise PointsmanError("INVALID_AMOUNT", amount=amount)
        if maximum is not None and amount > maximum:
            raise PointsmanError(
                "INVALID_AMOUNT",
                message=f"Cannot move more than {maximum} points at once",
                amount=amount,
                maximum=maximum,
            )
        return GateResult(True, "G1_AmountPositive")

    @classmethod
    def check_amount_positive(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.amount_positive(*args, **kwargs)
            return True
        except PointsmanError:
            return False

    # =========================================================================
    # G2: Identifier Well Formed
    # =========================================================================

    IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:@-]{0,63}$")

    @classmethod
    def identifier(cls, field: str, value) -> GateResult:
        """
        G2: ids handed over by the surrounding app are 1-64 safe characters.

        Raises:
            PointsmanError: INVALID_IDENTIFIER
        """
        if not isinstance(value, str) or not cls.IDENTIFIER_PATTERN.match(value):
            raise PointsmanError("INVALID_IDENTIFIER", field=field, value=repr(value))
        return GateResult(True, "G2_IdentifierWellFormed")

    @classmethod
    def check_identifier(cls, field: str, value) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.identifier(field, value)
            return True
        except PointsmanError:
            return False

    # =========================================================================
    # G3: Program Identifier
    # =========================================================================

    @classmethod
    def program_identifier(cls, value) -> int:
        """
        G3: program ids are positive integers (ints or digit strings).

        Returns the id as int.

        Raises:
            PointsmanError: INVALID_IDENTIFIER
        """
        if isinstance(value, bool):
            raise PointsmanError("INVALID_IDENTIFIER", field="program_id", value=repr(value))
        if isinstance(value, str) and value.isdigit():
            value = int(value)
        if not isinstance(value, int) or value <= 0:
            raise PointsmanError("INVALID_IDENTIFIER", field="program_id", value=repr(value))
        return value

    # =========================================================================
    # G4: Page Bounds
    # =========================================================================

    @classmethod
    def page_bounds(cls, offset: int, limit: int, maximum: int) -> GateResult:
        """
        G4: offset >= 0 and 1 <= limit <= maximum.

        Raises:
            PointsmanError: INVALID_IDENTIFIER (malformed cursor)
        """
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise PointsmanError(
                "INVALID_IDENTIFIER",
                message="Offset must be a non-negative integer",
                field="offset",
                value=repr(offset),
            )
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= maximum:
            raise PointsmanError(
                "INVALID_IDENTIFIER",
                message=f"Limit must be between 1 and {maximum}",
                field="limit",
                value=repr(limit),
            )
        return GateResult(True, "G4_PageBounds")

    # =========================================================================
    # G5: Actor Authorized
    # =========================================================================

    @classmethod
    def actor_authorized(
        cls,
        guard: AccessGuard,
        actor: Actor,
        target_customer_id: str | None = None,
        target_business_id: str | None = None,
    ) -> GateResult:
        """
        G5: delegate the decision to the AccessGuard; deny -> FORBIDDEN.

        Raises:
            PointsmanError: FORBIDDEN
        """
        allowed = guard.can_act(
            actor.id,
            actor.role,
            target_customer_id=target_customer_id,
            target_business_id=target_business_id,
        )
        if not allowed:
            raise PointsmanError(
                "FORBIDDEN",
                actor_id=actor.id,
                actor_role=actor.role,
                customer_id=target_customer_id,
                business_id=target_business_id,
            )
        return GateResult(True, "G5_ActorAuthorized")

    @classmethod
    def check_actor_authorized(cls, *args, **kwargs) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.actor_authorized(*args, **kwargs)
            return True
        except PointsmanError:
            return False
