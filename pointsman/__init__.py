"""
Django Pointsman - Points ledger and enrollment workflow.

Usage:
    from pointsman import Actor, PointsService, PointsmanError

    service = PointsService()
    actor = Actor(id="biz-1", role="business")

    result = service.award(actor, "biz-1", "cust-1", program.pk, 100,
                           source_reference="order:123")
    service.redeem(actor, "biz-1", "cust-1", program.pk, 30, "Free coffee")
    balance = service.get_balance(actor, result.card_id)
"""


def __getattr__(name):
    if name == "PointsService":
        from pointsman.service import PointsService

        return PointsService
    if name == "Actor":
        from pointsman.protocols.access import Actor

        return Actor
    if name == "AccountRef":
        from pointsman.store import AccountRef

        return AccountRef
    if name == "PointsmanError":
        from pointsman.exceptions import PointsmanError

        return PointsmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["AccountRef", "Actor", "PointsService", "PointsmanError"]
__version__ = "0.1.0"
