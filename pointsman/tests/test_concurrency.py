"""
Real concurrent calls against PostgreSQL.

SQLite serializes every writer, so these only run when the suite points at
PostgreSQL (see pointsman.tests.settings). The same race paths are covered
deterministically in test_ledger.TestConcurrentDuplicates.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed

import pytest
from django.db import connection, connections

from pointsman.adapters.ownership import AllowAllAccessGuard
from pointsman.exceptions import PointsmanError
from pointsman.models import (
    EnrollmentInvitation,
    InvitationState,
    LoyaltyCard,
    LoyaltyProgram,
    PointTransaction,
)
from pointsman.protocols.access import Actor, Role
from pointsman.service import PointsService
from pointsman.tests.backends import RecordingBackend


pytestmark = [
    pytest.mark.django_db(transaction=True),
    pytest.mark.skipif(
        connection.vendor != "postgresql",
        reason="Needs a database with row locks (set POINTSMAN_TEST_PG_NAME)",
    ),
]

BUSINESS = Actor("biz-1", Role.BUSINESS)
CUSTOMER = Actor("cust-1", Role.CUSTOMER)


def run_concurrently(func, calls):
    """Run func(*args) for each args tuple in its own thread; collect results or errors."""

    def worker(args):
        try:
            return func(*args)
        except Exception as e:
            return e
        finally:
            connections.close_all()

    results = []
    with ThreadPoolExecutor(max_workers=len(calls)) as executor:
        futures = [executor.submit(worker, args) for args in calls]
        for future in as_completed(futures):
            results.append(future.result())
    return results


@pytest.fixture
def coffee_club():
    return LoyaltyProgram.objects.create(business_id="biz-1", name="Coffee Club")


@pytest.fixture
def concurrent_service():
    return PointsService(guard=AllowAllAccessGuard(), notifier=RecordingBackend())


def test_concurrent_redeems_never_overdraw(concurrent_service, coffee_club):
    concurrent_service.award(BUSINESS, "biz-1", "cust-1", coffee_club.pk, 100)

    results = run_concurrently(
        lambda: concurrent_service.redeem(CUSTOMER, "biz-1", "cust-1", coffee_club.pk, 80, "Mug"),
        [()] * 5,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert all(isinstance(e, PointsmanError) and e.code == "INSUFFICIENT_BALANCE" for e in failures)

    card = LoyaltyCard.objects.get()
    assert card.points_balance == 20
    assert card.total_redeemed == 80
    assert card.points_balance == card.total_earned - card.total_redeemed


def test_concurrent_awards_same_reference(concurrent_service, coffee_club):
    """Duplicate awards racing on a brand-new customer apply once."""
    results = run_concurrently(
        lambda: concurrent_service.award(
            BUSINESS, "biz-1", "cust-1", coffee_club.pk, 20, source_reference="r1"
        ),
        [()] * 6,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert errors == []
    assert sum(1 for r in results if not r.replayed) == 1
    assert {r.new_balance for r in results} == {20}

    assert LoyaltyCard.objects.count() == 1
    assert PointTransaction.objects.count() == 1
    assert LoyaltyCard.objects.get().points_balance == 20


def test_concurrent_mixed_mutations_are_serializable(concurrent_service, coffee_club):
    concurrent_service.award(BUSINESS, "biz-1", "cust-1", coffee_club.pk, 50)

    def mutate(kind, amount):
        if kind == "award":
            return concurrent_service.award(BUSINESS, "biz-1", "cust-1", coffee_club.pk, amount)
        return concurrent_service.redeem(CUSTOMER, "biz-1", "cust-1", coffee_club.pk, amount, "Snack")

    calls = [("award", 10)] * 4 + [("redeem", 30)] * 4
    run_concurrently(mutate, calls)

    card = LoyaltyCard.objects.get()
    ledger = sum(tx.signed_amount for tx in card.transactions.all())
    assert card.points_balance == ledger
    assert card.points_balance >= 0
    assert card.total_earned == 90


def test_concurrent_respond_has_one_winner(concurrent_service):
    program = LoyaltyProgram.objects.create(business_id="biz-1", name="VIP", auto_enroll=False)
    invitation_id = concurrent_service.invite(BUSINESS, "biz-1", "cust-1", program.pk)

    results = run_concurrently(
        lambda accept: concurrent_service.respond(CUSTOMER, invitation_id, "cust-1", accept),
        [(True,), (False,), (True,), (False,)],
    )

    winners = [r for r in results if not isinstance(r, Exception)]
    losers = [r for r in results if isinstance(r, Exception)]
    assert len(winners) == 1
    assert all(e.code == "ALREADY_RESOLVED" for e in losers)

    state = EnrollmentInvitation.objects.get(pk=invitation_id).state
    assert state == winners[0].state
    expected_cards = 1 if state == InvitationState.ACCEPTED else 0
    assert LoyaltyCard.objects.count() == expected_cards


def test_concurrent_auto_enroll_and_accept(concurrent_service, coffee_club):
    """An award auto-enrolling the customer and the customer accepting the invitation both complete."""
    invitation_id = concurrent_service.invite(BUSINESS, "biz-1", "cust-1", coffee_club.pk)

    def enroll(kind):
        if kind == "award":
            return concurrent_service.award(
                BUSINESS, "biz-1", "cust-1", coffee_club.pk, 40, source_reference="order:1"
            )
        return concurrent_service.respond(CUSTOMER, invitation_id, "cust-1", True)

    results = run_concurrently(enroll, [("award",), ("respond",)])

    errors = [r for r in results if isinstance(r, Exception)]
    assert all(isinstance(e, PointsmanError) and e.code == "ALREADY_RESOLVED" for e in errors)
    assert len(errors) <= 1

    assert EnrollmentInvitation.objects.get(pk=invitation_id).state == InvitationState.ACCEPTED
    card = LoyaltyCard.objects.get()
    assert card.points_balance == 40
    assert PointTransaction.objects.count() == 1
