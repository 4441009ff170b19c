"""Pytest fixtures for Pointsman tests."""

import pytest

from pointsman.adapters.ownership import AllowAllAccessGuard, OwnershipAccessGuard
from pointsman.models import LoyaltyProgram
from pointsman.protocols.access import Actor, Role
from pointsman.service import PointsService
from pointsman.store import AccountRef
from pointsman.tests.backends import RecordingBackend


# =============================================================================
# Programs
# =============================================================================


@pytest.fixture
def program(db):
    """Auto-enroll program owned by biz-1."""
    return LoyaltyProgram.objects.create(
        business_id="biz-1",
        name="Coffee Club",
        auto_enroll=True,
    )


@pytest.fixture
def invite_only_program(db):
    """Program that requires an accepted invitation."""
    return LoyaltyProgram.objects.create(
        business_id="biz-1",
        name="VIP Lounge",
        auto_enroll=False,
    )


@pytest.fixture
def other_program(db):
    """Program owned by another business."""
    return LoyaltyProgram.objects.create(
        business_id="biz-2",
        name="Bakery Stamps",
    )


@pytest.fixture
def account(program):
    return AccountRef("cust-1", "biz-1", program.pk)


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def business():
    return Actor(id="biz-1", role=Role.BUSINESS)


@pytest.fixture
def other_business():
    return Actor(id="biz-2", role=Role.BUSINESS)


@pytest.fixture
def customer():
    return Actor(id="cust-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer():
    return Actor(id="cust-2", role=Role.CUSTOMER)


@pytest.fixture
def admin_actor():
    return Actor(id="ops", role=Role.ADMIN)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def notifier():
    return RecordingBackend()


@pytest.fixture
def service(db, notifier):
    """PointsService with authorization disabled."""
    return PointsService(guard=AllowAllAccessGuard(), notifier=notifier)


@pytest.fixture
def guarded_service(db, notifier):
    """PointsService with the ownership guard."""
    return PointsService(guard=OwnershipAccessGuard(), notifier=notifier)
