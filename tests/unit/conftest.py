"""
Unit test fixtures. Services run against the in-memory DB from the root
conftest with a frozen clock; no network, no scheduler threads.
"""
import pytest


@pytest.fixture
def progression(db_session, clock, test_settings):
    from pacer.services.progression_service import ProgressionService
    return ProgressionService(db_session, clock, test_settings)


@pytest.fixture
def store(db_session):
    from pacer.services.notification_store import NotificationStore
    return NotificationStore(db_session)


@pytest.fixture
def delivery_pool():
    from pacer.services.dispatch_worker import DeliveryPool
    pool = DeliveryPool(workers=4)
    yield pool
    pool.shutdown(wait=False)
