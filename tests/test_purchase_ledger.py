from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from learnhub.core.exceptions import ConflictError, PersistenceError
from learnhub.models import Purchase
from learnhub.services.purchase_ledger import FAIL_CLOSED, FAIL_OPEN, PurchaseLedger


def _broken_session():
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    return db


def test_record_then_has_purchased(db_session):
    ledger = PurchaseLedger(db_session)

    assert ledger.has_purchased(1, "course-1") is False
    purchase = ledger.record_purchase(1, "course-1", session_id="cs_1", amount_paid=1999)

    assert purchase.id is not None
    assert purchase.status == "completed"
    assert ledger.has_purchased(1, "course-1") is True


def test_purchase_is_scoped_to_user_and_course(db_session):
    ledger = PurchaseLedger(db_session)
    ledger.record_purchase(1, "course-1")

    assert ledger.has_purchased(2, "course-1") is False
    assert ledger.has_purchased(1, "course-2") is False


def test_duplicate_session_returns_existing_row(db_session):
    ledger = PurchaseLedger(db_session)

    first = ledger.record_purchase(1, "course-1", session_id="cs_dup")
    second = ledger.record_purchase(1, "course-1", session_id="cs_dup")

    assert first.id == second.id
    assert db_session.query(Purchase).count() == 1


def test_same_pair_twice_keeps_one_row(db_session):
    ledger = PurchaseLedger(db_session)

    ledger.record_purchase(1, "course-1", session_id="cs_a")
    again = ledger.record_purchase(1, "course-1", session_id="cs_b")

    assert again.session_id == "cs_a"
    assert db_session.query(Purchase).count() == 1


def test_session_reused_for_another_course_is_rejected(db_session):
    ledger = PurchaseLedger(db_session)
    ledger.record_purchase(1, "course-1", session_id="cs_once")

    with pytest.raises(ConflictError):
        ledger.record_purchase(1, "course-2", session_id="cs_once")

    assert ledger.has_purchased(1, "course-2") is False


def test_list_purchases_newest_first(db_session):
    ledger = PurchaseLedger(db_session)
    ledger.record_purchase(1, "course-a")
    ledger.record_purchase(1, "course-b")
    ledger.record_purchase(2, "course-c")

    purchases = ledger.list_purchases(1)

    assert [p.course_id for p in purchases] == ["course-b", "course-a"]


def test_read_failure_denies_when_fail_closed():
    ledger = PurchaseLedger(_broken_session(), read_failure_policy=FAIL_CLOSED)
    assert ledger.has_purchased(1, "course-1") is False


def test_read_failure_allows_when_fail_open():
    ledger = PurchaseLedger(_broken_session(), read_failure_policy=FAIL_OPEN)
    assert ledger.has_purchased(1, "course-1") is True


def test_write_failure_raises_persistence_error():
    db = MagicMock()
    db.query.return_value.filter.return_value.first.return_value = None
    db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
    ledger = PurchaseLedger(db)

    with pytest.raises(PersistenceError) as exc_info:
        ledger.record_purchase(1, "course-1", session_id="cs_fail")

    assert exc_info.value.reference_id == "cs_fail"
    db.rollback.assert_called_once()


def test_insert_losing_a_race_returns_the_winning_row(db_session, monkeypatch):
    ledger = PurchaseLedger(db_session)
    winner_id = ledger.record_purchase(1, "course-1", session_id="cs_race").id

    # First lookup misses, as it would while the other writer is uncommitted
    real_find = ledger._find_existing
    lookups = []

    def stale_then_real(*args):
        lookups.append(args)
        return None if len(lookups) == 1 else real_find(*args)

    monkeypatch.setattr(ledger, "_find_existing", stale_then_real)

    purchase = ledger.record_purchase(1, "course-1", session_id="cs_race")

    assert purchase.id == winner_id
    assert len(lookups) == 2
    assert db_session.query(Purchase).count() == 1
