from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from learnhub.services.access import AccessAuthorization
from learnhub.services.purchase_ledger import FAIL_CLOSED, FAIL_OPEN, PurchaseLedger


def test_access_follows_purchase(db_session):
    ledger = PurchaseLedger(db_session)
    access = AccessAuthorization(ledger)

    assert access.can_access(1, "course-1") is False
    ledger.record_purchase(1, "course-1")
    assert access.can_access(1, "course-1") is True


def test_require_access_raises_forbidden(db_session):
    access = AccessAuthorization(PurchaseLedger(db_session))

    with pytest.raises(HTTPException) as exc_info:
        access.require_access(1, "course-1")

    assert exc_info.value.status_code == 403


@pytest.mark.parametrize("policy, expected", [(FAIL_CLOSED, False), (FAIL_OPEN, True)])
def test_unreadable_ledger_uses_policy(policy, expected):
    db = MagicMock()
    db.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))
    access = AccessAuthorization(PurchaseLedger(db, read_failure_policy=policy))

    assert access.can_access(1, "course-1") is expected


def test_content_api_is_purchase_gated(client, auth_headers, courses, db_session):
    response = client.get("/courses/course-1/content", headers=auth_headers)
    assert response.status_code == 403

    response = client.get("/courses/course-1/progress", headers=auth_headers)
    assert response.status_code == 403


def test_content_api_requires_login(client, courses):
    assert client.get("/courses/course-1/content").status_code == 401
