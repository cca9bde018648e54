"""Interleaved sessions against a file-backed database.

Each test opens two independent sessions, lets both read, commits one,
then lets the other act on its earlier read. The outcome must be decided
by what is committed, not by what the late session loaded.
"""

import pytest

from ecoledger_core.domain.models import LedgerEntry, LedgerKind, Report, ReportStatus
from ecoledger_core.domain.services.catalog import (
    POINTS_ENTRY_ID,
    InsufficientBalanceError,
    RewardCatalogService,
)
from ecoledger_core.domain.services.ledger import LedgerService
from ecoledger_core.domain.services.reward_policy import CollectRewardPolicy
from ecoledger_core.domain.services.tasks import (
    AlreadyClaimedError,
    CollectionTaskService,
)
from ecoledger_core.domain.services.users import UserService
from tests.factories import create_ledger_entry, create_report, create_user


@pytest.fixture
def open_session(file_session_factory):
    """Open sessions on the shared file database, closing them afterwards."""
    opened = []

    def _open():
        session = file_session_factory()
        opened.append(session)
        return session

    yield _open

    for session in opened:
        session.rollback()
        session.close()


@pytest.fixture
def funded_user_id(open_session) -> int:
    """A committed user holding 100 points."""
    setup = open_session()
    user = create_user(setup, email="saver@example.com", name="Saver")
    create_ledger_entry(setup, user, kind=LedgerKind.EARNED_REPORT, amount=100)
    user_id = user.id
    setup.commit()
    return user_id


@pytest.fixture
def pending_report(open_session) -> dict[str, int]:
    """A committed pending report plus two collectors, as ids."""
    setup = open_session()
    reporter = create_user(setup, email="reporter@example.com", name="Reporter")
    collector = create_user(setup, email="collector@example.com", name="Collector")
    rival = create_user(setup, email="rival@example.com", name="Rival")
    report = create_report(setup, reporter)
    ids = {"report": report.id, "collector": collector.id, "rival": rival.id}
    setup.commit()
    return ids


def _task_service(session) -> CollectionTaskService:
    return CollectionTaskService(session, reward_policy=CollectRewardPolicy(mode="quantity"))


class TestInterleavedRedemption:
    def test_late_redemption_sees_committed_spend(self, open_session, funded_user_id):
        first = open_session()
        second = open_session()

        # Both requests resolve the caller before either redeems
        assert UserService(first).get_user(funded_user_id) is not None
        assert UserService(second).get_user(funded_user_id) is not None
        assert LedgerService(second).balance(funded_user_id) == 100

        RewardCatalogService(first).redeem(funded_user_id, POINTS_ENTRY_ID, 100)
        first.commit()

        with pytest.raises(InsufficientBalanceError) as exc_info:
            RewardCatalogService(second).redeem(funded_user_id, POINTS_ENTRY_ID, 100)
        second.rollback()

        assert exc_info.value.balance == 0
        check = open_session()
        redeemed = (
            check.query(LedgerEntry)
            .filter(
                LedgerEntry.user_id == funded_user_id,
                LedgerEntry.kind == LedgerKind.REDEEMED,
            )
            .count()
        )
        assert redeemed == 1
        assert LedgerService(check).balance(funded_user_id) == 0

    def test_late_redemption_spends_only_what_remains(
        self, open_session, funded_user_id
    ):
        first = open_session()
        second = open_session()
        UserService(first).get_user(funded_user_id)
        UserService(second).get_user(funded_user_id)

        RewardCatalogService(first).redeem(funded_user_id, POINTS_ENTRY_ID, 60)
        first.commit()

        with pytest.raises(InsufficientBalanceError):
            RewardCatalogService(second).redeem(funded_user_id, POINTS_ENTRY_ID, 60)
        second.rollback()

        RewardCatalogService(second).redeem(funded_user_id, POINTS_ENTRY_ID, 40)
        second.commit()

        assert LedgerService(open_session()).balance(funded_user_id) == 0


class TestInterleavedClaims:
    def test_late_claim_loses_to_committed_rival(self, open_session, pending_report):
        first = open_session()
        second = open_session()
        report_id = pending_report["report"]

        # The late session loads the report while it is still pending
        stale = second.query(Report).filter(Report.id == report_id).first()
        assert stale.status == ReportStatus.PENDING
        assert first.query(Report).filter(Report.id == report_id).first() is not None

        _task_service(first).claim(report_id, pending_report["rival"])
        first.commit()

        with pytest.raises(AlreadyClaimedError):
            _task_service(second).claim(report_id, pending_report["collector"])
        second.rollback()

        check = open_session()
        report = check.query(Report).filter(Report.id == report_id).one()
        assert report.status == ReportStatus.IN_PROGRESS
        assert report.collector_id == pending_report["rival"]

    def test_repeated_claim_after_commit_is_noop(self, open_session, pending_report):
        first = open_session()
        second = open_session()
        report_id = pending_report["report"]
        collector_id = pending_report["collector"]

        second.query(Report).filter(Report.id == report_id).first()

        _task_service(first).claim(report_id, collector_id)
        first.commit()

        again = _task_service(second).claim(report_id, collector_id)

        assert again.status == ReportStatus.IN_PROGRESS
        assert again.collector_id == collector_id
