"""Unit tests for IdempotencyGuard."""

from datetime import timedelta
from uuid import uuid4

import pytest

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.ledger.exceptions import (
    IdempotencyKeyConflictError,
    IdempotencyKeyReuseError,
)


class TestBeginOrReplay:
    @pytest.mark.asyncio
    async def test_no_key_is_always_new(self, db, idempotency, fake_idempotency_repo):
        check = await idempotency.begin_or_replay(db, None, "topup")

        assert check.is_new
        assert fake_idempotency_repo.call_count("get_by_key") == 0

    @pytest.mark.asyncio
    async def test_unknown_key_is_new(self, db, idempotency):
        check = await idempotency.begin_or_replay(db, "k-1", "topup")

        assert check.is_new
        assert check.prior is None

    @pytest.mark.asyncio
    async def test_recorded_key_replays(
        self, db, idempotency, fake_idempotency_repo, fake_billing_metrics
    ):
        user_id = uuid4()
        fake_idempotency_repo.seed("k-1", "topup", "ref-1", user_id=user_id)

        check = await idempotency.begin_or_replay(db, "k-1", "topup")

        assert check.is_replay
        assert check.prior.result_reference == "ref-1"
        assert check.prior.user_id == user_id
        assert fake_billing_metrics.idempotency_hits["topup"] == 1

    @pytest.mark.asyncio
    async def test_key_reused_for_another_operation(self, db, idempotency, fake_idempotency_repo):
        fake_idempotency_repo.seed("k-1", "topup", "ref-1")

        with pytest.raises(IdempotencyKeyReuseError):
            await idempotency.begin_or_replay(db, "k-1", "usage_charge")


class TestCommit:
    @pytest.mark.asyncio
    async def test_records_key(self, db, idempotency, fake_idempotency_repo):
        await idempotency.commit(
            db,
            key="k-1",
            operation_type="topup",
            user_id=None,
            result_reference="ref-1",
            uow=UnitOfWork(db),
        )

        check = await idempotency.begin_or_replay(db, "k-1", "topup")
        assert check.prior.result_reference == "ref-1"

    @pytest.mark.asyncio
    async def test_no_key_is_noop(self, db, idempotency, fake_idempotency_repo):
        await idempotency.commit(
            db,
            key=None,
            operation_type="topup",
            user_id=None,
            result_reference="ref-1",
            uow=UnitOfWork(db),
        )

        assert fake_idempotency_repo.call_count("create") == 0

    @pytest.mark.asyncio
    async def test_second_commit_of_same_key_conflicts(self, db, idempotency):
        kwargs = dict(key="k-1", operation_type="topup", user_id=None, result_reference="r")
        await idempotency.commit(db, uow=UnitOfWork(db), **kwargs)

        with pytest.raises(IdempotencyKeyConflictError):
            await idempotency.commit(db, uow=UnitOfWork(db), **kwargs)


class TestPurge:
    @pytest.mark.asyncio
    async def test_removes_only_keys_past_retention(self, db, idempotency, fake_idempotency_repo):
        now = utc_now_naive()
        fake_idempotency_repo.seed("old", "topup", "r", created_at=now - timedelta(days=91))
        fake_idempotency_repo.seed("fresh", "topup", "r", created_at=now - timedelta(days=89))

        deleted = await idempotency.purge_expired(db, now=now)

        assert deleted == 1
        assert (await idempotency.begin_or_replay(db, "old", "topup")).is_new
        assert (await idempotency.begin_or_replay(db, "fresh", "topup")).is_replay
