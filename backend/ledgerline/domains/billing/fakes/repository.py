"""Fake billing repositories for testing."""

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.core.shared_models import BillingUserStatus, TopupStatus
from ledgerline.models import BillingUser, Topup


class FakeBillingUserRepository:
    """In-memory fake for BillingUserRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[UUID, BillingUser] = {}
        self._calls: list[tuple] = []

    def seed(
        self,
        external_id: str,
        *,
        user_id: Optional[UUID] = None,
        email: Optional[str] = None,
        received_signup_credit: bool = False,
        first_paid_topup_applied: bool = False,
    ) -> BillingUser:
        """Populate store with test data."""
        now = utc_now_naive()
        user = BillingUser(
            id=user_id or uuid4(),
            external_id=external_id,
            email=email,
            name=None,
            status=BillingUserStatus.ACTIVE.value,
            received_signup_credit=received_signup_credit,
            first_paid_topup_applied=first_paid_topup_applied,
            created_at=now,
            modified_at=now,
        )
        self._store[user.id] = user
        return user

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[BillingUser]:
        """Get a user by billing id."""
        self._calls.append(("get", user_id))
        return self._store.get(user_id)

    async def get_by_external_id(
        self, db: AsyncSession, *, external_id: str
    ) -> Optional[BillingUser]:
        """Get a user by external identity."""
        self._calls.append(("get_by_external_id", external_id))
        for user in self._store.values():
            if user.external_id == external_id:
                return user
        return None

    async def create(self, db: AsyncSession, *, obj_in: object, uow: object) -> BillingUser:
        """Insert a user, rejecting duplicate external ids like the unique index."""
        self._calls.append(("create", obj_in, uow))
        if any(u.external_id == obj_in.external_id for u in self._store.values()):
            raise IntegrityError("INSERT billing_user", {}, Exception("duplicate external_id"))
        return self.seed(obj_in.external_id, email=obj_in.email)

    async def claim_flag(self, db: AsyncSession, *, user_id: UUID, flag: str) -> bool:
        """Flip a one-way flag; False if it was already set."""
        self._calls.append(("claim_flag", user_id, flag))
        user = self._store.get(user_id)
        if user is None or getattr(user, flag):
            return False
        setattr(user, flag, True)
        return True


class FakeTopupRepository:
    """In-memory fake for TopupRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[UUID, Topup] = {}
        self._calls: list[tuple] = []

    @property
    def topups(self) -> list[Topup]:
        """All stored topups, insertion order."""
        return list(self._store.values())

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get(self, db: AsyncSession, *, topup_id: UUID) -> Optional[Topup]:
        """Get a topup by id."""
        self._calls.append(("get", topup_id))
        return self._store.get(topup_id)

    async def create(self, db: AsyncSession, *, obj_in: object, uow: object) -> Topup:
        """Insert a topup row."""
        self._calls.append(("create", obj_in, uow))
        row = Topup(
            id=uuid4(),
            status=TopupStatus.APPLIED.value,
            created_at=utc_now_naive(),
            **obj_in.model_dump(),
        )
        self._store[row.id] = row
        return row
