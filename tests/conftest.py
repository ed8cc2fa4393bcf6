"""Shared fixtures: a throwaway SQLite database and fakes for the outside world."""

import pytest
import pytest_asyncio

from config import Settings
from rewardbot.database.db import init_db, make_engine, make_sessionmaker
from rewardbot.database.store import Store
from rewardbot.errors import RailError
from rewardbot.identity import IdentityRegistry
from rewardbot.ledger import Ledger
from rewardbot.money import to_units
from rewardbot.onboarding import Onboarding
from rewardbot.referrals import ReferralEngine
from rewardbot.submissions import SubmissionWorkflow

ADMIN_ID = 1000


class FakeRail:
    def __init__(self, balance="100"):
        self.balance = to_units(balance)
        self.fail_transfers = False
        self.fail_balance = False
        self.transfers = []

    async def operating_balance(self) -> int:
        if self.fail_balance:
            raise RailError("balance endpoint down")
        return self.balance

    async def transfer(self, wallet: str, amount: int) -> str:
        if self.fail_transfers:
            raise RailError("transfer rejected")
        self.transfers.append((wallet, amount))
        self.balance -= amount
        return f"tx-{len(self.transfers)}"


class FakeNotifier:
    def __init__(self):
        self.fail = False
        self.messages = []
        self.admin_messages = []
        self.review_requests = []
        self.broadcasts = []

    async def send(self, chat_id, text, reply_markup=None) -> bool:
        if self.fail:
            return False
        self.messages.append((chat_id, text))
        return True

    async def notify_admins(self, text) -> int:
        if self.fail:
            return 0
        self.admin_messages.append(text)
        return 1

    async def review_request(self, submission, task) -> int:
        self.review_requests.append((submission.id, task.id))
        return 1

    async def broadcast(self, user_ids, text) -> int:
        user_ids = list(user_ids)
        self.broadcasts.append((user_ids, text))
        return len(user_ids)


class FakeMembership:
    def __init__(self):
        self.members = set()

    async def is_member(self, user_id: int) -> bool:
        return user_id in self.members


@pytest.fixture
def settings():
    return Settings(
        admin_ids=frozenset({ADMIN_ID}),
        force_channel="@rewards",
        verify_site_url="https://verify.example",
    )


@pytest_asyncio.fixture
async def store(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'rewardbot.db'}")
    await init_db(engine)
    yield Store(make_sessionmaker(engine))
    await engine.dispose()


@pytest.fixture
def rail():
    return FakeRail()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def membership():
    return FakeMembership()


@pytest.fixture
def ledger(store, rail, settings):
    return Ledger(store, rail, settings)


@pytest.fixture
def identity(store, notifier):
    return IdentityRegistry(store, notifier)


@pytest.fixture
def workflow(store, notifier, settings):
    return SubmissionWorkflow(store, notifier, settings)


@pytest.fixture
def referrals(store, ledger, rail, notifier, settings):
    return ReferralEngine(store, ledger, rail, notifier, settings)


@pytest.fixture
def onboarding(store, membership, ledger, referrals):
    return Onboarding(store, membership, ledger, referrals)
