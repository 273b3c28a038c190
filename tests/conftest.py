"""
Pytest configuration for Payment Relay tests.

Adds the repository root to ``sys.path`` so ``payment_relay`` imports work
without installing the package, and provides shared fixtures: a SQLite
database under ``tmp_path`` seeded with two stores and a few vendors, and a
recording stand-in for the Slack platform.
"""

import os
import sys

import pytest

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from payment_relay.channels import ChannelDirectory, StoreInfo  # noqa: E402
from payment_relay.database import init_db, make_engine, make_session_factory  # noqa: E402
from payment_relay.errors import NotificationError  # noqa: E402
from payment_relay.models import Store, Vendor  # noqa: E402
from payment_relay.slack_client import ChatPlatform  # noqa: E402


class FakePlatform(ChatPlatform):
    """Records every Slack call; individual methods can be made to fail."""

    def __init__(self) -> None:
        self.posted = []
        self.updated = []
        self.reactions = []
        self.responses = []
        self.fail = set()
        self._counter = 0

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise NotificationError(f"{name} failed")

    def post_message(self, channel, text, blocks=None, thread_ts=None):
        self._maybe_fail("post_message")
        self._counter += 1
        ts = f"1700000000.{self._counter:06d}"
        self.posted.append({"channel": channel, "text": text, "blocks": blocks, "thread_ts": thread_ts, "ts": ts})
        return ts

    def update_message(self, channel, ts, text, blocks=None):
        self._maybe_fail("update_message")
        self.updated.append({"channel": channel, "ts": ts, "text": text, "blocks": blocks})

    def add_reaction(self, channel, ts, name):
        self._maybe_fail("add_reaction")
        self.reactions.append((channel, ts, name))

    def get_user_display_name(self, user_id):
        self._maybe_fail("get_user_display_name")
        return {"U1": "Kim Minji"}.get(user_id, user_id)

    def respond(self, response_url, text):
        self._maybe_fail("respond")
        self.responses.append((response_url, text))


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'relay.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = make_session_factory(engine)
    with factory() as session, session.begin():
        session.add_all(
            [
                Store(id=1, name="Pungro Black", channel_id="C001"),
                Store(id=2, name="Jeju Shinhwa", channel_id="C002"),
                Store(id=3, name="Warehouse", channel_id=None),
                Vendor(id=1, name="Green Farm Produce"),
                Vendor(id=2, name="Green Farm"),
                Vendor(id=3, name="Ocean Seafood"),
                Vendor(id=4, name="Seoul Seafood Market"),
            ]
        )
    return factory


@pytest.fixture
def directory():
    return ChannelDirectory.from_mapping(
        {
            "C001": StoreInfo(store_id=1, name="Pungro Black"),
            "C002": StoreInfo(store_id=2, name="Jeju Shinhwa"),
        }
    )


@pytest.fixture
def platform():
    return FakePlatform()
