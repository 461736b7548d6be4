import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("LOG_TO_FILE", "0")

from voter_roster.config import get_config, reset_config
from voter_roster.models import CallerScope, Voter
from voter_roster.persistence import InMemoryVoterStore
from voter_roster.services import RosterContext, RosterEngine

FIXED_NOW = datetime(2026, 5, 22, 8, 30, tzinfo=timezone.utc)


def make_voter(id_card, area="Khu vực 1", **kwargs):
    values = dict(
        id=f"v-{id_card}",
        id_card=id_card,
        full_name=f"Cử tri {id_card}",
        address="Số 1",
        neighborhood="Khu phố 1",
        constituency="Đơn vị 1",
        voting_group="Tổ 1",
        voting_area=area,
    )
    values.update(kwargs)
    return Voter(**values)


@pytest.fixture(autouse=True)
def roster_config(monkeypatch, tmp_path):
    """Fresh config per test, no log files, exports under tmp_path."""
    monkeypatch.setenv("LOG_TO_FILE", "0")
    monkeypatch.setenv("ROSTER_STORE", "memory")
    monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "exports"))
    monkeypatch.delenv("IMPORT_POLICY", raising=False)
    reset_config()
    yield get_config()
    reset_config()


@pytest.fixture
def voters():
    return [
        make_voter("001", full_name="Nguyễn Văn An", voting_group="Tổ 1"),
        make_voter("002", full_name="Trần Thị Bình", voting_group="Tổ 2"),
        make_voter("003", area="Khu vực 2", full_name="Lê Văn Cường", voting_group="Tổ 3"),
        make_voter("004", area="Khu vực 2", full_name="Phạm Thị Dung", voting_group="Tổ 3",
                   has_voted=True, voted_at=FIXED_NOW),
    ]


@pytest.fixture
def store(voters):
    return InMemoryVoterStore(voters)


@pytest.fixture
def engine(roster_config, store):
    return RosterEngine(RosterContext(config=roster_config, store=store), clock=lambda: FIXED_NOW)


@pytest.fixture
def admin():
    return CallerScope.admin()


@pytest.fixture
def staff_area1():
    return CallerScope.staff("Khu vực 1")
