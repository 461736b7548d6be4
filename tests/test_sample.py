from conftest import FIXED_NOW
from voter_roster.persistence import InMemoryVoterStore
from voter_roster.services import generate_sample_roster


def test_sample_hierarchy():
    voters = generate_sample_roster(count=100, seed=7, now=FIXED_NOW)

    assert len(voters) == 100
    assert voters[0].id_card == "100000000000"
    assert voters[0].voting_group == "Tổ 1"
    assert voters[9].voting_group == "Tổ 1"
    assert voters[10].voting_group == "Tổ 2"
    assert voters[24].voting_area == "Khu vực 1"
    assert voters[25].voting_area == "Khu vực 2"
    assert voters[99].constituency == "Đơn vị 2"
    assert voters[99].neighborhood == "Khu phố 5"


def test_sample_is_reproducible_and_consistent():
    first = generate_sample_roster(count=50, seed=1, now=FIXED_NOW)
    second = generate_sample_roster(count=50, seed=1, now=FIXED_NOW)

    assert first == second
    for voter in first:
        assert (voter.voted_at is not None) == voter.has_voted
        if voter.voted_at:
            assert voter.voted_at <= FIXED_NOW


def test_sample_fits_in_a_store():
    store = InMemoryVoterStore(generate_sample_roster(count=30, seed=3))

    assert store.count() == 30
