from voter_roster.models import CallerScope
from voter_roster.services import StatusFilter, available_groups, filter_voters, paginate, search_voters


def test_empty_term_returns_nothing(voters):
    assert search_voters("", voters).matches == []
    assert search_voters("   ", voters).matches == []


def test_substring_match_across_fields(voters):
    assert len(search_voters("văn", voters)) == 2
    assert len(search_voters("khu vực 2", voters)) == 2
    assert len(search_voters("tổ 3", voters)) == 2
    assert len(search_voters("số 1", voters)) == 4


def test_single_match_with_long_term_is_auto_resolved(voters):
    result = search_voters("Trần Thị", voters)

    assert [v.id_card for v in result.matches] == ["002"]
    assert result.auto_resolved.id_card == "002"


def test_short_term_is_not_auto_resolved(voters):
    result = search_voters("bình", voters)

    assert len(result.matches) == 1
    assert result.auto_resolved is None


def test_exact_id_card_is_auto_resolved(voters):
    assert search_voters("003", voters).auto_resolved.id_card == "003"


def test_several_matches_never_auto_resolve(voters):
    result = search_voters("Khu vực 2", voters)

    assert result.auto_resolved is None


def test_staff_search_outside_scope_returns_nothing(engine):
    result = engine.search("Lê Văn Cường", CallerScope.staff("Khu vực 1"))

    assert result.matches == []
    assert result.auto_resolved is None


def test_unassigned_staff_search_returns_nothing(engine):
    assert engine.search("Cử tri", CallerScope.staff(None)).matches == []


def test_filter_by_status_area_group_and_term(voters):
    assert [v.id_card for v in filter_voters(voters, status="voted")] == ["004"]
    assert len(filter_voters(voters, status=StatusFilter.NOT_VOTED)) == 3
    assert len(filter_voters(voters, area="Khu vực 2")) == 2
    assert [v.id_card for v in filter_voters(voters, group="Tổ 2")] == ["002"]
    assert [v.id_card for v in filter_voters(voters, term="00")] == ["001", "002", "003", "004"]
    assert [v.id_card for v in filter_voters(voters, area="Khu vực 2", status="not_voted")] == ["003"]


def test_available_groups(voters):
    assert available_groups(voters) == ["Tổ 1", "Tổ 2", "Tổ 3"]
    assert available_groups(voters, area="Khu vực 2") == ["Tổ 3"]


def test_paginate_clamps_pages():
    items = list(range(23))

    page = paginate(items, page=3, per_page=10)
    assert page.items == [20, 21, 22]
    assert page.total_pages == 3 and not page.has_next

    assert paginate(items, page=99, per_page=10).page == 3
    assert paginate(items, page=0, per_page=10).items == list(range(10))
    assert paginate([], page=1).items == []


def test_list_voters_uses_configured_page_size(engine, admin):
    page = engine.list_voters(admin, status="all")

    assert page.per_page == 10
    assert page.total_items == 4
