"""Tests for the filter/paginator and action eligibility."""

import pytest
from conftest import HASH_A, HASH_B, HASH_C, make_build

from build_console.builds.view import (
    ViewState,
    available_actions,
    count_pages,
    derive_view,
    find_active,
    find_build,
    matches_search,
    matches_status,
)
from build_console.types import BuildAction, StatusFilter


def numbered_builds(count: int, patched_every: int = 2) -> list:
    """Builds with distinct hashes; every ``patched_every``-th is patched."""
    return [
        make_build(f"{i:040x}", is_patched=(i % patched_every == 0))
        for i in range(count)
    ]


class TestPredicates:
    """Tests for the search and status predicates."""

    def test_empty_search_matches_everything(self) -> None:
        """An empty search text matches every build."""
        assert matches_search(make_build(HASH_A), "")

    def test_search_is_case_insensitive_substring(self) -> None:
        """Search should match any case-insensitive substring of the hash."""
        build = make_build("00ff" + "1" * 36)
        assert matches_search(build, "FF11")
        assert matches_search(build, "00f")
        assert not matches_search(build, "ee")

    def test_search_ignores_channel(self) -> None:
        """Only the hash is searched."""
        assert not matches_search(make_build(HASH_A, channel="canary"), "canary")

    @pytest.mark.parametrize(
        ("status_filter", "is_patched", "expected"),
        [
            (StatusFilter.ALL, True, True),
            (StatusFilter.ALL, False, True),
            (StatusFilter.PATCHED, True, True),
            (StatusFilter.PATCHED, False, False),
            (StatusFilter.PENDING, True, False),
            (StatusFilter.PENDING, False, True),
        ],
    )
    def test_status_predicate(self, status_filter, is_patched, expected) -> None:
        """Status filter should follow is_patched."""
        build = make_build(HASH_A, is_patched=is_patched)
        assert matches_status(build, status_filter) is expected


class TestDeriveView:
    """Tests for derive_view."""

    def test_filters_on_both_predicates(self, sample_builds) -> None:
        """Result should hold exactly the builds matching search and status."""
        view = ViewState(search_text="B", status_filter=StatusFilter.PATCHED)
        page = derive_view(sample_builds, view)
        assert [b.build_hash for b in page.matches] == [HASH_B]

    def test_preserves_snapshot_order(self, sample_builds) -> None:
        """Matching builds should keep server order."""
        page = derive_view(sample_builds, ViewState())
        assert [b.build_hash for b in page.rows] == [HASH_A, HASH_B, HASH_C]
        assert page.total_pages == 1

    def test_patched_filter_on_single_pending_build(self) -> None:
        """Filtering one unpatched build by patched yields nothing and no pages."""
        snapshot = [make_build(HASH_A, is_patched=False, is_active=False)]
        page = derive_view(snapshot, ViewState(status_filter=StatusFilter.PATCHED))
        assert page.matches == ()
        assert page.rows == ()
        assert page.total_pages == 0

    def test_empty_snapshot(self) -> None:
        """An empty snapshot has zero pages."""
        page = derive_view([], ViewState())
        assert page.total_pages == 0
        assert page.rows == ()

    def test_page_slices(self) -> None:
        """Pages should be fixed-size slices of the matches."""
        snapshot = numbered_builds(120)
        first = derive_view(snapshot, ViewState(current_page=1))
        third = derive_view(snapshot, ViewState(current_page=3))

        assert first.total_pages == 3
        assert len(first.rows) == 50
        assert first.rows[0] is snapshot[0]
        assert len(third.rows) == 20
        assert third.rows[-1] is snapshot[-1]

    def test_page_count_after_filter(self) -> None:
        """Page count should follow the filtered size, not the snapshot size."""
        snapshot = numbered_builds(120)
        page = derive_view(snapshot, ViewState(status_filter=StatusFilter.PATCHED))
        assert len(page.matches) == 60
        assert page.total_pages == 2

    def test_custom_page_size(self) -> None:
        """Page size should be configurable."""
        page = derive_view(numbered_builds(7), ViewState(), page_size=3)
        assert page.total_pages == 3
        assert len(page.rows) == 3

    def test_page_beyond_range_is_empty(self) -> None:
        """A page past the end has no rows."""
        page = derive_view(numbered_builds(10), ViewState(current_page=5))
        assert page.rows == ()
        assert page.total_pages == 1

    def test_idempotent(self, sample_builds) -> None:
        """Deriving twice with the same inputs yields the same rows."""
        view = ViewState(search_text="a", status_filter=StatusFilter.PENDING)
        assert derive_view(sample_builds, view) == derive_view(sample_builds, view)

    def test_does_not_mutate_inputs(self, sample_builds) -> None:
        """derive_view should leave the snapshot untouched."""
        before = list(sample_builds)
        derive_view(sample_builds, ViewState(search_text="c"))
        assert sample_builds == before


class TestCountPages:
    """Tests for count_pages."""

    @pytest.mark.parametrize(
        ("count", "expected"), [(0, 0), (1, 1), (50, 1), (51, 2), (100, 2), (101, 3)]
    )
    def test_ceiling(self, count, expected) -> None:
        """Page count is the ceiling of count / page size."""
        assert count_pages(count) == expected


class TestAvailableActions:
    """Tests for available_actions."""

    @pytest.mark.parametrize(
        ("is_patched", "is_active", "expected"),
        [
            (False, False, (BuildAction.DOWNLOAD,)),
            (False, True, (BuildAction.DOWNLOAD,)),
            (True, False, (BuildAction.ACTIVATE, BuildAction.REPATCH)),
            (True, True, (BuildAction.REPATCH,)),
        ],
    )
    def test_eligibility_table(self, is_patched, is_active, expected) -> None:
        """Actions should match the eligibility table for every flag combination."""
        build = make_build(HASH_A, is_patched=is_patched, is_active=is_active)
        assert available_actions(build) == expected


class TestFinders:
    """Tests for find_active and find_build."""

    def test_find_active(self, sample_builds) -> None:
        """find_active should return the active build."""
        assert find_active(sample_builds).build_hash == HASH_C

    def test_find_active_none(self) -> None:
        """find_active should return None without an active build."""
        assert find_active([make_build(HASH_A)]) is None

    def test_find_build_exact_match(self, sample_builds) -> None:
        """find_build should require an exact hash."""
        assert find_build(sample_builds, HASH_B).build_hash == HASH_B
        assert find_build(sample_builds, HASH_B[:12]) is None
