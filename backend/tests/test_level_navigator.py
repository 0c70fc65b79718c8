"""Tests for hierarchy drill-down state and queries."""

import pytest

from facetstudio.services.level_navigator import (
    NavigatorState,
    ClearSelections,
    OpenDropdown,
    PickSearchResult,
    SelectLevel,
    SetGlobalSearch,
    SetLevelSearch,
    backfill_selections,
    global_search,
    level_options,
    reduce,
    resolve_selection,
    split_path,
    truncate_to_depth,
)

CATEGORIES = [
    {"id": 1, "category_path": "Marine > Safety > Life Jackets"},
    {"id": 2, "category_path": "Marine > Safety > Flares"},
    {"id": 3, "category_path": "Marine > Electronics > GPS"},
    {"id": 4, "category_path": "Marine>Electronics>Radios"},
    {"id": 5, "category_path": "Outdoor > Camping > Tents"},
    {"id": 6, "category_path": "Outdoor > Camping > Stoves", "is_visible": False},
    {"id": 7, "category_path": "Marine > Safety"},
]


def selections(*values):
    return list(values) + [""] * (6 - len(values))


class TestPaths:
    def test_split_trims_segments(self):
        assert split_path(" Marine >Safety >  Life Jackets ") == ["Marine", "Safety", "Life Jackets"]

    def test_split_empty(self):
        assert split_path("") == []
        assert split_path(None) == []

    def test_truncate_to_depth(self):
        assert truncate_to_depth("Marine > Safety > Life Jackets", 2) == ("Marine > Safety", 2, "Safety")

    def test_truncate_zero_depth_keeps_full_path(self):
        assert truncate_to_depth("Marine > Safety > Flares", 0) == ("Marine > Safety > Flares", 3, "Flares")


class TestLevelOptions:
    def test_level_one_lists_distinct_sorted_roots(self):
        assert level_options(CATEGORIES, selections(), 1) == ["Marine", "Outdoor"]

    def test_level_two_under_selected_root(self):
        assert level_options(CATEGORIES, selections("Marine"), 2) == ["Electronics", "Safety"]

    def test_unspaced_separators_are_normalized(self):
        assert "Radios" in level_options(CATEGORIES, selections("Marine", "Electronics"), 3)

    def test_gap_in_ancestors_returns_empty(self):
        assert level_options(CATEGORIES, selections("", "Safety"), 3) == []
        assert level_options(CATEGORIES, selections(), 2) == []

    def test_hidden_categories_are_excluded(self):
        assert level_options(CATEGORIES, selections("Outdoor", "Camping"), 3) == ["Tents"]

    def test_filter_is_case_insensitive(self):
        assert level_options(CATEGORIES, selections("Marine", "Safety"), 3, "LIFE") == ["Life Jackets"]

    def test_rejects_level_out_of_range(self):
        with pytest.raises(ValueError):
            level_options(CATEGORIES, selections(), 7)


class TestReduce:
    def test_changing_level_one_clears_deeper_levels(self):
        state = reduce(NavigatorState(), PickSearchResult("Marine > Safety > Life Jackets"))
        state = reduce(state, SelectLevel(1, "Outdoor"))
        assert state.level_selections == ("Outdoor", "", "", "", "", "")

    def test_changing_level_two_clears_deeper_levels(self):
        state = reduce(NavigatorState(), PickSearchResult("Marine > Safety > Life Jackets"))
        state = reduce(state, SelectLevel(2, "Electronics"))
        assert state.level_selections == ("Marine", "Electronics", "", "", "", "")

    def test_changing_level_three_keeps_deeper_levels(self):
        state = reduce(NavigatorState(), PickSearchResult("Marine > Electronics > Radios > Handheld"))
        state = reduce(state, SelectLevel(3, "GPS"))
        assert state.selection(4) == "Handheld"
        assert state.selection(3) == "GPS"

    def test_pick_search_result_backfills_all_levels(self):
        state = reduce(NavigatorState(global_search="jack"), PickSearchResult("Marine > Safety > Life Jackets"))
        assert state.level_selections[:3] == ("Marine", "Safety", "Life Jackets")
        assert state.global_search == ""
        assert state.depth == 3

    def test_level_search_opens_dropdown(self):
        state = reduce(NavigatorState(), SetLevelSearch(2, "saf"))
        assert state.open_dropdown == 2
        assert state.level_searches[1] == "saf"

    def test_select_closes_dropdown_and_clears_its_search(self):
        state = reduce(NavigatorState(), SetLevelSearch(1, "mar"))
        state = reduce(state, SelectLevel(1, "Marine"))
        assert state.open_dropdown is None
        assert state.level_searches[0] == ""

    def test_clear_resets_everything(self):
        state = reduce(NavigatorState(), SetGlobalSearch("gps"))
        state = reduce(state, OpenDropdown(1))
        assert reduce(state, ClearSelections()) == NavigatorState()

    def test_backfill_pads_to_six_levels(self):
        assert backfill_selections("A > B") == ("A", "B", "", "", "", "")


class TestGlobalSearch:
    def test_matches_substring_of_full_path(self):
        results = global_search(CATEGORIES, "safety")
        assert {c["id"] for c in results} == {1, 2, 7}

    def test_constrained_by_selected_prefix(self):
        results = global_search(CATEGORIES, "a", selections("Outdoor"))
        assert [c["id"] for c in results] == [5]

    def test_result_count_is_capped(self):
        many = [{"id": i, "category_path": f"Root > Item {i}"} for i in range(120)]
        assert len(global_search(many, "item")) == 50

    def test_blank_query_returns_nothing(self):
        assert global_search(CATEGORIES, "   ") == []


class TestResolveSelection:
    def test_exact_match(self):
        resolution = resolve_selection(CATEGORIES, selections("Marine", "Safety", "Flares"))
        assert resolution.exact_id == 2
        assert not resolution.needs_confirmation

    def test_descendants_without_exact_match_need_confirmation(self):
        resolution = resolve_selection(CATEGORIES, selections("Marine", "Electronics"))
        assert resolution.exact_id is None
        assert sorted(resolution.descendant_ids) == [3, 4]
        assert resolution.needs_confirmation

    def test_exact_match_also_lists_descendants(self):
        resolution = resolve_selection(CATEGORIES, selections("Marine", "Safety"))
        assert resolution.exact_id == 7
        assert sorted(resolution.descendant_ids) == [1, 2]
