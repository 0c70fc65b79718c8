"""Tests for facet normalization, ranking, selection and CSV export."""

import csv
import io

from facetstudio.services.facet_export import (
    DEFAULT_EXPORT_COLUMNS,
    FacetRow,
    FacetSelection,
    export_columns,
    facets_to_csv,
    group_by_category,
    normalize_facet,
)
from facetstudio.services.facet_ranking import rank_facets, trim_to_limit


class TestNormalizeFacet:
    def test_canonical_keys(self):
        row = normalize_facet({
            "facet_name": "Brand",
            "possible_values": "A, B",
            "filling_percentage": 90,
            "priority": "high",
            "confidence_score": 9,
            "num_sources": 4,
            "source_urls": ["https://a.example", "https://b.example"],
        })
        assert row.facet_name == "Brand"
        assert row.priority == "High"
        assert row.source_urls == "https://a.example, https://b.example"

    def test_lettered_headers(self):
        row = normalize_facet({
            "C. Filter Attributes": "Size",
            "D. Possible Values": "S, M, L",
            "E. Filling Percentage (Approx.)": "85%",
            "F. Priority (High / Medium / Low)": "Low",
        })
        assert row.facet_name == "Size"
        assert row.possible_values == "S, M, L"
        assert row.filling_percentage == 85
        assert row.priority == "Low"

    def test_bare_letters_and_custom_headers(self):
        columns = list(DEFAULT_EXPORT_COLUMNS)
        columns[2] = "Attribute"
        row = normalize_facet({"Attribute": "Color", "G": 7}, columns)
        assert row.facet_name == "Color"
        assert row.confidence_score == 7

    def test_defaults_for_missing_fields(self):
        row = normalize_facet({"facet_name": "Material"})
        assert row.possible_values == "N/A"
        assert row.filling_percentage == 0
        assert row.priority == "Medium"
        assert row.num_sources == 0

    def test_fraction_percentage_is_scaled(self):
        assert normalize_facet({"facet_name": "X", "filling_percentage": 0.75}).filling_percentage == 75

    def test_out_of_range_values_are_clamped(self):
        row = normalize_facet({"facet_name": "X", "filling_percentage": 140, "confidence_score": 15})
        assert row.filling_percentage == 100
        assert row.confidence_score == 10

    def test_unknown_priority_becomes_medium(self):
        assert normalize_facet({"facet_name": "X", "priority": "urgent"}).priority == "Medium"


class TestRanking:
    def test_sort_order_follows_priority_confidence_filling(self):
        facets = [
            {"facet_name": "low", "priority": "Low", "confidence_score": 10, "filling_percentage": 100},
            {"facet_name": "med", "priority": "Medium", "confidence_score": 5, "filling_percentage": 50},
            {"facet_name": "high-a", "priority": "High", "confidence_score": 8, "filling_percentage": 60},
            {"facet_name": "high-b", "priority": "High", "confidence_score": 8, "filling_percentage": 90},
            {"facet_name": "high-c", "priority": "High", "confidence_score": 9, "filling_percentage": 10},
        ]
        ranked = rank_facets(facets)
        assert [f["facet_name"] for f in ranked] == ["high-c", "high-b", "high-a", "med", "low"]
        assert [f["sort_order"] for f in ranked] == [1, 2, 3, 4, 5]

    def test_unknown_priority_sorts_last(self):
        ranked = rank_facets([
            {"facet_name": "odd", "priority": "Urgent", "confidence_score": 10},
            {"facet_name": "low", "priority": "Low", "confidence_score": 1},
        ])
        assert ranked[-1]["facet_name"] == "odd"

    def test_trim_keeps_best(self):
        facets = [{"facet_name": str(i), "priority": "Medium", "confidence_score": i} for i in range(5)]
        assert [f["facet_name"] for f in trim_to_limit(facets, 2)] == ["4", "3"]


def rows():
    return [
        FacetRow(facet_name="Brand", id="1", category_id="c1"),
        FacetRow(facet_name="Size", id="2", category_id="c1"),
        FacetRow(facet_name="Color", id="3", category_id="c2"),
    ]


class TestSelection:
    def test_groups_keep_first_seen_order(self):
        groups = group_by_category(rows())
        assert list(groups) == ["c1", "c2"]

    def test_default_tab_is_first_category(self):
        assert FacetSelection(rows()).active_tab == "c1"

    def test_toggle_tab_affects_only_that_tab(self):
        selection = FacetSelection(rows())
        selection.toggle_tab("c1")
        assert selection.selected == {"1", "2"}
        assert selection.tab_selected("c1")
        assert not selection.all_selected
        selection.toggle_tab("c1")
        assert selection.selected == set()

    def test_all_selected_only_when_every_row_selected(self):
        selection = FacetSelection(rows())
        selection.toggle_row("1")
        selection.toggle_row("2")
        assert not selection.all_selected
        selection.toggle_row("3")
        assert selection.all_selected
        selection.toggle_all()
        assert selection.selected == set()

    def test_toggle_all_selects_everything(self):
        selection = FacetSelection(rows())
        selection.toggle_all()
        assert [r.id for r in selection.selected_rows()] == ["1", "2", "3"]


class TestExport:
    def test_export_columns_fallback(self):
        assert export_columns(None) == DEFAULT_EXPORT_COLUMNS
        assert export_columns({"output_format": {"columns": ["A", "B"]}}) == DEFAULT_EXPORT_COLUMNS
        custom = [f"Col {i}" for i in range(9)]
        assert export_columns({"output_format": {"columns": custom}}) == custom

    def test_csv_round_trips_awkward_text(self):
        row = FacetRow(
            facet_name='Size "US"',
            possible_values="S, M, L\nXL",
            filling_percentage=80,
            priority="High",
            confidence_score=9,
            num_sources=3,
            source_urls="https://a.example, https://b.example",
            category_id="c1",
        )
        content = facets_to_csv([row], categories={"c1": ("Marine > Safety > Life Jackets", "Life Jackets")})
        parsed = list(csv.reader(io.StringIO(content)))

        assert parsed[0] == DEFAULT_EXPORT_COLUMNS
        assert parsed[1] == [
            "Marine > Safety > Life Jackets",
            "Life Jackets",
            'Size "US"',
            "S, M, L\nXL",
            "80",
            "High",
            "9",
            "3",
            "https://a.example, https://b.example",
        ]

    def test_numbers_are_unquoted_and_text_quoted(self):
        content = facets_to_csv([FacetRow(facet_name="Brand", filling_percentage=55)])
        data_line = content.splitlines()[1]
        assert '"Brand"' in data_line
        assert ",55," in data_line
