from __future__ import annotations

import pytest

from permit_analytics.aggregation.distribution import (
    DEFAULT_PALETTE,
    as_dicts,
    build_distribution,
    fixed_distribution,
    humanize,
    slices_total,
    truncate_label,
    zero_filled_distribution,
)


def _rows(**counts: int):
    return [{"kind": kind} for kind, n in counts.items() for _ in range(n)]


def test_top_n_drops_excess_without_merging() -> None:
    slices = build_distribution(_rows(A=5, B=5, C=1), "kind", top_n=2)

    assert [(s.name, s.value) for s in slices] == [("A", 5), ("B", 5)]
    assert all(s.name != "Other" for s in slices)


def test_ties_keep_first_seen_order() -> None:
    slices = build_distribution(_rows(B=2, A=2, C=3), "kind")
    assert [s.name for s in slices] == ["C", "B", "A"]


def test_colours_follow_rank_after_sorting() -> None:
    slices = build_distribution(_rows(small=1, big=9), "kind")
    assert slices[0].name == "big"
    assert slices[0].color == DEFAULT_PALETTE[0]
    assert slices[1].color == DEFAULT_PALETTE[1]


def test_palette_cycles() -> None:
    rows = _rows(**{f"k{i}": 20 - i for i in range(len(DEFAULT_PALETTE) + 1)})
    slices = build_distribution(rows, "kind")
    assert slices[-1].color == DEFAULT_PALETTE[0]


def test_sum_before_truncation_equals_row_count() -> None:
    rows = _rows(A=4, B=3) + [{"kind": None}, {"kind": "  "}, {}]
    slices = build_distribution(rows, "kind", "Unspecified")
    assert slices_total(slices) == len(rows)
    assert ("Unspecified", 3) in [(s.name, s.value) for s in slices]


def test_value_field_sums_instead_of_counting() -> None:
    rows = [
        {"invoice_type": "annual_fee", "amount": 100},
        {"invoice_type": "annual_fee", "amount": "50"},
        {"invoice_type": None, "amount": 400},
    ]
    slices = build_distribution(rows, "invoice_type", "General", value_field="amount")
    assert [(s.name, s.value) for s in slices] == [("General", 400), ("annual_fee", 150)]


def test_drop_zero_removes_empty_slices() -> None:
    rows = [{"kind": "a", "v": 0}, {"kind": "b", "v": 3}]
    assert [s.name for s in build_distribution(rows, "kind", value_field="v", drop_zero=True)] == ["b"]
    assert [s.name for s in build_distribution(rows, "kind", value_field="v")] == ["b", "a"]


def test_label_transform_applies_to_grouped_categories() -> None:
    rows = [{"t": "site_verification"}, {"t": "site_verification"}, {"t": "follow_up"}]
    slices = build_distribution(rows, "t", label=humanize)
    assert [(s.name, s.value) for s in slices] == [("Site Verification", 2), ("Follow Up", 1)]


def test_categories_with_colliding_labels_share_a_slice() -> None:
    rows = [
        {"t": "Environment Permit Level 2"},
        {"t": "Water Extraction"},
        {"t": "Environment Permit Level 3"},
        {"t": "Water Extraction"},
        {"t": "Environment Permit Level 3"},
    ]
    slices = build_distribution(rows, "t", top_n=1, label=truncate_label)
    assert [(s.name, s.value) for s in slices] == [("Environment Permit L...", 3)]

    names = [s.name for s in build_distribution(rows, "t", label=truncate_label)]
    assert len(names) == len(set(names))


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Water Extraction", "Water Extraction"),
        ("Environment Permit Level 2", "Environment Permit L..."),
    ],
)
def test_truncate_label(name: str, expected: str) -> None:
    assert truncate_label(name) == expected


def test_empty_rows_give_empty_distribution() -> None:
    assert build_distribution(None, "kind") == []
    assert build_distribution([], "kind") == []


def test_fixed_distribution_keeps_order_and_drops_zero() -> None:
    slices = fixed_distribution([("Paid", 2, "#10b981"), ("Pending", 0, "#f59e0b"), ("Overdue", 5, "#ef4444")])
    assert [(s.name, s.color) for s in slices] == [("Paid", "#10b981"), ("Overdue", "#ef4444")]


def test_zero_filled_distribution_lists_every_category() -> None:
    rows = [{"province": "Enga"}, {"province": "Enga"}, {"province": "Manus"}, {"province": "Atlantis"}]
    slices = zero_filled_distribution(rows, "province", ["Manus", "Enga", "Gulf"])
    assert [(s.name, s.value) for s in slices] == [("Enga", 2), ("Manus", 1), ("Gulf", 0)]


def test_as_dicts_shape() -> None:
    out = as_dicts(build_distribution(_rows(A=1), "kind"))
    assert out == [{"name": "A", "value": 1, "color": DEFAULT_PALETTE[0]}]


def test_build_distribution_is_idempotent() -> None:
    rows = _rows(A=2, B=1)
    assert build_distribution(rows, "kind") == build_distribution(rows, "kind")
