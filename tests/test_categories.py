"""Tests for read/write aggregation of per-operation counters."""
from mongodb_exporter.categories import (
    READ, WRITE, TOP_OPERATION_CATEGORIES, BucketTotals, CategoryAggregator, OpCounter,
)


def test_read_write_buckets():
    aggregator = CategoryAggregator()
    series, totals = aggregator.aggregate({
        "Queries": OpCounter(time=2_000_000, count=4),
        "Insert": OpCounter(time=1_000_000, count=2),
        "WriteLock": OpCounter(time=500_000, count=1),
    })

    assert totals[READ] == BucketTotals(time_seconds=2.0, count=4)
    assert totals[WRITE] == BucketTotals(time_seconds=1.0, count=2)

    # Unclassified operations still get their own series.
    by_type = {op.op_type: op for op in series}
    assert by_type["WriteLock"].time_seconds == 0.5
    assert by_type["WriteLock"].count == 1


def test_time_conversion_is_exact_division():
    _, totals = CategoryAggregator().aggregate({"Queries": OpCounter(time=1, count=1)})
    assert totals[READ].time_seconds == 1 / 1e6


def test_totals_accumulate_across_calls():
    aggregator = CategoryAggregator()
    totals = aggregator.new_totals()
    aggregator.aggregate({"GetMore": OpCounter(1_000_000, 1)}, totals)
    aggregator.aggregate({"Commands": OpCounter(3_000_000, 2), "Remove": OpCounter(0, 5)}, totals)

    assert totals[READ].time_seconds == 4.0
    assert totals[READ].count == 3
    assert totals[WRITE].count == 5


def test_empty_input_yields_zero_buckets():
    series, totals = CategoryAggregator().aggregate({})
    assert series == []
    assert set(totals) == {READ, WRITE}
    assert all(bucket == BucketTotals() for bucket in totals.values())


def test_category_table():
    assert {op for op, bucket in TOP_OPERATION_CATEGORIES.items() if bucket == READ} == {
        "Queries", "GetMore", "Commands",
    }
    assert {op for op, bucket in TOP_OPERATION_CATEGORIES.items() if bucket == WRITE} == {
        "Insert", "Update", "Remove",
    }
    for unclassified in ("Total", "ReadLock", "WriteLock"):
        assert unclassified not in TOP_OPERATION_CATEGORIES


def test_custom_categories():
    aggregator = CategoryAggregator({"ReadLock": "Lock"})
    assert aggregator.buckets == ["Lock"]
    _, totals = aggregator.aggregate({"ReadLock": OpCounter(2_000_000, 1)})
    assert totals["Lock"].time_seconds == 2.0
