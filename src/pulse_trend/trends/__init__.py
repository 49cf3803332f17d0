"""Read-side projections over retained history."""

from pulse_trend.trends.assembler import (
    RunTrendPoint,
    TestHistory,
    TrendAssembler,
    TrendData,
    TrendPoint,
    load_trends,
)


__all__ = ["RunTrendPoint", "TestHistory", "TrendAssembler", "TrendData", "TrendPoint", "load_trends"]
