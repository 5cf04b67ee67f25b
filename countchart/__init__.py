from countchart.axis import ArrowDirection, AxisGeometryConfig, DateAxisRenderer, NumberAxisRenderer
from countchart.chart import CountByDateChart
from countchart.errors import ChartError, InvalidInput, RenderFailure
from countchart.periods import DateScale, RegularPeriod, truncate
from countchart.request import CountByDateChartRequest
from countchart.series import AggregatedPoint, CountSeries, Observation, aggregate, aggregate_pair
from countchart.service import ChartService
from countchart.style import ChartStyle, load_style, validate_style_overrides
from countchart.ticks import DatasetTickSource, NiceDateTickSource, TickCandidate, select_ticks

__all__ = [
    "AggregatedPoint",
    "ArrowDirection",
    "AxisGeometryConfig",
    "ChartError",
    "ChartService",
    "ChartStyle",
    "CountByDateChart",
    "CountByDateChartRequest",
    "CountSeries",
    "DateAxisRenderer",
    "DateScale",
    "DatasetTickSource",
    "InvalidInput",
    "NiceDateTickSource",
    "NumberAxisRenderer",
    "Observation",
    "RegularPeriod",
    "RenderFailure",
    "TickCandidate",
    "aggregate",
    "aggregate_pair",
    "load_style",
    "select_ticks",
    "truncate",
    "validate_style_overrides",
]
