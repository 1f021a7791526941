"""In-memory aggregation and correlation engine for holdings tables."""

from .schema import ColumnSpec, ColumnType, Schema
from .table import ColumnView, HoldingRecord, Table, load
from .weights import WeightKind, weight_kind, weights_to_numeric, weights_to_text
from .filters import filter_by_set, filter_in
from .groupby import GroupAggregate, aggregate, collect_unique_joined, count_distinct, first, group_by
from .join import inner_join
from .sorting import Direction, SortKey, SortMode, alphabetical, by_popularity, sort
from .classifier import OverlapShape, aggregate_assets, overlap_assets, partition_symbols, unique_assets
from .correlation import CorrelationMatrix, correlation_matrix, pearson
