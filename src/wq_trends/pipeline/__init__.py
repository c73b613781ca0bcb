"""
Grouped Trend Pipeline

Three independently testable stages applied to a tidy observation table:

    partition -> estimate (assemble) -> classify

Available components:
    - TidyTable: validated observations, daily aggregation, low-flow filters
    - partition: date-sorted, disjoint partitions by grouping columns
    - assemble: per-partition estimation into ordered summary rows
    - classify: p-value threshold labelling
    - run_trend_analysis: the whole pipeline driven by an AnalysisConfig
"""

from .tidy import (
    TidyTable,
    REQUIRED_COLUMNS,
    OBSERVATION_COLUMNS
)

from .partition import (
    partition,
    Partition
)

from .assembler import (
    assemble,
    rows_to_frame,
    is_not_computed,
    SummaryRow,
    STATUS_OK
)

from .classifier import (
    classify,
    classify_rows
)

from .workflow import (
    prepare_table,
    run_trend_analysis
)

__all__ = [
    # Table
    'TidyTable',
    'REQUIRED_COLUMNS',
    'OBSERVATION_COLUMNS',

    # Partitioning
    'partition',
    'Partition',

    # Assembly
    'assemble',
    'rows_to_frame',
    'is_not_computed',
    'SummaryRow',
    'STATUS_OK',

    # Classification
    'classify',
    'classify_rows',

    # Workflow
    'prepare_table',
    'run_trend_analysis'
]
