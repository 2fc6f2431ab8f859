from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Any, Dict, Literal

# One record of a sheet, keyed by column name. Values are raw scalars:
# None, int/float, bool, str, date/datetime.
Row = Dict[str, Any]


class ColumnType(str, Enum):
    # Declaration order is the tie-breaker for column type votes
    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    TEXT = "text"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class NumericStats(FrozenModel):
    count: int
    mean: float
    median: float
    std: float
    min: float
    max: float
    q1: float
    q3: float
    iqr: float
    skewness: float


class CategoryCount(FrozenModel):
    value: str
    count: int


class DateCoverage(FrozenModel):
    start: datetime
    end: datetime
    days: int


class ColumnProfile(FrozenModel):
    name: str
    type: ColumnType
    non_null_count: int
    null_count: int
    unique_count: int
    sample_values: List[Any]
    stats: Optional[NumericStats] = None  # numeric columns only
    top_categories: Optional[List[CategoryCount]] = None  # categorical, text, boolean
    date_coverage: Optional[DateCoverage] = None  # datetime columns only


class DatasetProfile(FrozenModel):
    row_count: int
    column_count: int
    completeness: float  # 0..1
    columns: List[ColumnProfile]
    numeric_columns: List[str]
    categorical_columns: List[str]
    datetime_columns: List[str]
    boolean_columns: List[str]

    def column(self, name: str) -> Optional[ColumnProfile]:
        return next((c for c in self.columns if c.name == name), None)


class CorrelationMatrix(FrozenModel):
    columns: List[str]
    values: List[List[float]]  # pearson r


class TrendPoint(FrozenModel):
    date: datetime
    values: Dict[str, float]


class TemporalTrend(FrozenModel):
    date_column: str
    aggregation: str = "mean"
    series: List[TrendPoint]


class StrongCorrelation(FrozenModel):
    a: str
    b: str
    r: float


class MissingColumn(FrozenModel):
    name: str
    missing_rate: float


class OutlierColumn(FrozenModel):
    name: str
    outlier_rate: float


class CategoryImbalance(FrozenModel):
    name: str
    top: str
    share: float


class SeasonalityCandidate(FrozenModel):
    column: str
    lag: int
    acf: float


class Insights(FrozenModel):
    strong_correlations: List[StrongCorrelation] = []
    high_missing_columns: List[MissingColumn] = []
    outlier_columns: List[OutlierColumn] = []
    category_imbalance: List[CategoryImbalance] = []
    seasonality_candidates: List[SeasonalityCandidate] = []
    recommendations: List[str] = []


class CrossTab(FrozenModel):
    rows: List[str]
    cols: List[str]
    matrix: List[List[int]]


class HistogramBucket(FrozenModel):
    x0: float
    x1: float
    label: str
    count: int


class BoxSummary(FrozenModel):
    min: float
    q1: float
    median: float
    q3: float
    max: float


class FiltersState(BaseModel):
    """Filter selections owned by the dashboard UI."""
    date_column: Optional[str] = None
    date_from: Optional[str] = None  # ISO date, inclusive
    date_to: Optional[str] = None  # ISO date, inclusive
    category_column: Optional[str] = None
    selected_categories: Optional[List[str]] = None


class ChartOptions(BaseModel):
    """Presentation hints; only bins and aggregation reach the analysis code."""
    palette: str = "default"
    bins: int = Field(default=20, ge=1, le=200)
    aggregation: Literal["mean", "sum", "count"] = "mean"


class Sheet(BaseModel):
    name: str
    rows: List[Row]


class WorkbookMetadata(BaseModel):
    sheet_names: List[str]
    total_rows: int
    total_columns: int
    file_name: str
    file_size: int


class ParsedWorkbook(BaseModel):
    sheets: List[Sheet]
    metadata: WorkbookMetadata

    def sheet(self, name: Optional[str] = None) -> Optional[Sheet]:
        if name is None:
            return self.sheets[0] if self.sheets else None
        return next((s for s in self.sheets if s.name == name), None)


class DashboardView(BaseModel):
    """Display-level aggregates computed on the filtered rows."""
    row_count: int
    filtered_row_count: int
    numeric_series: Dict[str, List[float]]
    histograms: Dict[str, List[HistogramBucket]]
    box_plots: Dict[str, Optional[BoxSummary]]
    value_counts: Dict[str, Dict[str, int]]
    cross_tab: Optional[CrossTab] = None
    trend: Optional[TemporalTrend] = None
    missingness: List[List[bool]]
    preview: List[Row]


class AnalysisResult(BaseModel):
    dataset_id: Optional[str] = None
    filename: str
    metadata: Optional[WorkbookMetadata] = None
    sheet: str
    profile: DatasetProfile
    insights: Insights
    correlation: Optional[CorrelationMatrix] = None
    chart_suggestions: List[str] = []
    preview: List[Row] = []


class ViewRequest(BaseModel):
    sheet: Optional[str] = None
    filters: FiltersState = FiltersState()
    options: ChartOptions = ChartOptions()


class AnalyzeRequest(BaseModel):
    rows: List[Row]
    filters: FiltersState = FiltersState()
    options: ChartOptions = ChartOptions()


class AnalyzeResponse(BaseModel):
    profile: DatasetProfile
    insights: Insights
    correlation: CorrelationMatrix
    view: DashboardView
