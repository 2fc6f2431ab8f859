"""
Insight derivation.

Turns a dataset profile plus its rows into cross-column diagnostics:
strong correlations, missingness, outliers, category imbalance,
seasonality candidates and plain-language recommendations.
"""
import logging
from typing import List, Sequence

from insightforge.core.schemas import (
    CategoryImbalance,
    ColumnType,
    DatasetProfile,
    Insights,
    MissingColumn,
    OutlierColumn,
    Row,
    SeasonalityCandidate,
    StrongCorrelation,
)
from insightforge.services.aggregation import column_numbers, correlation_matrix, temporal_trends
from insightforge.services.statistics import autocorrelation, iqr_outlier_rate

logger = logging.getLogger(__name__)

STRONG_CORRELATION = 0.7
HIGH_MISSING_RATE = 0.2
OUTLIER_RATE = 0.05
MIN_OUTLIER_VALUES = 5
IMBALANCE_SHARE = 0.6
SEASONALITY_ACF = 0.5
SEASONAL_LAGS = (7, 12, 30)
MANY_NUMERIC_COLUMNS = 5

RECOMMEND_IMPUTATION = (
    "Consider imputing missing values (mean/median/mode) or dropping columns with high missingness."
)
RECOMMEND_ROBUST_SCALING = "Winsorize or apply robust scaling to columns with many outliers."
RECOMMEND_ENCODING = (
    "Encode categorical variables and consider techniques to handle class imbalance."
)
RECOMMEND_NORMALIZATION = "Normalize or standardize numeric features to improve comparability."
RECOMMEND_MULTICOLLINEARITY = (
    "High correlations detected; consider removing multicollinearity for modeling."
)


def detect_outliers(rows: Sequence[Row], numeric_columns: Sequence[str]) -> List[OutlierColumn]:
    """IQR outlier rate for every numeric column with at least five values."""
    result = []
    for column in numeric_columns:
        numbers = column_numbers(rows, column)
        if len(numbers) < MIN_OUTLIER_VALUES:
            continue
        result.append(OutlierColumn(name=column, outlier_rate=iqr_outlier_rate(numbers)))
    return result


def _strong_correlations(profile: DatasetProfile, rows: Sequence[Row]) -> List[StrongCorrelation]:
    if len(profile.numeric_columns) < 2:
        return []
    corr = correlation_matrix(rows, profile.numeric_columns)
    pairs = []
    for i, a in enumerate(corr.columns):
        for j in range(i + 1, len(corr.columns)):
            r = corr.values[i][j]
            if abs(r) >= STRONG_CORRELATION:
                pairs.append(StrongCorrelation(a=a, b=corr.columns[j], r=r))
    return pairs


def _high_missing(profile: DatasetProfile) -> List[MissingColumn]:
    row_count = profile.row_count or 1
    flagged = [
        MissingColumn(name=c.name, missing_rate=c.null_count / row_count)
        for c in profile.columns
        if c.null_count / row_count > HIGH_MISSING_RATE
    ]
    return sorted(flagged, key=lambda m: m.missing_rate, reverse=True)


def _category_imbalance(profile: DatasetProfile) -> List[CategoryImbalance]:
    result = []
    for column in profile.columns:
        if column.type != ColumnType.CATEGORICAL or not column.top_categories:
            continue
        top = column.top_categories[0]
        share = top.count / (column.non_null_count or 1)
        if share > IMBALANCE_SHARE:
            result.append(CategoryImbalance(name=column.name, top=top.value, share=share))
    return result


def _seasonality(profile: DatasetProfile, rows: Sequence[Row]) -> List[SeasonalityCandidate]:
    if not profile.datetime_columns or not profile.numeric_columns:
        return []

    # Insight trends always average per day, whatever the chart options say
    trend = temporal_trends(rows, profile.datetime_columns[0], profile.numeric_columns, "mean")
    candidates = []
    for column in profile.numeric_columns:
        series = [point.values[column] for point in trend.series]
        for lag in SEASONAL_LAGS:
            acf = autocorrelation(series, min(lag, len(series) // 2))
            if acf > SEASONALITY_ACF:
                candidates.append(SeasonalityCandidate(column=column, lag=lag, acf=acf))
    return candidates


def build_recommendations(
    profile: DatasetProfile,
    high_missing: Sequence[MissingColumn],
    outliers: Sequence[OutlierColumn],
    imbalance: Sequence[CategoryImbalance],
    correlations: Sequence[StrongCorrelation],
) -> List[str]:
    recommendations = []
    if high_missing:
        recommendations.append(RECOMMEND_IMPUTATION)
    if outliers:
        recommendations.append(RECOMMEND_ROBUST_SCALING)
    if imbalance:
        recommendations.append(RECOMMEND_ENCODING)
    if len(profile.numeric_columns) > MANY_NUMERIC_COLUMNS:
        recommendations.append(RECOMMEND_NORMALIZATION)
    if correlations:
        recommendations.append(RECOMMEND_MULTICOLLINEARITY)
    return recommendations


def derive_insights(profile: DatasetProfile, rows: Sequence[Row]) -> Insights:
    """
    Derive dataset-level diagnostics.

    Args:
        profile: Profile computed from the same (unfiltered) rows
        rows: The rows the profile describes

    Returns:
        Insights value object; recomputed on every call
    """
    strong = _strong_correlations(profile, rows)
    high_missing = _high_missing(profile)
    outliers = [
        o for o in detect_outliers(rows, profile.numeric_columns)
        if o.outlier_rate > OUTLIER_RATE
    ]
    imbalance = _category_imbalance(profile)
    seasonality = _seasonality(profile, rows)

    logger.debug(
        f"Derived insights: {len(strong)} correlations, {len(high_missing)} missing, "
        f"{len(outliers)} outlier, {len(imbalance)} imbalanced, {len(seasonality)} seasonal"
    )

    return Insights(
        strong_correlations=strong,
        high_missing_columns=high_missing,
        outlier_columns=outliers,
        category_imbalance=imbalance,
        seasonality_candidates=seasonality,
        recommendations=build_recommendations(profile, high_missing, outliers, imbalance, strong),
    )


def suggest_charts(profile: DatasetProfile) -> List[str]:
    """Chart types worth showing for this profile."""
    suggestions = []
    if profile.numeric_columns:
        suggestions.append("Histograms and box plots for numeric distributions")
    if len(profile.numeric_columns) >= 2:
        suggestions.append("Correlation heatmap and scatter plot matrix to explore relationships")
    if profile.datetime_columns:
        suggestions.append("Time series trends for temporal patterns")
    if profile.categorical_columns:
        suggestions.append("Bar and pie charts for categorical proportions")
    return suggestions
