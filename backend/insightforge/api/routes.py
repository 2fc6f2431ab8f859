import io
import logging
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import HTMLResponse, Response, StreamingResponse

from insightforge.core.cache import generate_workbook_cache_key, get_workbook_cache
from insightforge.core.config import get_settings
from insightforge.core.errors import ErrorCodes, get_error_response
from insightforge.core.performance import track_performance
from insightforge.core.rate_limit import limiter, upload_rate_limit
from insightforge.core.sanitization import content_disposition, sanitize_filename, sanitize_for_logging
from insightforge.core.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    AnalyzeResponse,
    ChartOptions,
    DashboardView,
    DatasetProfile,
    FiltersState,
    ParsedWorkbook,
    Row,
    ViewRequest,
)
from insightforge.core.storage import get_dataset_store
from insightforge.services.aggregation import (
    box_summary,
    correlation_matrix,
    cross_tab_columns,
    histogram,
    missingness_grid,
    numeric_series,
    temporal_trends,
    value_counts,
)
from insightforge.services.filters import apply_filters
from insightforge.services.insights import derive_insights, suggest_charts
from insightforge.services.parser import generate_sample_dataset, parse_workbook
from insightforge.services.profiler import profile_data
from insightforge.services.report import create_pdf_report, render_report_html, rows_to_csv, workbook_to_xlsx

logger = logging.getLogger(__name__)

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# The analysis functions stay free of side effects; timings are taken here
tracked_profile_data = track_performance("profile_data")(profile_data)
tracked_derive_insights = track_performance("derive_insights")(derive_insights)


def _http_error(request: Request, status_code: int, code: str, detail: Optional[str] = None) -> HTTPException:
    error_info = get_error_response(code, detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
    return HTTPException(status_code=status_code, detail=error_info)


@router.get("/health")
async def health_check():
    return {"status": "ok"}


async def _check_file_size_streaming(file: UploadFile, limit: int) -> int:
    """Size of an upload, reading at most one chunk past the limit."""
    file_size = 0
    chunk_size = 1024 * 1024

    await file.seek(0)
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        file_size += len(chunk)
        if file_size > limit:
            break

    await file.seek(0)
    return file_size


def _load_workbook(request: Request, dataset_id: str) -> ParsedWorkbook:
    workbook = get_dataset_store().get_workbook(dataset_id)
    if workbook is None:
        raise _http_error(request, 404, ErrorCodes.DATASET_NOT_FOUND)
    return workbook


def _sheet_rows(request: Request, workbook: ParsedWorkbook, sheet: Optional[str]) -> List[Row]:
    found = workbook.sheet(sheet)
    if found is None:
        raise _http_error(
            request, 404, ErrorCodes.SHEET_NOT_FOUND,
            f"Available sheets: {', '.join(workbook.metadata.sheet_names)}"
        )
    return list(found.rows)


def analyze_sheet(workbook: ParsedWorkbook, sheet: Optional[str] = None,
                  dataset_id: Optional[str] = None) -> AnalysisResult:
    """Profile one sheet and derive its insights."""
    settings = get_settings()
    selected = workbook.sheet(sheet)
    rows = list(selected.rows)

    profile = tracked_profile_data(rows)
    insights = tracked_derive_insights(profile, rows)
    correlation = correlation_matrix(rows, profile.numeric_columns) if profile.numeric_columns else None

    logger.info(
        f"Analyzed sheet '{sanitize_for_logging(selected.name)}': {profile.row_count} rows, "
        f"{profile.column_count} columns, {len(insights.recommendations)} recommendations"
    )

    return AnalysisResult(
        dataset_id=dataset_id,
        filename=workbook.metadata.file_name,
        metadata=workbook.metadata,
        sheet=selected.name,
        profile=profile,
        insights=insights,
        correlation=correlation,
        chart_suggestions=suggest_charts(profile),
        preview=rows[:settings.max_preview_rows],
    )


def build_dashboard_view(rows: List[Row], profile: DatasetProfile,
                         filters: Optional[FiltersState] = None,
                         options: Optional[ChartOptions] = None) -> DashboardView:
    """
    Display aggregates for the filtered rows.

    Column roles come from the profile of the unfiltered sheet, so a
    filter never changes which charts are shown.
    """
    settings = get_settings()
    options = options or ChartOptions()
    filtered = apply_filters(rows, filters)

    series = numeric_series(filtered, profile.numeric_columns)
    categorical = profile.categorical_columns[:2]

    trend = None
    if profile.datetime_columns and profile.numeric_columns:
        trend = temporal_trends(
            filtered, profile.datetime_columns[0], profile.numeric_columns, options.aggregation
        )

    return DashboardView(
        row_count=len(rows),
        filtered_row_count=len(filtered),
        numeric_series=series,
        histograms={c: histogram(v, options.bins) for c, v in series.items()},
        box_plots={c: box_summary(v) for c, v in series.items()},
        value_counts={c: value_counts(filtered, c) for c in categorical},
        cross_tab=cross_tab_columns(filtered, categorical[0], categorical[1]) if len(categorical) == 2 else None,
        trend=trend,
        missingness=missingness_grid(filtered),
        preview=filtered[:settings.max_preview_rows],
    )


tracked_dashboard_view = track_performance("dashboard_view")(build_dashboard_view)


async def _process_upload(file: UploadFile, request: Request) -> AnalysisResult:
    """Parse, store and analyze an upload."""
    settings = get_settings()

    file_size = await _check_file_size_streaming(file, settings.max_file_size_bytes)
    if file_size > settings.max_file_size_bytes:
        raise _http_error(
            request, 413, ErrorCodes.FILE_TOO_LARGE,
            f"Maximum size is {settings.max_file_size_mb}MB. Your file is {file_size / 1024 / 1024:.2f}MB"
        )
    if file_size == 0:
        raise _http_error(request, 400, ErrorCodes.FILE_EMPTY)

    safe_filename = sanitize_filename(file.filename)
    logger.info(f"Processing file: {sanitize_for_logging(safe_filename)}, size: {file_size / 1024:.2f}KB")

    file_content = await file.read()
    await file.seek(0)

    cache_key = generate_workbook_cache_key(file_content, safe_filename)
    workbook_cache = get_workbook_cache()
    workbook = workbook_cache.get(cache_key)
    if workbook is not None:
        logger.info(f"Using cached workbook: {sanitize_for_logging(safe_filename)}")
    else:
        try:
            workbook = await parse_workbook(file)
        except HTTPException as e:
            if isinstance(e.detail, dict):
                e.detail['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
            raise
        workbook_cache.set(cache_key, workbook)

    dataset_id = get_dataset_store().save_workbook(workbook, settings.dataset_ttl_seconds)
    return analyze_sheet(workbook, dataset_id=dataset_id)


@router.post("/upload", response_model=AnalysisResult)
@limiter.limit(upload_rate_limit)
async def upload_file(request: Request, file: UploadFile = File(...)):
    """
    Upload an .xlsx, .xls or .csv file and analyze its first sheet.

    The parsed workbook is kept for DATASET_TTL_SECONDS so other sheets
    can be analyzed and filtered by dataset id. Rate limited per IP.
    """
    try:
        return await _process_upload(file, request)
    except HTTPException:
        raise
    except Exception as e:
        safe_filename = sanitize_for_logging(sanitize_filename(file.filename))
        logger.error(f"Unexpected error processing file {safe_filename}: {e}", exc_info=True)
        raise _http_error(request, 500, ErrorCodes.UNKNOWN_ERROR)


@router.post("/sample", response_model=AnalysisResult)
async def load_sample(
    kind: str = Query("sales", pattern="^(sales|finance|survey|ops)$"),
    seed: Optional[int] = None,
):
    """Store and analyze a generated demo dataset."""
    workbook = generate_sample_dataset(kind, seed=seed)
    dataset_id = get_dataset_store().save_workbook(workbook, get_settings().dataset_ttl_seconds)
    return analyze_sheet(workbook, dataset_id=dataset_id)


@router.get("/datasets/{dataset_id}", response_model=AnalysisResult)
async def get_dataset(request: Request, dataset_id: str, sheet: Optional[str] = None):
    """Analyze another sheet of a stored dataset."""
    workbook = _load_workbook(request, dataset_id)
    _sheet_rows(request, workbook, sheet)
    return analyze_sheet(workbook, sheet, dataset_id=dataset_id)


@router.post("/datasets/{dataset_id}/view", response_model=DashboardView)
async def dataset_view(request: Request, dataset_id: str, body: ViewRequest):
    """Dashboard aggregates for a stored sheet under the given filters."""
    workbook = _load_workbook(request, dataset_id)
    rows = _sheet_rows(request, workbook, body.sheet)
    profile = tracked_profile_data(rows)
    return tracked_dashboard_view(rows, profile, body.filters, body.options)


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_rows(body: AnalyzeRequest):
    """Analyze rows sent in the request body; nothing is stored."""
    profile = tracked_profile_data(body.rows)
    insights = tracked_derive_insights(profile, body.rows)
    return AnalyzeResponse(
        profile=profile,
        insights=insights,
        correlation=correlation_matrix(body.rows, profile.numeric_columns),
        view=tracked_dashboard_view(body.rows, profile, body.filters, body.options),
    )


@router.get("/datasets/{dataset_id}/report.html", response_class=HTMLResponse)
async def dataset_report_html(request: Request, dataset_id: str, sheet: Optional[str] = None):
    workbook = _load_workbook(request, dataset_id)
    rows = _sheet_rows(request, workbook, sheet)
    profile = tracked_profile_data(rows)
    return HTMLResponse(render_report_html(profile, tracked_derive_insights(profile, rows)))


@router.get("/datasets/{dataset_id}/report.pdf")
async def dataset_report_pdf(request: Request, dataset_id: str, sheet: Optional[str] = None):
    """PDF report of one sheet, as a download."""
    workbook = _load_workbook(request, dataset_id)
    rows = _sheet_rows(request, workbook, sheet)
    profile = tracked_profile_data(rows)
    insights = tracked_derive_insights(profile, rows)

    stem = workbook.metadata.file_name.rsplit('.', 1)[0]
    pdf_bytes = create_pdf_report(profile, insights, filename=workbook.metadata.file_name)
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(f"{stem}_report.pdf")}
    )


@router.post("/datasets/{dataset_id}/export.csv")
async def export_csv(request: Request, dataset_id: str, body: ViewRequest):
    """Filtered rows of one sheet as CSV."""
    workbook = _load_workbook(request, dataset_id)
    rows = apply_filters(_sheet_rows(request, workbook, body.sheet), body.filters)
    stem = workbook.metadata.file_name.rsplit('.', 1)[0]
    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": content_disposition(f"{stem}.csv")}
    )


@router.get("/datasets/{dataset_id}/export.xlsx")
async def export_xlsx(request: Request, dataset_id: str):
    """Every sheet of a stored dataset as one .xlsx workbook."""
    workbook = _load_workbook(request, dataset_id)
    stem = workbook.metadata.file_name.rsplit('.', 1)[0]
    return Response(
        content=workbook_to_xlsx(workbook),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": content_disposition(f"{stem}.xlsx")}
    )
