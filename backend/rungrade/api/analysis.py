from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from rungrade.api.deps import read_uploads, resolve_bin_length
from rungrade.core.errors import AnalysisInputError
from rungrade.schemas.analysis import (
    AnalysisRequest,
    AnalysisResponse,
    FilteredAnalysisRequest,
    FilteredAnalysisResponse,
    FilterSummary,
)
from rungrade.schemas.batch import BatchReport
from rungrade.schemas.filtering import FilterOptions
from rungrade.services.batch import run_batch
from rungrade.services.grade_model import get_grade_model, polynomial_grade_adjustment
from rungrade.services.gradient_analysis import analyze_gradient_pace
from rungrade.services.reliability import filter_runs

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analyze-with-bins", response_model=BatchReport)
async def analyze_with_bins(
    files: list[UploadFile] = File(...),
    bin_length: Optional[float] = Form(None),
):
    """Bin every uploaded activity and return all results in one response."""
    length = resolve_bin_length(bin_length)
    uploads = await read_uploads(files)
    return await run_in_threadpool(run_batch, uploads, length)


def _analyze(results, payload: AnalysisRequest):
    try:
        model = polynomial_grade_adjustment
        if payload.grade_coefficients is not None:
            model = get_grade_model(payload.grade_coefficients)
        return analyze_gradient_pace(results, statistic=payload.statistic, grade_model=model)
    except AnalysisInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/advanced-analysis", response_model=AnalysisResponse)
def advanced_analysis(payload: AnalysisRequest):
    """Gradient/pace statistics across previously binned runs."""
    return AnalysisResponse(analyses=_analyze(payload.results, payload))


@router.post("/analyze-with-filters-json", response_model=FilteredAnalysisResponse)
def analyze_with_filters(payload: FilteredAnalysisRequest):
    """Drop unreliable / out-of-range-HR bins per run, then analyze what is left."""
    if payload.results is None:
        raise HTTPException(status_code=400, detail="No results provided")

    options = FilterOptions(
        remove_unreliable_bins=payload.remove_unreliable_bins,
        heart_rate_range=payload.heart_rate_filter,
    )
    filtered, counts = filter_runs(payload.results, options)
    analyses = _analyze(filtered, payload)

    return FilteredAnalysisResponse(
        analyses=analyses,
        summary=FilterSummary(
            total_original_bins=sum(len(r.bins) for r in payload.results),
            total_filtered_bins=sum(len(r.bins) for r in filtered),
            exclusion_counts=counts,
        ),
        filtered_results=filtered,
    )
