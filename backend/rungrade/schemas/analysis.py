from typing import Optional

from pydantic import BaseModel

from rungrade.schemas.activity import RunBins
from rungrade.schemas.filtering import ExclusionCounts, HeartRateRange


class GradientBucket(BaseModel):
    """Range bucket: (min, max] in percent; None marks an open end."""

    label: str
    min: Optional[float] = None
    max: Optional[float] = None
    bin_count: int
    avg_pace: Optional[float] = None
    median_pace: Optional[float] = None
    avg_heart_rate: Optional[float] = None
    median_heart_rate: Optional[float] = None
    pace_label: str = "N/A"
    median_pace_label: str = "N/A"


class GradientPaceReport(BaseModel):
    buckets: list[GradientBucket]
    total_bins_analyzed: int
    summary: str


class PaceChartEntry(BaseModel):
    gradient: str  # '≤-35', '-3', '≥35'
    gradient_value: int
    bin_count: int
    total_distance_m: float
    total_time_s: float
    avg_pace: float
    pace_label: str


class GradeAdjustmentEntry(BaseModel):
    gradient: str
    gradient_value: float
    personal_adjustment: float
    literature_adjustment: float
    avg_pace: float
    pace_label: str
    bin_count: int


class GradeAdjustmentReport(BaseModel):
    adjustment_data: list[GradeAdjustmentEntry]
    base_pace: Optional[float] = None
    base_pace_label: str = "N/A"


class AdjustmentProfileEntry(BaseModel):
    gradient: str
    gradient_value: float
    bin_count: int
    actual_ratio: float
    expected_ratio: float
    deviation: float


class AdjustmentProfile(BaseModel):
    statistic: str
    base_pace: Optional[float] = None
    base_pace_label: str = "N/A"
    entries: list[AdjustmentProfileEntry]


class AnalysisReport(BaseModel):
    gradient_pace: GradientPaceReport
    pace_by_gradient_chart: list[PaceChartEntry]
    grade_adjustment: GradeAdjustmentReport
    adjustment_profile: AdjustmentProfile


class AnalysisRequest(BaseModel):
    results: Optional[list[RunBins]] = None
    statistic: str = "mean"
    # Quartic (a, b, c, d, e) to compare against instead of the built-in fit
    grade_coefficients: Optional[list[float]] = None


class FilteredAnalysisRequest(AnalysisRequest):
    remove_unreliable_bins: bool = False
    heart_rate_filter: Optional[HeartRateRange] = None


class AnalysisResponse(BaseModel):
    success: bool = True
    analyses: AnalysisReport


class FilterSummary(BaseModel):
    total_original_bins: int
    total_filtered_bins: int
    exclusion_counts: ExclusionCounts


class FilteredAnalysisResponse(AnalysisResponse):
    summary: FilterSummary
    filtered_results: list[RunBins]
