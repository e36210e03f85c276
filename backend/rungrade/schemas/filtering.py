from typing import Optional

from pydantic import BaseModel

from rungrade.schemas.bin import Bin


class HeartRateRange(BaseModel):
    min_hr: Optional[int] = None
    max_hr: Optional[int] = None

    @property
    def active(self) -> bool:
        return bool(self.min_hr) or bool(self.max_hr)


class FilterOptions(BaseModel):
    remove_unreliable_bins: bool = False
    heart_rate_range: Optional[HeartRateRange] = None


class ExclusionCounts(BaseModel):
    speed: int = 0
    gradient: int = 0
    duration: int = 0
    distance: int = 0
    heart_rate: int = 0
    total: int = 0

    def merge(self, other: "ExclusionCounts") -> "ExclusionCounts":
        data = self.model_dump()
        for key, value in other.model_dump().items():
            data[key] += value
        return ExclusionCounts(**data)


class FilterResult(BaseModel):
    kept_bins: list[Bin]
    exclusion_counts: ExclusionCounts
