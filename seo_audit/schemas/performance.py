"""Pydantic schemas for PageSpeed Insights results."""

from typing import List, Optional

from pydantic import BaseModel, Field


class PerformanceMetrics(BaseModel):
    """Lighthouse metrics for one rendering strategy.

    Category scores are percentages (0-100). Timing metrics are in
    milliseconds, CLS is a unitless shift score; all are None when
    the provider did not report them.
    """

    performance_score: int = 0
    accessibility: int = 0
    best_practices: int = 0
    seo: int = 0

    lcp: Optional[float] = None
    cls: Optional[float] = None
    inp: Optional[float] = None
    fcp: Optional[float] = None
    tbt: Optional[float] = None
    speed_index: Optional[float] = None
    tti: Optional[float] = None


class PerformanceFinding(BaseModel):
    """A Lighthouse opportunity or diagnostic."""

    id: str
    title: str = ""
    description: str = ""
    display_value: Optional[str] = None
    score: float


class PerformanceResult(BaseModel):
    """Combined mobile/desktop analysis of one URL.

    ``available`` is False for the empty result returned when the
    provider failed; every metric then holds its zero/None default.
    """

    available: bool = False
    mobile: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    desktop: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    opportunities: List[PerformanceFinding] = Field(default_factory=list)
    diagnostics: List[PerformanceFinding] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "PerformanceResult":
        """Result used when no provider data could be obtained."""
        return cls()
