"""Typed view of a stored baseline document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ExecutionSummary(_Document):
    samples_planned: int = Field(alias="samplesPlanned")
    samples_executed: int = Field(alias="samplesExecuted")
    termination_reason: str = Field(alias="terminationReason")
    termination_details: Optional[str] = Field(default=None, alias="terminationDetails")


class SuccessRate(_Document):
    observed: float
    standard_error: float = Field(alias="standardError")
    confidence_interval_95: list[float] = Field(alias="confidenceInterval95")


class StatisticsSummary(_Document):
    success_rate: SuccessRate = Field(alias="successRate")
    successes: int
    failures: int
    failure_distribution: dict[str, int] = Field(default_factory=dict, alias="failureDistribution")


class CostSummary(_Document):
    total_time_ms: int = Field(alias="totalTimeMs")
    total_tokens: int = Field(alias="totalTokens")
    avg_time_per_sample_ms: Optional[int] = Field(default=None, alias="avgTimePerSampleMs")
    avg_tokens_per_sample: Optional[int] = Field(default=None, alias="avgTokensPerSample")


class ExpirationInfo(_Document):
    expires_in_days: int = Field(default=0, ge=0, alias="expiresInDays")
    baseline_end_time: Optional[datetime] = Field(default=None, alias="baselineEndTime")

    @field_validator("baseline_end_time")
    @classmethod
    def _assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class BaselineRecord(_Document):
    schema_version: str = Field(alias="schemaVersion")
    use_case_id: str = Field(alias="useCaseId")
    generated_at: datetime = Field(alias="generatedAt")
    footprint: str = ""
    covariates: dict[str, str] = Field(default_factory=dict)
    execution: ExecutionSummary
    statistics: StatisticsSummary
    cost: CostSummary
    expiration: Optional[ExpirationInfo] = None
    success_criteria: Optional[str] = Field(default=None, alias="successCriteria")
    content_fingerprint: str = Field(alias="contentFingerprint")

    @field_validator("generated_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("covariates", mode="before")
    @classmethod
    def _none_is_empty(cls, v: object) -> object:
        return {} if v is None else v

    @property
    def samples(self) -> int:
        return self.statistics.successes + self.statistics.failures

    @property
    def successes(self) -> int:
        return self.statistics.successes

    @property
    def observed_rate(self) -> float:
        return self.successes / self.samples if self.samples else 0.0

    @property
    def baseline_end(self) -> datetime:
        """End of sample collection; falls back to the generation time."""
        if self.expiration and self.expiration.baseline_end_time:
            return self.expiration.baseline_end_time
        return self.generated_at
