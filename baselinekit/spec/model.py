"""Execution specification: a human-approved pass-rate requirement for a use case."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from baselinekit.errors import SpecificationValidationError
from baselinekit.expiration import ExpirationPolicy
from baselinekit.statistics.compliance import ThresholdOrigin


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SpecRequirements(_Document):
    min_pass_rate: float = Field(default=1.0, alias="minPassRate")
    success_criteria: str = Field(default="", alias="successCriteria")
    threshold_origin: ThresholdOrigin = Field(default=ThresholdOrigin.UNSPECIFIED, alias="thresholdOrigin")
    contract_ref: Optional[str] = Field(default=None, alias="contractRef")


class CostEnvelope(_Document):
    max_time_per_sample_ms: int = Field(default=0, ge=0, alias="maxTimePerSampleMs")
    max_tokens_per_sample: int = Field(default=0, ge=0, alias="maxTokensPerSample")
    total_token_budget: int = Field(default=0, ge=0, alias="totalTokenBudget")


class ExecutionSpecification(_Document):
    spec_id: str = Field(alias="specId")
    use_case_id: str = Field(alias="useCaseId")
    version: int = 1
    approved_at: Optional[datetime] = Field(default=None, alias="approvedAt")
    approved_by: Optional[str] = Field(default=None, alias="approvedBy")
    approval_notes: Optional[str] = Field(default=None, alias="approvalNotes")
    source_baselines: list[str] = Field(default_factory=list, alias="sourceBaselines")
    execution_context: dict[str, Any] = Field(default_factory=dict, alias="executionContext")
    requirements: SpecRequirements = Field(default_factory=SpecRequirements)
    cost_envelope: Optional[CostEnvelope] = Field(default=None, alias="costEnvelope")
    expires_in_days: int = Field(default=0, ge=0, alias="expiresInDays")
    baseline_end_time: Optional[datetime] = Field(default=None, alias="baselineEndTime")

    @property
    def is_approved(self) -> bool:
        return self.approved_at is not None and bool(self.approved_by)

    @property
    def min_pass_rate(self) -> float:
        return self.requirements.min_pass_rate

    def expiration_policy(self) -> ExpirationPolicy:
        if self.expires_in_days and self.baseline_end_time is not None:
            return ExpirationPolicy(
                expires_in_days=self.expires_in_days, baseline_end=self.baseline_end_time
            )
        return ExpirationPolicy.none()

    def validate_approval(self) -> None:
        """Raise :class:`SpecificationValidationError` unless approved with a valid pass rate."""
        if not self.is_approved:
            raise SpecificationValidationError(
                f"Specification '{self.spec_id}' lacks approval metadata. "
                "Add 'approvedAt', 'approvedBy', and 'approvalNotes' to the specification file."
            )
        if not 0.0 <= self.requirements.min_pass_rate <= 1.0:
            raise SpecificationValidationError(
                f"Specification '{self.spec_id}' has invalid minPassRate: "
                f"{self.requirements.min_pass_rate}"
            )
