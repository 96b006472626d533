from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


ImpactLevel = Literal["high", "medium", "low"]
OptimizationMode = Literal["manual", "auto"]
RequestKind = Literal["analysis", "optimization"]


class ApiError(BaseModel):
	model_config = ConfigDict(extra="forbid")

	code: str
	message: str
	evidence: List[str] = Field(default_factory=list)


class ApiEnvelope(BaseModel):
	model_config = ConfigDict(extra="allow")

	ok: bool
	generated_at: str
	request_id: Optional[str] = None
	data: Optional[Dict[str, Any]] = None
	error: Optional[ApiError] = None


class ProfileSnapshot(BaseModel):
	model_config = ConfigDict(extra="ignore", frozen=True)

	id: Optional[Union[int, str]] = None
	headline: str = ""
	summary: str = ""
	experience: List[Any] = Field(default_factory=list)
	education: List[Any] = Field(default_factory=list)
	skills: List[Any] = Field(default_factory=list)

	@field_validator("headline", "summary", mode="before")
	@classmethod
	def _text_or_empty(cls, value: Any) -> str:
		if value is None:
			return ""
		return value if isinstance(value, str) else str(value)

	@field_validator("experience", "education", "skills", mode="before")
	@classmethod
	def _list_or_empty(cls, value: Any) -> List[Any]:
		if value is None:
			return []
		return value if isinstance(value, list) else [value]


class SectionScores(BaseModel):
	model_config = ConfigDict(extra="forbid")

	headline: int = Field(ge=0, le=100)
	summary: int = Field(ge=0, le=100)
	experience: int = Field(ge=0, le=100)
	skills: int = Field(ge=0, le=100)
	completeness: int = Field(ge=0, le=100)
	engagement: int = Field(ge=0, le=100)


class AnalysisResult(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	overall_score: int = Field(alias="overallScore", ge=0, le=100)
	section_scores: SectionScores = Field(alias="sectionScores")
	strengths: List[str] = Field(default_factory=list)
	weaknesses: List[str] = Field(default_factory=list)
	recommendations: List[str] = Field(default_factory=list)
	keywords: List[str] = Field(default_factory=list)
	timestamp: str
	profile_id: Optional[Union[int, str]] = Field(default=None, alias="profileId")


class Improvement(BaseModel):
	model_config = ConfigDict(extra="forbid")

	section: str
	current: str = ""
	optimized: str
	reasoning: str = ""
	impact: ImpactLevel = "low"
	keywords: List[str] = Field(default_factory=list)


class ScoreImprovement(BaseModel):
	model_config = ConfigDict(extra="forbid")

	before: int
	after: int
	increase: int


class OptimizationResult(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	improvements: List[Improvement] = Field(default_factory=list)
	score_improvement: ScoreImprovement = Field(alias="scoreImprovement")
	timestamp: str
	profile_id: Optional[Union[int, str]] = Field(default=None, alias="profileId")


class ProgressEvent(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	session_id: str = Field(alias="sessionId")
	progress: int = Field(ge=0, le=100)
	status: str
	current_step: Optional[str] = Field(default=None, alias="currentStep")
	timestamp: str


class ModelInfo(BaseModel):
	model_config = ConfigDict(extra="forbid")

	id: str
	name: str
	provider: str
	capabilities: List[str] = Field(default_factory=list)
	strengths: List[str] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	profile_data: ProfileSnapshot = Field(alias="profileData")
	model_id: str = Field(default="auto", alias="modelId", description="Catalog model id or 'auto'.")


class OptimizeRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	profile_data: ProfileSnapshot = Field(alias="profileData")
	mode: OptimizationMode = "auto"
	model_id: str = Field(default="auto", alias="modelId", description="Catalog model id or 'auto'.")
	preferences: Dict[str, Any] = Field(default_factory=dict)


class StreamRequest(BaseModel):
	model_config = ConfigDict(extra="forbid", populate_by_name=True)

	session_id: Optional[str] = Field(default=None, alias="sessionId")
	profile_data: ProfileSnapshot = Field(alias="profileData")
	kind: RequestKind = "optimization"
	mode: OptimizationMode = "auto"
	model_id: str = Field(default="auto", alias="modelId", description="Catalog model id or 'auto'.")
	preferences: Dict[str, Any] = Field(default_factory=dict)
