from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal

from app.optimizer.schemas import OptimizationMode, ProfileSnapshot, RequestKind


ProviderTag = Literal["openai", "anthropic", "google", "cohere"]
SessionStatus = Literal["pending", "running", "completed", "failed", "cancelled"]
StreamEventName = Literal["progress", "result", "error"]

TERMINAL_STATUSES = frozenset({"completed", "failed", "cancelled"})


@dataclass(frozen=True)
class ModelSelection:
	provider: ProviderTag
	model: str


@dataclass(frozen=True)
class OptimizationRequest:
	profile: ProfileSnapshot
	session_id: str
	kind: RequestKind = "optimization"
	mode: OptimizationMode = "auto"
	model_id: str = "auto"
	preferences: Dict[str, Any] = field(default_factory=dict)
	identity: str = "anonymous"


@dataclass(frozen=True)
class StreamEvent:
	event: StreamEventName
	data: Dict[str, Any]

	@property
	def terminal(self) -> bool:
		return self.event in {"result", "error"}


@dataclass(frozen=True)
class SessionRecord:
	session_id: str
	mode: str
	model_used: str
	score_before: int
	score_after: int
	improvement_count: int
	improvements_payload: List[Dict[str, Any]]
	status: SessionStatus
