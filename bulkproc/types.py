from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .prompts import TASK_PROMPTS


class TaskCategory(Enum):
    SUMMARIZE = "summarize"
    EXTRACT = "extract"
    CATEGORIZE = "categorize"
    ANALYZE = "analyze"


class ResultStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class Document:
    id: str
    name: str
    content: str

    @property
    def is_blank(self) -> bool:
        return not self.content or not self.content.strip()


@dataclass(frozen=True)
class TaskSpec:
    """
    Task shared by every document of one batch.

    ``instructions`` replaces the category's canned system prompt when set.
    """

    category: TaskCategory
    instructions: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2048
    concurrency: int = 5

    def __post_init__(self) -> None:
        if isinstance(self.category, str):
            object.__setattr__(self, "category", TaskCategory(self.category))
        if not isinstance(self.category, TaskCategory):
            raise ValueError(f"Unsupported task category: {self.category!r}")
        if not 0 <= self.temperature <= 2:
            raise ValueError(f"temperature must be within 0-2, got {self.temperature}")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")
        if self.concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {self.concurrency}")

    @property
    def system_prompt(self) -> str:
        if self.instructions and self.instructions.strip():
            return self.instructions
        return TASK_PROMPTS[self.category.value]

    def effective_concurrency(self, hard_max: int) -> int:
        return max(1, min(self.concurrency, hard_max))


@dataclass
class ProcessingResult:
    document_id: str
    filename: str
    status: ResultStatus
    result: Optional[str] = None
    error: Optional[str] = None
    tokens_used: int = 0
    cost: float = 0.0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "filename": self.filename,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "tokensUsed": self.tokens_used,
            "cost": self.cost,
            "processingTime": round(self.processing_time_ms),
        }


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    messages: List[ChatMessage]
    temperature: float
    max_tokens: int

    def messages_payload(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class CompletionResponse:
    text: Optional[str]
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: Optional[str] = None


@dataclass
class BatchSummary:
    total: int
    successful: int
    failed: int
    skipped: int
    total_cost: float
    total_time_ms: float
    average_time_per_document_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "totalCost": round(self.total_cost, 4),
            "totalTime": round(self.total_time_ms),
            "averageTimePerDocument": round(self.average_time_per_document_ms),
        }


@dataclass
class BatchOutcome:
    job_id: str
    task: str
    results: List[ProcessingResult]
    summary: BatchSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "jobId": self.job_id,
            "task": self.task,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }
