from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: str
    content: str


class Choice(BaseModel):
    message: ChatMessage


class CannedReply(BaseModel):
    choices: List[Choice]
    session_id: str = Field(serialization_alias="sessionId")
    cache_hit: Optional[bool] = Field(default=None, serialization_alias="cacheHit")
    suggestions: Optional[Dict[str, Any]] = None


class SessionInfo(BaseModel):
    session_id: str = Field(serialization_alias="sessionId")
    interests: List[str] = []
    mentioned_products: List[str] = Field(default_factory=list, serialization_alias="mentionedProducts")
    preferences: Dict[str, str] = {}
    lead_qualified: bool = Field(default=False, serialization_alias="leadQualified")
    suggested_account: bool = Field(default=False, serialization_alias="suggestedAccount")
    suggestions: Optional[Dict[str, Any]] = None


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None
    session_id: str = Field(serialization_alias="sessionId")
    fallback: bool = True
    retry_after: Optional[int] = Field(default=None, serialization_alias="retryAfter")


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
    uptime: float
    sessions: int
    rate_limit_entries: int = Field(serialization_alias="rateLimitEntries")
    cache_entries: int = Field(serialization_alias="cacheEntries")


def dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)
