from pydantic import BaseModel, Field
from typing import List
from datetime import datetime


class TutorAnswer(BaseModel):
    """Result of the provider adapter, always present even when every model failed"""
    answer: str = Field(..., description="Answer text as produced by the provider or the canned fallback")
    used_fallback: bool = Field(..., description="True when no provider produced the answer")
    provider_used: str = Field(..., description="Model id, 'fallback' or 'fallback-no-api-key'")


class TutorExchange(BaseModel):
    """One stored question/answer pair"""
    id: str
    question: str
    answer: str
    timestamp: datetime
    messageType: str = "ai-query"


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class TutorHistoryResponse(BaseModel):
    success: bool = True
    conversations: List[TutorExchange]
    pagination: Pagination


class ClearHistoryResponse(BaseModel):
    success: bool = True
    message: str
    deletedCount: int
