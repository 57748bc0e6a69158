from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ConversationTurn(BaseModel):
    role: str
    content: str


class AnalysisRequest(BaseModel):
    """Sanitized conversation-analysis request."""

    message: str = ""
    image: Optional[str] = None
    language: str = ""
    persona: str = ""
    tone: str = ""
    customInstructions: Optional[str] = None
    latestInfo: Optional[str] = None
    conversationHistory: Optional[List[ConversationTurn]] = None


class LiveScreenRequest(BaseModel):
    """Sanitized live-screen request."""

    screenshot: str
    customInstructions: Optional[str] = None
    latestInfo: Optional[str] = None
    manualInstruction: Optional[str] = None


# Result models describe what the model is asked to return. The pipeline
# passes the parsed payload through without validating it against them, so
# every field is optional.

class SuggestedReplies(BaseModel):
    model_config = ConfigDict(extra="allow")

    professional: Optional[str] = None
    friendly: Optional[str] = None
    confident: Optional[str] = None


class AnalysisResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    sentiment: Optional[str] = None  # positive|neutral|negative|urgent|opportunity
    keyPoints: Optional[List[str]] = None
    suggestedReplies: Optional[SuggestedReplies] = None
    # Only present when conversation history was supplied
    followUpSuggestions: Optional[List[str]] = None
    conversationInsights: Optional[str] = None


class ConversationFlowEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    side: Optional[str] = None  # client|user
    content: Optional[str] = None


class LiveSuggestion(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: Optional[str] = None
    strategy: Optional[str] = None


class LiveAnalysisResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    needsResponse: Optional[bool] = None
    clientStatus: Optional[str] = None
    emotion: Optional[str] = None  # 积极|中性|犹豫|不满
    stage: Optional[str] = None  # 开场|探需|解疑|成交|售后
    lastClientMessage: Optional[str] = None
    conversationFlow: Optional[List[ConversationFlowEntry]] = None
    objections: Optional[List[str]] = None
    buyingSignals: Optional[List[str]] = None
    suggestions: Optional[List[LiveSuggestion]] = None
    insights: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
