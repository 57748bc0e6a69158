"""Prompt templates for the conversation and live-screen analysis pipelines."""
import re
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import Settings
from ..models.schemas import AnalysisRequest, ConversationTurn, LiveScreenRequest
from .request_sanitizer import sanitize_analysis_request, sanitize_live_screen_request

UserContent = Union[str, List[Dict[str, Any]]]

DEFAULT_LANGUAGE = "english"
DEFAULT_PERSONA = "professional"
DEFAULT_TONE = "professional"

LANGUAGE_DIRECTIVES: Dict[str, str] = {
    "english": "Write every reply in natural, fluent English.",
    "cantonese": (
        "Write every reply in colloquial Hong Kong Cantonese (廣東話口語), "
        "using Traditional Chinese characters and everyday Cantonese particles."
    ),
    "chinese_traditional": "Write every reply in Traditional Chinese (繁體中文).",
    "chinese_simplified": "Write every reply in Simplified Chinese (简体中文).",
}

PERSONA_DIRECTIVES: Dict[str, str] = {
    "professional": (
        "YOUR ROLE: a sales professional with a general B2B approach. "
        "You are consultative, credible and focused on clear next steps."
    ),
    "enterprise": (
        "YOUR ROLE: an enterprise sales executive. Focus on ROI, risk reduction, "
        "multiple stakeholders and long decision cycles."
    ),
    "smb": (
        "YOUR ROLE: a sales rep for SMBs and startups. Focus on quick wins, "
        "growth, simplicity and fast time-to-value."
    ),
    "support": (
        "YOUR ROLE: a customer support specialist. Lead with empathy, solve the "
        "problem first and keep the relationship healthy."
    ),
    "luxury": (
        "YOUR ROLE: a luxury and premium sales consultant. Emphasise exclusivity, "
        "prestige, craftsmanship and a personal, white-glove experience."
    ),
}

TONE_NAMES = ("professional", "friendly", "confident")

SUGGESTED_REPLIES_TASK = """ANALYSIS REQUIREMENTS:
1. Sentiment Detection: Classify as positive, neutral, negative, urgent, or opportunity
   - Detect buying signals, objections, budget concerns, timeline pressure
   - Identify pain points and motivations

2. Key Points Extraction:
   - What the client wants/needs
   - Any objections or concerns raised
   - Timeline or urgency indicators
   - Budget signals or price sensitivity
   - Decision-making stage

3. Generate 3 strategic replies optimized for conversion:

   PROFESSIONAL TONE:
   - Consultative and authoritative
   - Address concerns with data/social proof
   - Clear next steps and CTAs
   - Position as trusted advisor

   FRIENDLY TONE:
   - Warm, empathetic, relationship-focused
   - Use casual language while maintaining credibility
   - Build rapport and trust
   - Show understanding of their situation

   CONFIDENT TONE:
   - Direct and solution-oriented
   - Demonstrate expertise and value proposition
   - Handle objections proactively
   - Create urgency with benefits/scarcity

REPLY GUIDELINES:
- Keep responses concise (2-4 sentences max for WhatsApp)
- Include a clear call-to-action
- Mirror client's language style
- Address specific points they raised
- Use emojis sparingly and appropriately
- Provide value in every message"""

HISTORY_TASK = """CONVERSATION HISTORY IS PROVIDED:
- Track how the relationship has progressed across the earlier turns
- Remember prior commitments, quotes, promises and open questions, and stay consistent with them
- Do not repeat offers or questions the client has already answered
- Suggest concrete follow-up actions with timing in "followUpSuggestions"
- Summarise the health of the conversation (trust, momentum, risks) in the "conversationInsights" field"""

BUBBLE_RULES = """CRITICAL - MESSAGE BUBBLE POSITION RULES (HIGHEST PRIORITY):
You are analyzing a screenshot of a messaging app (WhatsApp, WeChat, LINE, Telegram, etc.).
Follow these ABSOLUTE rules to identify who said what:

1. **LEFT-ALIGNED messages** (bubbles touching or near the LEFT edge) = **CLIENT (客户)** messages
   - These are the messages you must analyze and reply to
   - They may include the client's profile picture/avatar on the left
   - ANY message on the left side is ALWAYS from the client, no exceptions

2. **RIGHT-ALIGNED messages** (bubbles touching or near the RIGHT edge) = **USER (我方/销售)** messages
   - They represent what the user has already sent
   - ANY message on the right side is ALWAYS from the user, no exceptions

3. **Reading order**: Read messages TOP to BOTTOM to understand the chronological flow
4. **Multiple messages**: A person may send multiple consecutive messages - group them together
5. **Media messages**: Images, voice messages, stickers on the left = client sent them; on the right = user sent them
6. **System messages**: Center-aligned messages (dates, "missed call", etc.) are system notifications, not from either party

Do NOT confuse the sides. The person asking for help is the USER (right side). You are helping them reply to the CLIENT (left side)."""

LIVE_TASK = """CONVERSATION ANALYSIS:

1. EXTRACT ALL MESSAGES:
   - List every visible message with its sender (客户/我方) based on position
   - Pay attention to the LAST few messages - they are most important
   - Note any images, voice messages, or links shared

2. DETECT CONVERSATION STATE:
   - Is there a new/unanswered client message at the bottom?
   - What stage: 开场(opening) / 探需(discovery) / 解疑(objection handling) / 成交(closing) / 售后(after-sales)
   - Client emotional state: 积极(positive) / 中性(neutral) / 犹豫(hesitant) / 不满(dissatisfied)

3. DEEP CLIENT INTENT ANALYSIS:
   - What does the client explicitly ask for?
   - What are their implicit/hidden needs?
   - Any objections, concerns, or resistance?
   - Buying signals (asking about price, delivery, specs)?
   - Urgency indicators or timeline mentions?

4. GENERATE 1-3 REPLY SUGGESTIONS:
   Each suggestion must:
   - Directly address the client's last message(s)
   - Be natural and conversational (2-4 sentences, WhatsApp style)
   - Include a strategic next step or call-to-action
   - Have a clear strategy explanation
   - Match the conversation's language and tone

5. IF NO NEW CLIENT MESSAGE NEEDS RESPONSE:
   - Set needsResponse to false
   - Analyze the overall conversation health
   - Suggest proactive follow-up timing and content

Return JSON:
{
  "needsResponse": true/false,
  "clientStatus": "客户当前状态的详细描述",
  "emotion": "积极|中性|犹豫|不满",
  "stage": "开场|探需|解疑|成交|售后",
  "lastClientMessage": "客户最后说的完整内容",
  "conversationFlow": [
    {"side": "client|user", "content": "消息内容摘要"}
  ],
  "objections": ["具体异议描述"],
  "buyingSignals": ["购买信号描述"],
  "suggestions": [
    {
      "content": "建议回复内容",
      "strategy": "为什么这样回复 + 预期效果"
    }
  ],
  "insights": "对话深度洞察、风险提醒和下一步建议"
}"""

HISTORY_RESULT_KEYS = ("followUpSuggestions", "conversationInsights")


def resolve_language_directive(language: Optional[str]) -> str:
    """Unknown or missing languages fall back to English."""
    return LANGUAGE_DIRECTIVES.get(language or "", LANGUAGE_DIRECTIVES[DEFAULT_LANGUAGE])


def resolve_role_directive(persona: Optional[str], custom_instructions: Optional[str]) -> str:
    """Custom instructions fully replace the persona directive."""
    if custom_instructions:
        return f"YOUR ROLE: {custom_instructions}"
    return PERSONA_DIRECTIVES.get(persona or "", PERSONA_DIRECTIVES[DEFAULT_PERSONA])


def resolve_tone(tone: Optional[str]) -> str:
    return tone if tone in TONE_NAMES else DEFAULT_TONE


def latest_info_block(latest_info: Optional[str]) -> str:
    if not latest_info:
        return ""
    return (
        "LATEST INFORMATION & POLICIES:\n"
        f"{latest_info}\n\n"
        "Weave this information into your replies naturally wherever it is relevant. "
        "Do not paste it verbatim."
    )


def manual_instruction_block(manual_instruction: Optional[str]) -> str:
    if not manual_instruction:
        return ""
    return (
        "USER'S MANUAL INSTRUCTION (HIGHEST PRIORITY):\n"
        f"{manual_instruction}\n\n"
        "You MUST follow this instruction when generating the reply. "
        "It overrides every other style or content guideline in this prompt."
    )


_LINE_BREAKS = re.compile(r"\s*[\r\n\u2028\u2029]+\s*")


def _single_line(text: str) -> str:
    return _LINE_BREAKS.sub(" ", text).strip()


def serialize_history(turns: List[ConversationTurn]) -> str:
    """
    One `role: content` line per turn, in the order given. Line breaks inside
    a turn are collapsed so a turn can never read as several turns.
    """
    return "\n".join(
        f"{_single_line(turn.role)}: {_single_line(turn.content)}" for turn in turns
    )


def _join_blocks(*blocks: str) -> str:
    return "\n\n".join(block for block in blocks if block)


def _result_schema(with_history: bool) -> str:
    lines = [
        "Return JSON:",
        "{",
        '  "sentiment": "positive|neutral|negative|urgent|opportunity",',
        '  "keyPoints": ["detailed point 1", "detailed point 2", "..."],',
        '  "suggestedReplies": {',
        '    "professional": "strategic professional reply",',
        '    "friendly": "warm engaging reply",',
        '    "confident": "assertive value-driven reply"',
        "  }" + ("," if with_history else ""),
    ]
    if with_history:
        lines.extend(
            [
                '  "followUpSuggestions": ["follow-up action with timing", "..."],',
                '  "conversationInsights": "summary of conversation health and relationship progress"',
            ]
        )
    lines.append("}")
    return "\n".join(lines)


class PromptTemplate:
    """Strategy object describing one pipeline variant."""

    name: str = "base"

    def sanitize(self, raw: Any, settings: Settings):
        raise NotImplementedError

    def compose(self, request) -> Tuple[str, UserContent]:
        raise NotImplementedError

    def dropped_result_keys(self, request) -> Tuple[str, ...]:
        """Keys removed from the parsed result before it reaches the caller."""
        return ()


class ConversationPromptTemplate(PromptTemplate):
    """Text or image analysis with three tone-variant replies."""

    name = "analyze-message"

    def sanitize(self, raw: Any, settings: Settings) -> AnalysisRequest:
        return sanitize_analysis_request(raw, settings)

    def build_system_prompt(self, request: AnalysisRequest) -> str:
        has_history = bool(request.conversationHistory)
        tone = resolve_tone(request.tone)

        return _join_blocks(
            "You are an elite sales communication specialist with expertise in "
            "customer psychology and conversion optimization.",
            resolve_role_directive(request.persona, request.customInstructions),
            "LANGUAGE: " + resolve_language_directive(request.language),
            latest_info_block(request.latestInfo),
            HISTORY_TASK if has_history else "",
            SUGGESTED_REPLIES_TASK,
            f"The user prefers the {tone.upper()} tone: make that reply the most polished of the three.",
            _result_schema(has_history),
        )

    def build_user_content(self, request: AnalysisRequest) -> UserContent:
        history = request.conversationHistory

        if request.image:
            if request.message:
                text = f"Extract and analyze text from the image. Additional context: {request.message}"
            else:
                text = "Extract and analyze all text visible in this image."
            if history:
                text = f"Previous conversation:\n{serialize_history(history)}\n\n{text}"
            return [
                {"type": "text", "text": text},
                {"type": "image_url", "image_url": {"url": request.image}},
            ]

        if history:
            return (
                f"Previous conversation:\n{serialize_history(history)}\n\n"
                f'Latest client message: "{request.message}"'
            )
        return f'Analyze this client message: "{request.message}"'

    def compose(self, request: AnalysisRequest) -> Tuple[str, UserContent]:
        return self.build_system_prompt(request), self.build_user_content(request)

    def dropped_result_keys(self, request: AnalysisRequest) -> Tuple[str, ...]:
        if request.conversationHistory:
            return ()
        return HISTORY_RESULT_KEYS


class LiveScreenPromptTemplate(PromptTemplate):
    """Screenshot-only analysis of a live messaging session."""

    name = "live-screen-analysis"

    def sanitize(self, raw: Any, settings: Settings) -> LiveScreenRequest:
        return sanitize_live_screen_request(raw, settings)

    def build_system_prompt(self, request: LiveScreenRequest) -> str:
        if request.customInstructions:
            role = resolve_role_directive(None, request.customInstructions)
        else:
            role = (
                "You are an expert sales communication specialist with deep "
                "understanding of customer psychology."
            )

        return _join_blocks(
            "You are a real-time AI sales assistant watching a user's screen as they "
            "chat with clients on WhatsApp or other messaging apps.",
            BUBBLE_RULES,
            role,
            latest_info_block(request.latestInfo),
            manual_instruction_block(request.manualInstruction),
            LIVE_TASK,
        )

    def build_user_content(self, request: LiveScreenRequest) -> UserContent:
        if request.manualInstruction:
            text = f"分析这个WhatsApp屏幕截图，根据用户指令生成回复：{request.manualInstruction}"
        else:
            text = "分析这个WhatsApp屏幕截图，识别客户消息并推荐最佳回复。"
        return [
            {"type": "text", "text": text},
            {"type": "image_url", "image_url": {"url": request.screenshot}},
        ]

    def compose(self, request: LiveScreenRequest) -> Tuple[str, UserContent]:
        return self.build_system_prompt(request), self.build_user_content(request)
