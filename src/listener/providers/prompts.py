"""Prompt templates for question answering and each summary type.

Templates are plain str.format strings taking {content} and {max_length}
(summaries) or {context} and {question} (questions). Providers pick a
template set; DECISION and ACTION_ITEM templates are shared because the
minutes generator parses their output as JSON.
"""

from __future__ import annotations

from src.listener.providers.base import SummaryRequest, SummaryType

# ── Question Answering ───────────────────────────────────────────────────────

QUESTION_PROMPT = """You are an AI meeting assistant. Your job is to answer questions about an ongoing meeting based on the provided context.

MEETING CONTEXT:
{context}

USER'S QUESTION:
{question}

INSTRUCTIONS:
- Provide a direct, concise answer (2-4 sentences max)
- If the information isn't in the context, say "I don't have that information from the current meeting"
- Focus on being helpful and accurate
- Don't make up information

ANSWER:"""

COMPACT_QUESTION_PROMPT = """Meeting context:
{context}

Question: {question}

Answer briefly (2-3 sentences) using only the context above."""

# ── Structured Extraction (shared) ───────────────────────────────────────────

DECISION_PROMPT = """Extract only the decisions made in this meeting content.
Respond with a JSON array and nothing else. Each element must be an object:
{{"description": "<what was decided>", "topic": "<related topic or null>"}}
Return [] if no decisions were made.

CONTENT:
{content}

DECISIONS (JSON):"""

ACTION_ITEM_PROMPT = """Extract only action items and task assignments from this meeting content.
Respond with a JSON array and nothing else. Each element must be an object:
{{"task": "<what needs to be done>", "assignee": "<person or null>", "deadline": "<deadline or null>"}}
Return [] if there are no action items.

CONTENT:
{content}

ACTION ITEMS (JSON):"""

# ── Full Templates ───────────────────────────────────────────────────────────

DETAILED_SUMMARY_PROMPTS: dict[SummaryType, str] = {
    SummaryType.MICRO: """Summarize the following meeting segment in 2-3 concise sentences (at most {max_length} words). Focus on key points, decisions, and action items.

CONTENT:
{content}

SUMMARY:""",
    SummaryType.SECTION: """Compress the following meeting content into a single sentence (at most {max_length} words) highlighting only the most important point.

CONTENT:
{content}

COMPRESSED SUMMARY:""",
    SummaryType.FINAL: """Create a comprehensive end-of-meeting summary (at most {max_length} words) with:
1. Main topics discussed
2. Key decisions made
3. Action items and assignments
4. Important deadlines

MEETING CONTENT:
{content}

FINAL SUMMARY:""",
    SummaryType.DECISION: DECISION_PROMPT,
    SummaryType.ACTION_ITEM: ACTION_ITEM_PROMPT,
}

COMPACT_SUMMARY_PROMPTS: dict[SummaryType, str] = {
    SummaryType.MICRO: "Summarize this in 2-3 sentences:\n{content}",
    SummaryType.SECTION: "Compress this into one sentence:\n{content}",
    SummaryType.FINAL: "Summarize this meeting in 3-4 sentences:\n{content}",
    SummaryType.DECISION: DECISION_PROMPT,
    SummaryType.ACTION_ITEM: ACTION_ITEM_PROMPT,
}

GENERIC_SUMMARY_PROMPTS: dict[SummaryType, str] = {
    SummaryType.MICRO: "Summarize concisely:\n{content}",
    SummaryType.SECTION: "Summarize concisely:\n{content}",
    SummaryType.FINAL: "Summarize concisely:\n{content}",
    SummaryType.DECISION: DECISION_PROMPT,
    SummaryType.ACTION_ITEM: ACTION_ITEM_PROMPT,
}


def render_summary_prompt(templates: dict[SummaryType, str], request: SummaryRequest) -> str:
    """Fill the template for the request's summary type."""
    template = templates[request.summary_type]
    return template.format(content=request.content, max_length=request.max_length)


def render_question_prompt(template: str, question: str, context: str) -> str:
    return template.format(question=question, context=context)
