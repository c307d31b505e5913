"""
Prompts for the agent nodes, the grader's forced output schema, and the
answer template loader.
"""

import logging
import re
from functools import lru_cache

import httpx

from app.agent.messages import VERDICT_TOOL_NAME
from app.core.config import ANSWER_PROMPT_URL, PROMPT_FETCH_TIMEOUT

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\{(question|context)\}")

SYSTEM_PROMPT = (
    "You are DungeonForge, an assistant for tabletop role-playing games (rules, spells, "
    "monsters, items, and character options).\n\n"
    "You have tools: search_documents searches the rulebooks loaded into the knowledge base; "
    "web_search looks up external or recent information; clock returns the current date and time.\n\n"
    "For rules questions, call search_documents first. Use web_search only when the rulebooks "
    "do not cover the question. If you can answer without any tool (greetings, simple chat), "
    "answer directly."
)

REWRITE_PROMPT = """
    Rewrite the question below as a search query for a tabletop RPG rulebook index.

    Rules:
    - Keep game terms exactly (spell names, item names, conditions, stats)
    - Remove conversational filler
    - Output a single line, no quotes, no explanation

    Question: {question}
    """

GRADE_PROMPT = """
    You are grading whether a retrieved passage is relevant to a user question.

    If the passage contains keywords or meaning related to the question, grade it as relevant.
    It does not need to be a complete answer; the goal is to filter out clearly unrelated results.
    Give a binary score 'yes' or 'no'.

    Retrieved passage:
    {context}

    User question: {question}
    """

GRADE_SCHEMA = {
    "type": "function",
    "function": {
        "name": VERDICT_TOOL_NAME,
        "description": "Binary relevance score for the retrieved passage.",
        "parameters": {
            "type": "object",
            "properties": {
                "binary_score": {
                    "type": "string",
                    "enum": ["yes", "no"],
                    "description": "Relevance score 'yes' or 'no'",
                }
            },
            "required": ["binary_score"],
            "additionalProperties": False,
        },
    },
}

DEFAULT_ANSWER_TEMPLATE = """
    You are an assistant for question-answering tasks about tabletop role-playing games.
    Use the following retrieved context to answer the question. If you don't know the
    answer, just say that you don't know. Keep the answer concise and separate
    paragraphs with a blank line.

    Question: {question}

    Context:
    {context}

    Answer:
    """


def _valid_template(template: str) -> bool:
    return "{question}" in template and "{context}" in template


@lru_cache(maxsize=1)
def load_answer_template(url: str | None = None) -> str:
    """
    Answer prompt from ANSWER_PROMPT_URL when reachable and well-formed, else the
    built-in template. Cached per process.
    """
    url = url if url is not None else ANSWER_PROMPT_URL
    if not url:
        return DEFAULT_ANSWER_TEMPLATE
    try:
        with httpx.Client(timeout=PROMPT_FETCH_TIMEOUT) as client:
            response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("[prompts] answer template fetch failed (%s); using built-in template", e)
        return DEFAULT_ANSWER_TEMPLATE
    template = response.text
    if not _valid_template(template):
        logger.warning("[prompts] answer template at %s lacks {question}/{context}; using built-in template", url)
        return DEFAULT_ANSWER_TEMPLATE
    logger.info("[prompts] loaded answer template from %s len=%d", url, len(template))
    return template


def format_answer_prompt(question: str, context: str, template: str | None = None) -> str:
    template = template if template is not None else load_answer_template()
    values = {"question": question, "context": context}
    # one pass, so placeholder text inside the values is left alone; other braces are kept
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)
