"""
Section-title suggestions for a new article.

The model is asked for a JSON array; output is parsed with the same
recovery strategies used for any model JSON, retrying once with a shorter,
more directive prompt.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from app.services.llm_client import TextGenerator, coerce_string_list, parse_json_robust

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

_SUGGEST_PROMPT = """\
You are an expert at generating attractive and engaging sections for blog articles.

I will provide you with an article title and the desired number of sections ({count}). \
Your task is to create creative, logical, and cohesive section suggestions that can \
later be easily expanded into a full article.

IMPORTANT! Sections must be concise, ideally one short sentence, clear, and user-friendly.

Please follow these guidelines when generating sections:

1. Sections should be engaging, interesting, and encourage continued reading.
2. Each section should logically flow from the previous one, creating a cohesive structure for the article.
3. Incorporate variety: examples, statistical data, practical tips, common mistakes, myths and facts, case studies, etc.
4. Avoid general or vague section titles; use specific language and keywords that clearly reflect the content.
5. Sections should be brief, concise, and easy to understand.
6. Generate sections in the language used in the article's title.

Article Title: {title}
{context}Number of sections: {count}

Respond ONLY with a valid JSON object. No explanation, no markdown:
{{"sections": ["...", "..."]}}\
"""

_SUGGEST_RETRY_PROMPT = """\
List {count} section titles for an article titled "{title}", in the language of the title.

Return ONLY a JSON object, nothing else:
{{"sections": ["First section", "Second section"]}}\
"""


async def suggest_sections(
    generator: TextGenerator,
    title: str,
    context: Optional[str],
    count: int,
) -> List[str]:
    """
    Return up to *count* section titles, or an empty list if the model never
    produced parseable output.  ``GenerationError`` propagates.
    """
    prompts = [
        _SUGGEST_PROMPT.format(
            title=title,
            context=f"Context: {context}\n" if context else "",
            count=count,
        ),
        _SUGGEST_RETRY_PROMPT.format(title=title, count=count),
    ][:MAX_ATTEMPTS]

    for attempt, prompt in enumerate(prompts, start=1):
        response = await generator.generate(prompt)
        ok, parsed = parse_json_robust(response)
        sections = coerce_string_list(parsed) if ok else []
        if sections:
            if attempt > 1:
                logger.info("suggest_sections: parsed on attempt %d", attempt)
            return sections[:count]
        logger.warning("suggest_sections: unusable output on attempt %d/%d", attempt, len(prompts))

    return []
