from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from ccrag.services.rag.errors import SourceUnavailableError

PROMPT_TEMPLATE = """Use the below information provided in org-mode markdown to answer the subsequent question. Do not offer any helpful advice! If can not be derived from provided Information use your best take to answer the question.
Information:
{context}

Question: {question}"""


def assemble_context(sources: Sequence[str]) -> str:
    parts: list[str] = []
    for source in sources:
        try:
            text = Path(source).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceUnavailableError(source, str(exc)) from exc
        parts.append(text + "\n")
    return "".join(parts)


def build_prompt(context: str, question: str) -> str:
    return PROMPT_TEMPLATE.format(context=context, question=question)
