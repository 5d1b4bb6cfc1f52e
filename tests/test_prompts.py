"""Prompt construction and task catalog tests."""

from __future__ import annotations

import pytest

from investor_chat.errors import UnknownTaskError
from investor_chat.prompts import (
    CONTEXT_LABEL,
    MAX_DOCUMENT_CHARS,
    QUESTION_LABEL,
    PromptRequest,
    TaskCatalog,
    TaskDefinition,
    build_prompt,
)


def test_build_prompt_orders_instruction_context_and_question() -> None:
    prompt = build_prompt("Revenue grew 40%.", "How fast is revenue growing?", "Be concise.")

    assert prompt == (
        "Be concise.\n\n"
        "Thinking context (Document content): \nRevenue grew 40%.\n\n"
        "User Question: How fast is revenue growing?"
    )


def test_build_prompt_without_instruction_starts_with_context_label() -> None:
    prompt = build_prompt("text", "question")

    assert prompt.startswith(CONTEXT_LABEL)
    assert prompt.endswith(f"{QUESTION_LABEL}question")


def test_build_prompt_keeps_exactly_the_first_hundred_thousand_characters() -> None:
    head = "".join(chr(ord("a") + (i % 26)) for i in range(MAX_DOCUMENT_CHARS))
    document = head + "TAIL-MARKER" * 50

    prompt = build_prompt(document, "q")
    context = prompt[len(CONTEXT_LABEL) : prompt.index(f"\n\n{QUESTION_LABEL}")]

    assert len(context) == MAX_DOCUMENT_CHARS
    assert context == document[:MAX_DOCUMENT_CHARS]
    assert "TAIL-MARKER" not in prompt


def test_build_prompt_leaves_short_documents_untouched() -> None:
    prompt = build_prompt("short doc", "q")

    assert f"{CONTEXT_LABEL}short doc\n\n" in prompt


def test_prompt_request_builds_same_prompt() -> None:
    request = PromptRequest(document_text="doc", user_content="q", system_instruction="sys")

    assert request.build() == build_prompt("doc", "q", "sys")


def test_catalog_resolves_registered_tasks() -> None:
    catalog = TaskCatalog()

    summary = catalog.resolve("summarize")
    questions = catalog.resolve("tech-questions")

    assert summary and "summary" in summary
    assert questions and "due diligence" in questions
    assert catalog.resolve("summarize") == summary
    assert "mermaid" in catalog.resolve("create-diagrams")
    assert catalog.ids() == ("summarize", "tech-questions", "create-diagrams")


def test_catalog_rejects_unknown_task() -> None:
    with pytest.raises(UnknownTaskError) as excinfo:
        TaskCatalog().resolve("bogus")

    assert excinfo.value.task_id == "bogus"


def test_catalog_rejects_duplicate_ids() -> None:
    task = TaskDefinition(id="x", prompt_template="p", title="t")

    with pytest.raises(ValueError):
        TaskCatalog([task, task])
