"""Prompt construction and the catalog of canned document tasks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from .errors import UnknownTaskError

MAX_DOCUMENT_CHARS = 100_000
CONTEXT_LABEL = "Thinking context (Document content): \n"
QUESTION_LABEL = "User Question: "

DEFAULT_SYSTEM_INSTRUCTION = "You are a helpful assistant analyzing an investor document."


def build_prompt(
    document_text: str,
    user_content: str,
    system_instruction: str | None = None,
) -> str:
    """Assemble the prompt sent to a provider.

    The order is fixed: optional system instruction, the labelled document
    context cut to its first ``MAX_DOCUMENT_CHARS`` characters, then the
    labelled user content.
    """

    prompt = f"{CONTEXT_LABEL}{document_text[:MAX_DOCUMENT_CHARS]}\n\n{QUESTION_LABEL}{user_content}"
    if system_instruction:
        prompt = f"{system_instruction}\n\n{prompt}"
    return prompt


@dataclass(frozen=True, slots=True)
class PromptRequest:
    """Inputs for a single provider call."""

    document_text: str
    user_content: str
    system_instruction: Optional[str] = None

    def build(self) -> str:
        return build_prompt(self.document_text, self.user_content, self.system_instruction)


@dataclass(frozen=True, slots=True)
class TaskDefinition:
    """A parameterless prompt template triggered by id."""

    id: str
    prompt_template: str
    title: str


SUMMARIZE = TaskDefinition(
    id="summarize",
    title="Summarizing document",
    prompt_template=(
        "Please provide a comprehensive summary of this document, highlighting key "
        "value propositions, financials, and team details."
    ),
)

TECH_QUESTIONS = TaskDefinition(
    id="tech-questions",
    title="Generating tech questions",
    prompt_template=(
        "Based on the technical details in this document, please prepare a list of "
        "5-10 technical due diligence questions to ask the team."
    ),
)

CREATE_DIAGRAMS = TaskDefinition(
    id="create-diagrams",
    title="Creating diagrams from document data",
    prompt_template=(
        "Using the data in this document, create Mermaid diagrams that visualize its "
        "key structures: for example the business model flow, revenue or funding "
        "breakdowns, timelines and team or product architecture. Return every diagram "
        "in its own fenced code block tagged ```mermaid, preceded by a one-line "
        "caption. Use only valid Mermaid syntax and quote labels that contain "
        "punctuation."
    ),
)

DEFAULT_TASKS: Tuple[TaskDefinition, ...] = (SUMMARIZE, TECH_QUESTIONS, CREATE_DIAGRAMS)


class TaskCatalog:
    """Read-only mapping from task id to task definition."""

    def __init__(self, tasks: Iterable[TaskDefinition] = DEFAULT_TASKS) -> None:
        self._tasks: Dict[str, TaskDefinition] = {}
        for task in tasks:
            if task.id in self._tasks:
                raise ValueError(f"Duplicate task id: {task.id}")
            self._tasks[task.id] = task

    def get(self, task_id: str) -> TaskDefinition:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise UnknownTaskError(task_id) from None

    def resolve(self, task_id: str) -> str:
        return self.get(task_id).prompt_template

    def ids(self) -> Tuple[str, ...]:
        return tuple(self._tasks)

    def __iter__(self) -> Iterator[TaskDefinition]:
        return iter(self._tasks.values())

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)


__all__ = [
    "CONTEXT_LABEL",
    "DEFAULT_SYSTEM_INSTRUCTION",
    "DEFAULT_TASKS",
    "MAX_DOCUMENT_CHARS",
    "PromptRequest",
    "QUESTION_LABEL",
    "TaskCatalog",
    "TaskDefinition",
    "build_prompt",
]
