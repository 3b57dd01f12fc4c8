"""Validation models and utilities for Codex runner tools."""

from typing import Annotated, Optional

from pydantic import Field
from pydantic.functional_validators import AfterValidator


# Task/output pagination
DEFAULT_OUTPUT_LINES = 64
MAX_OUTPUT_LINES = 500
DEFAULT_TASK_LIST_LIMIT = 32
MAX_TASK_LIST_LIMIT = 100

# Stream window constraints (seconds)
MIN_WAIT_SECONDS = 0
DEFAULT_WAIT_SECONDS = 5
MAX_WAIT_SECONDS = 600

# Cancellation reason constraints
REASON_MAX_LENGTH = 200


def validate_task_id(value: str) -> str:
    """Validate that a task id is not empty after stripping whitespace."""
    stripped = value.strip()
    if not stripped:
        raise ValueError("task_id cannot be empty or whitespace only")
    return stripped


TaskId = Annotated[
    str,
    AfterValidator(validate_task_id),
    Field(..., min_length=1, description="Task ID returned by codex_create_task"),
]

# Empty prompts are rejected by the task manager, not here, so the caller
# gets an invalid_input envelope rather than a schema error.
Prompt = Annotated[
    str,
    Field(..., description="Instruction passed to Codex for this task"),
]

WorkingDirectory = Annotated[
    Optional[str],
    Field(
        default=None,
        description="Directory Codex runs in. Omit to use the configured default workspace.",
    ),
]

CancelReason = Annotated[
    Optional[str],
    Field(default=None, max_length=REASON_MAX_LENGTH, description="Reason recorded on the task"),
]

SkipNewestTasks = Annotated[
    int,
    Field(default=0, ge=0, description="Skip N most recent tasks before listing"),
]

TaskListLimit = Annotated[
    int,
    Field(default=DEFAULT_TASK_LIST_LIMIT, ge=1, le=MAX_TASK_LIST_LIMIT, description="Max tasks to return"),
]

SkipNewestLines = Annotated[
    int,
    Field(default=0, ge=0, description="Skip N newest log lines before pagination"),
]

OutputLimit = Annotated[
    int,
    Field(default=DEFAULT_OUTPUT_LINES, ge=1, le=MAX_OUTPUT_LINES, description="Log lines per page"),
]

FilterText = Annotated[
    Optional[str],
    Field(default=None, description="Only keep log lines containing this text"),
]

WaitSeconds = Annotated[
    float,
    Field(
        default=DEFAULT_WAIT_SECONDS,
        ge=MIN_WAIT_SECONDS,
        le=MAX_WAIT_SECONDS,
        description="How long to collect live events before returning",
    ),
]
