"""Error taxonomy for the task lifecycle manager."""


class TaskError(Exception):
    """Base class for caller-facing task errors."""

    code = "task_error"

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.task_id = task_id


class InvalidInputError(TaskError):
    """Malformed create request, rejected before any task exists."""

    code = "invalid_input"


class TaskNotFoundError(TaskError):
    """Unknown task id."""

    code = "not_found"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found", task_id=task_id)


class InvalidStateError(TaskError):
    """Operation not allowed in the task's current state."""

    code = "invalid_state"


class SpawnError(RuntimeError):
    """The external command could not be started. Never retried."""

    def __init__(self, message: str, *, executable: str) -> None:
        super().__init__(message)
        self.executable = executable
