"""Runtime configuration for the Codex task runner."""

from dataclasses import dataclass
import os
import shlex


DEFAULT_ARGS_TEMPLATE = (
    "exec",
    "--full-auto",
    "--skip-git-repo-check",
    "-C",
    "{cwd}",
    "{prompt}",
)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_args(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return tuple(shlex.split(value))
    except ValueError:
        return default


def expand_path(path: str) -> str:
    """Expand a leading ``~`` to the user's home directory."""
    return os.path.expanduser(path)


@dataclass(frozen=True)
class RunnerConfig:
    executable: str = "codex"
    args_template: tuple[str, ...] = DEFAULT_ARGS_TEMPLATE
    default_workspace: str = expand_path("~/codex-workspace")
    heartbeat_interval_s: float = 15.0
    stream_host: str = "127.0.0.1"
    stream_port: int = 9101
    stream_enabled: bool = True
    log_level: str = "INFO"


def get_runner_config() -> RunnerConfig:
    """Load runner config from environment variables."""
    return RunnerConfig(
        executable=expand_path(os.getenv("CODEX_RUNNER_BIN_PATH", "codex")),
        args_template=_env_args("CODEX_RUNNER_ARGS", DEFAULT_ARGS_TEMPLATE),
        default_workspace=expand_path(
            os.getenv("CODEX_RUNNER_DEFAULT_WORKSPACE", "~/codex-workspace")
        ),
        heartbeat_interval_s=max(0.0, _env_float("CODEX_RUNNER_HEARTBEAT_S", 15.0)),
        stream_host=os.getenv("CODEX_RUNNER_STREAM_HOST", "127.0.0.1"),
        stream_port=_env_int("CODEX_RUNNER_STREAM_PORT", 9101),
        stream_enabled=_env_bool("CODEX_RUNNER_STREAM_ENABLED", True),
        log_level=os.getenv("CODEX_RUNNER_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
