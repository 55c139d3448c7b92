"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import typer


def _err(msg: str) -> None:
    typer.echo(msg, err=True)


def handle_error(exc: Exception) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.  Failures tied
    to a resource name the resource, its kind, the error class and whether
    state was mutated, so re-running is always a safe next step.
    """
    from stackwright.config.loader import ConfigError
    from stackwright.engine.errors import (
        ApplyCanceled,
        ApplyError,
        ConcurrentDeploymentError,
        StateCorruptionError,
        UnknownResourceKindError,
        ValidationError,
    )

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}")
    elif isinstance(exc, ValidationError):
        _err("Validation failed:")
        for e in exc.errors:
            _err(f"  - {e}")
    elif isinstance(exc, ConcurrentDeploymentError):
        _err(f"Deployment locked: {exc}")
        _err("  No changes were made. Retry once the other run finishes, or run `unlock`.")
    elif isinstance(exc, UnknownResourceKindError):
        _err(f"Configuration error: {exc}")
    elif isinstance(exc, StateCorruptionError):
        _err(f"State error: {exc}")
    elif isinstance(exc, ApplyError):
        cause = exc.__cause__
        error_class = type(cause).__name__ if cause is not None else type(exc).__name__
        message = str(cause) if cause is not None else str(exc)
        _err(f"Deploy failed on {exc.kind} '{exc.name}' ({error_class}): {message}")
        s = exc.result.summary()
        mutated = exc.result.state_mutated
        _err(f"  State mutated: {'yes' if mutated else 'no'}")
        parts = [
            f"{n} {verb}"
            for n, verb in ((s["create"], "created"), (s["update"], "updated"))
            if n
        ]
        if parts:
            _err(f"  Committed before the failure: {', '.join(parts)}.")
        _err("  Re-run deploy to resume from the committed state.")
    elif isinstance(exc, ApplyCanceled):
        _err(f"Canceled: {exc}")
    else:
        _err(f"Error: {exc}")

    return 1
