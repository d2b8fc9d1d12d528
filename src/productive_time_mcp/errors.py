"""Error types and text rendering helpers.

Tool results are plain text. Configuration and remote errors are rendered as
ordinary results; everything else is flagged as an error at the dispatch
boundary. Messages must never include the API token.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SafeError(Exception):
    """An error safe to expose to agents.

    code is one of: Config | Remote | UserInput | Network | Internal.
    """

    code: str
    message: str
    hint: str | None = None
    status_code: int | None = None


# Codes rendered as ordinary (non-flagged) tool output.
NON_FLAGGED_CODES = frozenset({"Config", "Remote"})


def config_error(missing: list[str]) -> SafeError:
    """Error for missing required environment variables."""
    return SafeError(
        code="Config",
        message=f"Missing environment variables: {', '.join(missing)}",
    )


def remote_error(*, action: str, status_code: int, body: str) -> SafeError:
    """Error for a non-2xx response from the Productive API."""
    return SafeError(
        code="Remote",
        message=f"Error {action}: {status_code} - {body}",
        status_code=status_code,
    )


def user_input_error(message: str, hint: str | None = None) -> SafeError:
    """Error for invalid tool arguments."""
    return SafeError(code="UserInput", message=message, hint=hint)


def safe_error_to_text(err: SafeError) -> str:
    """Render a SafeError as the text returned to the agent."""
    if err.code == "Config":
        return f"Configuration error: {err.message}"
    if err.code == "Remote":
        return err.message
    text = f"Error: {err.message}"
    if err.hint:
        text += f"\n\nHint: {err.hint}"
    return text


def is_flagged(err: SafeError) -> bool:
    """Whether the error sets the tool result's error flag."""
    return err.code not in NON_FLAGGED_CODES
