"""CLI client for the opdbus API."""

from __future__ import annotations

import json
import logging
import time
from typing import (
    Any,
    Dict,
    Iterator,
    Tuple,
    cast,
)

import httpx

from opdbus.common import (
    STEP_COLORS,
    AnsiColors,
    colored_print,
    format_step,
)
from opdbus.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def _api_url(endpoint: str) -> str:
    return f"http://localhost:{settings.API_PORT}{endpoint}"


def _error_detail(response: httpx.Response) -> str:
    try:
        return str(response.json().get("detail", response.text))
    except ValueError:
        return response.text


def call_api(endpoint: str, data: Dict[str, Any], max_retries: int = 5) -> Dict[str, Any]:
    """Make a POST request to the API and return the response with retries."""
    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.post(_api_url(endpoint), json=data)
                response.raise_for_status()
                return cast(Dict[str, Any], response.json())
        except httpx.ConnectError:
            # The API thread may still be starting: back off 0.5s, 1s, 2s, 4s...
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                time.sleep(retry_delay)
                continue
            break
        except httpx.HTTPStatusError as e:
            return {"error": f"API error: {_error_detail(e.response)}"}
        except httpx.HTTPError as e:
            logger.error("API request error: %s", str(e))
            return {"error": f"Error connecting to API: {str(e)}"}

    return {"error": f"Failed to connect to API after {max_retries} attempts"}


def stream_run(task: str, session_id: str) -> Iterator[Dict[str, Any]]:
    """POST *task* to ``/runs/stream`` and yield each step as it arrives."""
    payload = {"task": task, "session_id": session_id}
    with httpx.Client(timeout=None) as client:
        with client.stream("POST", _api_url("/runs/stream"), json=payload) as response:
            if response.status_code >= 400:
                response.read()
                yield {"kind": "error", "content": f"API error: {_error_detail(response)}"}
                return
            for line in response.iter_lines():
                if line.strip():
                    yield json.loads(line)


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    session_response = call_api("/sessions", {})
    session_id = session_response.get("session_id")

    if not session_id:
        colored_print(
            f"⚠️ Failed to create a session: {session_response.get('error')}", AnsiColors.RED
        )
        return

    colored_print("\n🔮 opdbus shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN)
    while True:
        colored_print("\n🧑 Task: ", AnsiColors.BLUE, end="")
        task, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if task.lower() in {"exit", "quit"}:
            break
        if not task:
            continue

        try:
            for step in stream_run(task, session_id):
                colored_print(format_step(step), STEP_COLORS.get(step.get("kind"), AnsiColors.YELLOW))
        except httpx.HTTPError as e:
            logger.error("Streaming request failed: %s", e)
            colored_print(f"Error connecting to API: {e}", AnsiColors.RED)


if __name__ == "__main__":
    run_cli()
