import json
from pathlib import Path
from typing import Any

from bol_triage.extraction.exceptions import ExtractionError

PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt(name: str, prompt_dir: Path | None = None) -> str:
    """Load a bundled prompt or instruction file.

    Raises:
        ExtractionError: if the file cannot be read.
    """
    path = (prompt_dir or PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExtractionError(f"Failed to load prompt '{name}': {exc}") from exc


def load_schema(name: str, prompt_dir: Path | None = None) -> dict[str, Any]:
    """Load and parse a bundled JSON schema.

    Raises:
        ExtractionError: if the file cannot be read or is not a JSON object.
    """
    raw = load_prompt(name, prompt_dir)
    try:
        schema = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"Invalid JSON schema '{name}': {exc}") from exc
    if not isinstance(schema, dict):
        raise ExtractionError(f"JSON schema '{name}' must be an object")
    return schema
