from __future__ import annotations

from functools import lru_cache
from pathlib import Path

PROMPT_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=8)
def load_prompt(filename: str) -> str:
    """Load a prompt text file shipped with the codebase."""

    path = PROMPT_DIR / filename
    if not path.is_file():
        raise RuntimeError(f"Prompt file not found: {filename}")
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        raise RuntimeError(f"Prompt file is empty: {filename}")
    return text
