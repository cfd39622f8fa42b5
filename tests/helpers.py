"""Helpers for building throwaway vaults in tests."""
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union


def write_note(
    root: Path,
    path: str,
    body: str,
    front_matter: Optional[Union[Dict[str, Any], str]] = None,
) -> Path:
    """Write ``root/path.md``.

    ``front_matter`` may be a dict (written as Digital Garden's one-line
    JSON) or a raw string placed between the ``---`` fences verbatim.
    """
    file_path = root / f"{path}.md"
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if front_matter is None:
        text = body
    else:
        block = front_matter if isinstance(front_matter, str) else json.dumps(front_matter)
        text = f"---\n{block}\n---\n{body}"
    file_path.write_text(text, encoding="utf-8")
    return file_path
