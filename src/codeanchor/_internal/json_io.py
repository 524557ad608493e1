"""Centralized JSON file output.

``write_json_document`` writes operator-facing report files: readable,
field order preserved, and replaced atomically so a reader never sees a
partial report.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union


def write_json_document(path: Union[str, Path], obj: Any) -> Path:
    """
    Write a JSON document, fully replacing any previous file.

    The content goes to a temporary file in the same directory which is then
    renamed over the target.

    Args:
        path: Destination file
        obj: JSON-serializable object

    Returns:
        The destination path
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = json.dumps(obj, indent=2, ensure_ascii=False) + "\n"

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path
