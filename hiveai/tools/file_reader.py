"""Tool reading JSON, CSV and text files for an agent."""
from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from hiveai.services.tool_registry import Tool


class FileReaderTool(Tool):
    name = "file-reader"
    description = "Use it to read and parse files (JSON, CSV, TXT, MD). Provide a file path to extract its content."
    parameters = {
        "type": "object",
        "properties": {"filePath": {"type": "string", "description": "Path of the file to read"}},
        "required": ["filePath"],
    }

    def __init__(self, base_dir: Optional[Union[str, Path]] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else None

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        file_path = payload.get("filePath")
        if not file_path:
            return _failure("unknown", 0, "No file path provided")

        path = Path(file_path)
        if not path.is_absolute():
            path = (self._base_dir or Path.cwd()) / path
        if not path.is_file():
            return _failure("unknown", 0, f"File not found: {file_path}")

        size = path.stat().st_size
        suffix = path.suffix.lower()
        try:
            if suffix == ".json":
                return {"content": json.loads(path.read_text(encoding="utf-8")), "format": "json", "size": size}
            if suffix == ".csv":
                with path.open(newline="", encoding="utf-8") as handle:
                    rows = [dict(row) for row in csv.DictReader(handle)]
                return {"content": rows, "format": "csv", "size": size}
            if suffix in (".txt", ".md"):
                return {"content": path.read_text(encoding="utf-8"), "format": "text", "size": size}
        except (OSError, ValueError, csv.Error) as exc:
            return _failure(suffix.lstrip("."), size, f"Error reading file: {exc}")
        return _failure("unsupported", size, f"Unsupported file format: {suffix}")


def _failure(fmt: str, size: int, error: str) -> Dict[str, Any]:
    return {"content": "", "format": fmt, "size": size, "error": error}
