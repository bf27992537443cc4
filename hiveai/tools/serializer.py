"""Tool writing a list of records to a CSV file."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List

from hiveai.services.tool_registry import Tool


class SerializerTool(Tool):
    name = "serializer"
    description = "Save a list of records (objects with the same keys) to a CSV file."
    parameters = {
        "type": "object",
        "properties": {
            "data": {"type": "array", "items": {"type": "object"}},
            "outputPath": {"type": "string", "description": "Destination CSV file"},
        },
        "required": ["data", "outputPath"],
    }

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows: List[Dict[str, Any]] = payload.get("data") or []
        output = Path(payload["outputPath"])
        output.parent.mkdir(parents=True, exist_ok=True)

        with output.open("w", newline="", encoding="utf-8") as handle:
            if rows:
                # Columns follow the first record, as in the header row.
                writer = csv.DictWriter(handle, fieldnames=list(rows[0]), extrasaction="ignore")
                writer.writeheader()
                writer.writerows(rows)
        return {"saved": str(output), "rows": len(rows)}
