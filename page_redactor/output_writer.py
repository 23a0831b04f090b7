"""
Run summary output.

Writes summary.json listing every processed page, its redaction count,
output file and error, so a run that skipped pages leaves a record of
which pages made it.
"""

import json
from datetime import datetime
from pathlib import Path

from .models import RedactionParams, RunResult


def build_summary(result: RunResult, params: RedactionParams, pattern: str) -> dict:
    """
    Build the summary structure for a run.

    Args:
        result: Completed run result
        params: Redaction parameters used
        pattern: The redaction pattern expression

    Returns:
        JSON-serializable dictionary
    """
    return {
        "redaction_timestamp": datetime.now().isoformat(),
        "pdf_path": str(result.pdf_path),
        "pattern": pattern,
        "parameters": {
            "from_page": params.from_page,
            "x_offset": params.x_offset,
            "y_offset": params.y_offset,
            "max_width": params.max_width,
            "max_height": params.max_height,
            "upscale": params.upscale,
            "detector": params.detector,
            "strategy": params.strategy.value,
            "error_policy": params.error_policy.value,
        },
        "summary": {
            "total_pages": result.total_pages,
            "processed_pages": len(result.pages),
            "failed_pages": len(result.failed_pages),
            "total_redactions": result.total_redactions,
        },
        "pages": [
            {
                "page_index": page.page_index,
                "redacted_count": page.redacted_count,
                "output_file": page.output_path.name if page.output_path else None,
                "error": page.error,
            }
            for page in result.pages
        ],
    }


def write_summary(
    result: RunResult,
    params: RedactionParams,
    pattern: str,
    output_path: Path
) -> Path:
    """
    Write the run summary to JSON.

    Args:
        result: Completed run result
        params: Redaction parameters used
        pattern: The redaction pattern expression
        output_path: Path to write JSON file

    Returns:
        The path written
    """
    summary = build_summary(result, params, pattern)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)

    return output_path
