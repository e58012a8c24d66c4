"""Import report formatting functions.

Provides human-readable and machine-readable output for import passes:

- ``format_import_report`` -- full post-import summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ImportReport, ImportResult

from .models import ImportAction

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def _topic_ref(result: ImportResult) -> str:
    if result.topic_id is None:
        return "(new topic)"
    return f"TID {result.topic_id}"


def _chunk_note(result: ImportResult) -> str:
    return f" [{result.chunk_count} posts]" if result.chunk_count > 1 else ""


def format_import_report(report: ImportReport) -> str:
    """Format a complete import report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped files are summarised by count only to avoid excessive output.

    Args:
        report: The completed (or aborted) import report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Import report for {report.repo_url}"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    lines.append(
        f"Processed {len(report.results)} files: "
        f"{len(report.created)} created, "
        f"{len(report.updated)} updated, "
        f"{len(report.skipped)} unchanged, "
        f"{len(report.warnings)} warnings"
    )
    lines.append("")

    if report.created:
        lines.append("Created:")
        for r in report.created:
            lines.append(f"  {r.file_path} -> {_topic_ref(r)}{_chunk_note(r)}")
        lines.append("")

    if report.updated:
        lines.append("Updated:")
        for r in report.updated:
            line = f"  {r.file_path} -> {_topic_ref(r)}{_chunk_note(r)}"
            if r.message:
                line += f" ({r.message})"
            lines.append(line)
        lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for r in report.warnings:
            lines.append(f"  {r.file_path}: {r.message or 'skipped'}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} files (unchanged)")
        lines.append("")

    if report.index is not None:
        index = report.index
        detail = f" ({index.message})" if index.message else ""
        lines.append(
            f"Index '{index.title}': {index.action.value}"
            f" -> {_topic_ref(index)}{detail}"
        )
        lines.append("")

    if report.aborted:
        lines.append(f"ABORTED: {report.error}")
        lines.append("Re-run the import to continue; unchanged files are skipped.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: ImportReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each proposed action is shown as ``[ACTION] file_path``.

    Args:
        report: A dry-run import report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Repository: {report.repo_url}")
    lines.append("")

    groups: dict[ImportAction, list[ImportResult]] = defaultdict(list)
    for r in report.results:
        groups[r.action].append(r)
    if report.index is not None:
        groups[report.index.action].append(report.index)

    display_order = [ImportAction.CREATE, ImportAction.UPDATE, ImportAction.WARN]

    for action in display_order:
        if action not in groups:
            continue
        lines.append(f"[{action.value.upper()}]")
        for r in groups[action]:
            line = f"  {r.file_path}{_chunk_note(r)}"
            if r.message:
                line += f": {r.message}"
            lines.append(line)
        lines.append("")

    skip_count = len(groups.get(ImportAction.SKIP, []))
    if skip_count > 0:
        lines.append(f"Skipped: {skip_count} files (unchanged)")
        lines.append("")

    if not any(a != ImportAction.SKIP for a in groups):
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def _result_to_json(result: ImportResult) -> dict:
    entry: dict = {
        "file_path": result.file_path,
        "title": result.title,
        "action": result.action.value,
        "topic_id": result.topic_id,
        "category_id": result.category_id,
        "chunk_count": result.chunk_count,
    }
    if result.message:
        entry["message"] = result.message
    return entry


def report_to_json(report: ImportReport) -> dict:
    """Convert an import report to a structured dict for JSON serialisation.

    Args:
        report: The import report.

    Returns:
        Dict with repository info, counts, and per-result details.
    """
    return {
        "repo_url": report.repo_url,
        "dry_run": report.dry_run,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "aborted": report.aborted,
        "error": report.error,
        "counts": {
            "total": len(report.results),
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
            "warnings": len(report.warnings),
        },
        "results": [_result_to_json(r) for r in report.results],
        "index": (
            _result_to_json(report.index) if report.index is not None else None
        ),
    }
