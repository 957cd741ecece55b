"""
Summary Report

Console and text-file output for a computer count aggregation.
"""

import logging
import os
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ldap.exceptions import OutputPathError
from services.computer_count_service import AggregationResult

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Characters Windows and POSIX file systems reject in a file name
_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def report_filename(target_name: str) -> str:
    """AD_<name>_Summary.txt, with unsafe characters replaced by '_'."""
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", target_name.strip()) or "_"
    return f"AD_{safe_name}_Summary.txt"


def prepare_output_directory(output_dir: str) -> Path:
    """
    Create the output directory if needed and verify it is writable.

    Raises:
        OutputPathError: If the directory cannot be created or written to
    """
    path = Path(output_dir).expanduser()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputPathError(f"Cannot create output directory '{path}': {e}") from e

    if not path.is_dir():
        raise OutputPathError(f"Output path '{path}' is not a directory")
    if not os.access(path, os.W_OK):
        raise OutputPathError(f"Output directory '{path}' is not writable")

    logger.debug(f"Output directory ready: {path.resolve()}")
    return path


def total_line(result: AggregationResult) -> str:
    return f"TOTAL computers under '{result.target_name}': {result.total}"


def render_report(result: AggregationResult, generated: Optional[datetime] = None) -> str:
    """Render the text report body."""
    generated = generated or datetime.now()

    lines = [
        f"AD report for target node name: '{result.target_name}'",
        f"Generated: {generated.strftime(TIMESTAMP_FORMAT)}",
        "",
        total_line(result),
        "",
        f"Summary by location (location = DN element directly above '{result.target_name}'):",
    ]
    lines.extend(f"{summary.location} : {summary.total}" for summary in result.summaries)

    return "\n".join(lines) + "\n"


def write_report(
    result: AggregationResult, output_dir: str, generated: Optional[datetime] = None
) -> Path:
    """
    Write the UTF-8 text report into `output_dir`.

    Returns:
        Path: The report file that was written

    Raises:
        OutputPathError: If the file cannot be written
    """
    report_path = prepare_output_directory(output_dir) / report_filename(result.target_name)

    try:
        report_path.write_text(render_report(result, generated), encoding="utf-8")
    except OSError as e:
        raise OutputPathError(f"Cannot write report file '{report_path}': {e}") from e

    logger.info(f"Report written to {report_path}")
    return report_path


def _table(rows: List[tuple], headers: tuple) -> List[str]:
    widths = [
        max([len(str(headers[i]))] + [len(str(row[i])) for row in rows])
        for i in range(len(headers))
    ]
    lines = [f"{headers[0]:<{widths[0]}}  {headers[1]:>{widths[1]}}"]
    lines.append(f"{'-' * widths[0]}  {'-' * widths[1]}")
    lines.extend(f"{str(row[0]):<{widths[0]}}  {row[1]:>{widths[1]}}" for row in rows)
    return lines


def print_summary(result: AggregationResult, show_nodes: bool = False) -> None:
    """Print the console summary: total, per-location table, failures."""
    print("\n" + "=" * 80)
    print("📊 AD COMPUTER COUNT SUMMARY")
    print("=" * 80)
    print(total_line(result))
    print("=" * 80)

    print()
    for line in _table(
        [(summary.location, summary.total) for summary in result.summaries],
        ("Location", "Computers"),
    ):
        print(line)

    if show_nodes and result.located_counts:
        print("\nPer-node counts:")
        for located in result.located_counts:
            print(f"   - {located.path} [{located.location}]: {located.count}")

    if result.failures:
        print(f"\n⚠️  {len(result.failures)} node(s) could not be counted:")
        for failure in result.failures:
            print(f"   - {failure.path}: {failure.error}")
