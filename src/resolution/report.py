"""Deterministic listing, count and export of a ResolutionReport."""

import csv
import json
import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .models import ResolutionReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportEntry:
    """One resolved package and its sorted activated features."""
    name: str
    version: str
    source: str
    features: Tuple[str, ...]

    def render(self) -> str:
        return f"{self.name} {self.version} [{', '.join(self.features)}]"


def build_entries(report: ResolutionReport, include_root: bool = False) -> List[ReportEntry]:
    """One entry per resolved identity, ordered by name then version ascending."""
    return [
        ReportEntry(
            name=pkg.name,
            version=pkg.version,
            source=str(pkg.source),
            features=tuple(report.features_of(pkg)),
        )
        for pkg in report.packages(include_root=include_root)
    ]


def render_listing(entries: List[ReportEntry]) -> Iterator[str]:
    """Yield ``<name> <version> [<feature>, ...]`` lines."""
    for entry in entries:
        yield entry.render()


def count_packages(report: ResolutionReport, include_root: bool = False) -> int:
    """Number of resolved identities."""
    return len(report.packages(include_root=include_root))


def export_json(entries: List[ReportEntry], path: str) -> None:
    """Exports the resolved packages to a JSON file.

    Args:
        entries (list): Report entries.
        path (str): File path to export the JSON.

    Raises:
        OSError: if the file cannot be written
    """
    data = [
        {
            "name": e.name,
            "version": e.version,
            "source": e.source,
            "features": list(e.features),
        }
        for e in entries
    ]
    with open(path, "w", encoding="utf-8") as file:
        json.dump(data, file, ensure_ascii=False, indent=4)
    logger.info("JSON file has been successfully exported at: %s", path)


def export_csv(entries: List[ReportEntry], path: str) -> None:
    """Exports the resolved packages to a CSV file.

    Features are joined with ``;`` in a single column.

    Raises:
        OSError: if the file cannot be written
    """
    rows = [["name", "version", "source", "features"]]
    for e in entries:
        rows.append([e.name, e.version, e.source, ";".join(e.features)])
    with open(path, "w", newline="", encoding="utf-8") as file:
        csv.writer(file).writerows(rows)
    logger.info("CSV file has been successfully exported at: %s", path)
