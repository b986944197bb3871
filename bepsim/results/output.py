"""Projection of aggregated results into tables and files."""

import json
import logging
from dataclasses import asdict, fields
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

import pandas as pd

from bepsim.results.aggregator import ResultsAggregator
from bepsim.results.records import IntervalRecord, SupplyIntervalRecord, ZoneIntervalRecord

logger = logging.getLogger(__name__)

Writer = Callable[[ResultsAggregator, Path], List[Path]]

WRITERS: Dict[str, Writer] = {}


def register_writer(name: str):
    """Decorator to register an output writer under a format name."""
    def decorator(func: Writer) -> Writer:
        WRITERS[name] = func
        return func
    return decorator


def _frame(records: Sequence, record_type: type) -> pd.DataFrame:
    columns = [f.name for f in fields(record_type)]
    rows = [
        {k: (v.value if isinstance(v, Enum) else v) for k, v in asdict(record).items()}
        for record in records
    ]
    return pd.DataFrame(rows, columns=columns)


def to_tables(aggregate: ResultsAggregator) -> Dict[str, pd.DataFrame]:
    """One table per record type, one row per record, columns in field order."""
    return {
        "intervals": _frame(aggregate.intervals, IntervalRecord),
        "zones": _frame(aggregate.zones, ZoneIntervalRecord),
        "supplies": _frame(aggregate.supplies, SupplyIntervalRecord),
    }


def summary_dict(aggregate: ResultsAggregator) -> dict:
    return asdict(aggregate.totals)


@register_writer("csv")
def write_csv(aggregate: ResultsAggregator, directory: Path) -> List[Path]:
    paths = []
    for name, table in to_tables(aggregate).items():
        path = directory / f"{name}.csv"
        table.to_csv(path, index=False)
        paths.append(path)
    path = directory / "summary.json"
    path.write_text(json.dumps(summary_dict(aggregate), indent=2))
    paths.append(path)
    return paths


@register_writer("json")
def write_json(aggregate: ResultsAggregator, directory: Path) -> List[Path]:
    report = {
        "summary": summary_dict(aggregate),
        "tables": {
            name: json.loads(table.to_json(orient="records", date_format="iso"))
            for name, table in to_tables(aggregate).items()
        },
    }
    path = directory / "report.json"
    path.write_text(json.dumps(report, indent=2))
    return [path]


def write_outputs(
    aggregate: ResultsAggregator, directory: str, formats: Iterable[str]
) -> List[Path]:
    """Write every requested format under `directory`, creating it if needed."""
    formats = list(formats)
    unknown = [f for f in formats if f not in WRITERS]
    if unknown:
        raise ValueError(f"Unknown output format(s): {', '.join(unknown)}")
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name in formats:
        written.extend(WRITERS[name](aggregate, out_dir))
    logger.info("Wrote %d output file(s) to %s", len(written), out_dir)
    return written
