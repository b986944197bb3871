"""Loading of the YAML configuration document into typed configs."""

import logging
from dataclasses import make_dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from dacite import Config, DaciteError, from_dict

from bepsim.core.clock import ClockConfig
from bepsim.core.components.config_types import SECTION_TYPES
from bepsim.core.components.graph import ComponentDefinition, build_component_graph
from bepsim.core.data.config import ExternalConditionsConfig
from bepsim.core.data.sources.file import FileDataSourceConfig
from bepsim.errors import ValidationError, Violation
from bepsim.results.output import WRITERS
from bepsim.sim.config import InvariantConfig, OutputConfig, SimulationConfig
from bepsim.solver.convergence import ConvergenceConfig

logger = logging.getLogger(__name__)

# YAML reads unquoted timestamps and dates as datetime objects and whole
# numbers as ints; cast them to the declared str and float fields.
DACITE_CONFIG = Config(cast=[Enum, float, str])

SECTIONS = {
    "simulation": ClockConfig,
    "solver": ConvergenceConfig,
    "invariants": InvariantConfig,
    "external_conditions": ExternalConditionsConfig,
    "output": OutputConfig,
}
REQUIRED_SECTIONS = ("simulation", "external_conditions", "components")

# dacite resolves a Union only as a field type, so each definition is parsed
# as the `config` field of a one-field wrapper.
ENTRY_TYPES = {
    section: make_dataclass(f"{section}_entry", [("config", config_type)], frozen=True)
    for section, config_type in SECTION_TYPES.items()
}


def _parse(data_class, data: Any, component: Optional[str], violations: List[Violation]):
    try:
        return from_dict(data_class, data, config=DACITE_CONFIG)
    except (DaciteError, ValueError, TypeError) as e:
        violations.append(Violation(component, str(e), "schema"))
        return None


def parse_components(
    document: Any, violations: List[Violation], unparsed: Optional[List[str]] = None
) -> Tuple[ComponentDefinition, ...]:
    """
    Parse every component definition, recording a violation for each one that fails.

    Names of the definitions that failed are appended to `unparsed` when given.
    """
    if not isinstance(document, dict):
        violations.append(Violation(None, "'components' must be a mapping of sections", "schema"))
        return ()

    for section in document:
        if section not in SECTION_TYPES:
            violations.append(Violation(None, f"unknown component section '{section}'", "schema"))

    definitions = []
    for section, entry_type in ENTRY_TYPES.items():
        entries = document.get(section) or {}
        if not isinstance(entries, dict):
            violations.append(
                Violation(None, f"'components.{section}' must map names to definitions", "schema")
            )
            continue
        for name, data in entries.items():
            name = str(name)
            entry = None
            if isinstance(data, dict):
                entry = _parse(entry_type, {"config": data}, name, violations)
            else:
                violations.append(Violation(name, f"{section} definition must be a mapping", "schema"))
            if entry is not None:
                definitions.append(ComponentDefinition(name=name, config=entry.config))
            elif unparsed is not None:
                unparsed.append(name)
    return tuple(definitions)


def _resolve_paths(conditions: ExternalConditionsConfig, base_dir: Path) -> ExternalConditionsConfig:
    sources = {}
    for name, source in conditions.sources.items():
        if isinstance(source, FileDataSourceConfig) and not Path(source.file_path).is_absolute():
            source = replace(source, file_path=str(base_dir / source.file_path))
        sources[name] = source
    return replace(conditions, sources=sources)


def parse_config(document: Any, base_dir: Optional[Path] = None) -> SimulationConfig:
    """
    Validate a loaded configuration document.

    Schema problems in any section and in individual component definitions
    are reported together with the component registry's own violations.

    Raises:
        ValidationError: listing every problem found.
    """
    violations: List[Violation] = []
    if not isinstance(document, dict):
        raise ValidationError([Violation(None, "configuration must be a mapping", "schema")])

    for key in document:
        if key not in SECTIONS and key != "components":
            violations.append(Violation(None, f"unknown section '{key}'", "schema"))
    for key in REQUIRED_SECTIONS:
        if key not in document:
            violations.append(Violation(None, f"missing required section '{key}'", "schema"))

    parsed: Dict[str, Any] = {}
    for key, data_class in SECTIONS.items():
        if key in document:
            parsed[key] = _parse(data_class, document[key] or {}, None, violations)

    unparsed: List[str] = []
    definitions = parse_components(document.get("components", {}), violations, unparsed)

    output = parsed.get("output")
    if output is not None:
        for name in output.formats:
            if name not in WRITERS:
                violations.append(
                    Violation(None, f"unknown output format '{name}' (known: {', '.join(WRITERS)})", "schema")
                )

    if violations:
        # Collect registry problems in the definitions that did parse as well.
        try:
            build_component_graph(definitions, unparsed)
        except ValidationError as e:
            violations.extend(e.violations)
        raise ValidationError(violations)

    conditions = parsed["external_conditions"]
    if base_dir is not None:
        conditions = _resolve_paths(conditions, base_dir)

    optional = {k: parsed[k] for k in ("solver", "invariants", "output") if k in parsed}
    return SimulationConfig(
        simulation=parsed["simulation"],
        external_conditions=conditions,
        components=definitions,
        **optional,
    )


def load_config(path: str) -> SimulationConfig:
    """Read and validate a YAML configuration file."""
    config_path = Path(path)
    with open(config_path, "r") as file:
        try:
            document = yaml.safe_load(file)
        except yaml.YAMLError as e:
            raise ValidationError([Violation(None, f"invalid YAML: {e}", "syntax")]) from e
    logger.info("Loaded configuration from %s", config_path)
    return parse_config(document, base_dir=config_path.parent)
