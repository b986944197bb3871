"""Resolution of named component definitions into an immutable component graph."""

import heapq
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Sequence

from bepsim.core.components.config_base import BaseComponentConfig
from bepsim.core.components.handles import ComponentHandle, ComponentKind, Phase
from bepsim.errors import ValidationError, Violation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ComponentDefinition:
    """A component config under its user-chosen name, as read from the configuration."""

    name: str
    config: BaseComponentConfig


@dataclass(frozen=True, slots=True)
class ResolvedComponent:
    handle: ComponentHandle
    config: BaseComponentConfig
    references: Mapping[str, ComponentHandle]
    sensing: frozenset[str]


class ComponentGraph:
    """
    Immutable set of resolved components and their evaluation order.

    Cross-references are handles; names are kept only for diagnostics.
    """

    def __init__(self, components: Sequence[ResolvedComponent], order: Sequence[ComponentHandle]):
        self._components = MappingProxyType({c.handle: c for c in components})
        self._by_name = MappingProxyType({c.handle.label: c.handle for c in components})
        self._order = tuple(order)

    def __len__(self) -> int:
        return len(self._components)

    def __iter__(self) -> Iterator[ComponentHandle]:
        return iter(self._order)

    def __contains__(self, handle: ComponentHandle) -> bool:
        return handle in self._components

    @property
    def order(self) -> tuple[ComponentHandle, ...]:
        return self._order

    def of_kind(self, kind: ComponentKind) -> tuple[ComponentHandle, ...]:
        return tuple(h for h in self._order if h.kind == kind)

    def config(self, handle: ComponentHandle) -> BaseComponentConfig:
        return self._components[handle].config

    def refs(self, handle: ComponentHandle) -> Mapping[str, ComponentHandle]:
        return self._components[handle].references

    def ref(self, handle: ComponentHandle, field: str) -> Optional[ComponentHandle]:
        return self._components[handle].references.get(field)

    def sensing_refs(self, handle: ComponentHandle) -> Mapping[str, ComponentHandle]:
        component = self._components[handle]
        return {f: h for f, h in component.references.items() if f in component.sensing}

    def control_refs(self, handle: ComponentHandle) -> Mapping[str, ComponentHandle]:
        """Non-sensing references to controls, keyed by field."""
        component = self._components[handle]
        return {
            f: h
            for f, h in component.references.items()
            if h.kind == ComponentKind.CONTROL and f not in component.sensing
        }

    def referrers(
        self, target: ComponentHandle, kind: ComponentKind, field: str
    ) -> tuple[ComponentHandle, ...]:
        """Components of `kind` whose `field` refers to `target`, in evaluation order."""
        return tuple(
            h for h in self.of_kind(kind) if self._components[h].references.get(field) == target
        )

    def handle(self, name: str) -> ComponentHandle:
        """Look up a handle by user name. For loading and diagnostics only."""
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"No component named '{name}'") from None


def _find_cycles(
    names: Sequence[str], edges: Mapping[str, Sequence[str]]
) -> list[list[str]]:
    """Return each definition cycle once, as a path that starts and ends at the same name."""
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {name: WHITE for name in names}
    cycles: list[list[str]] = []
    path: list[str] = []

    def visit(name: str) -> None:
        colour[name] = GREY
        path.append(name)
        for target in edges.get(name, ()):
            if colour[target] == GREY:
                cycles.append(path[path.index(target):] + [target])
            elif colour[target] == WHITE:
                visit(target)
        path.pop()
        colour[name] = BLACK

    for name in names:
        if colour[name] == WHITE:
            visit(name)
    return cycles


def _evaluation_order(
    handles: Sequence[ComponentHandle], edges: Mapping[ComponentHandle, Sequence[ComponentHandle]]
) -> list[ComponentHandle]:
    """Phase by phase; inside a phase referenced components come first, ties by definition order."""
    order: list[ComponentHandle] = []
    for phase in Phase:
        members = [h for h in handles if h.phase == phase]
        member_set = set(members)
        pending = {h: 0 for h in members}
        dependents: dict[ComponentHandle, list[ComponentHandle]] = {h: [] for h in members}
        for source in members:
            for target in edges.get(source, ()):
                if target in member_set:
                    pending[source] += 1
                    dependents[target].append(source)

        ready = [(h.id, h) for h in members if pending[h] == 0]
        heapq.heapify(ready)
        while ready:
            _, handle = heapq.heappop(ready)
            order.append(handle)
            for dependent in dependents[handle]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (dependent.id, dependent))
    return order


def build_component_graph(
    definitions: Iterable[ComponentDefinition], unparsed: Iterable[str] = ()
) -> ComponentGraph:
    """
    Resolve definitions into a ComponentGraph.

    Every problem is collected before failing: duplicate names, out-of-range
    parameters, unresolved references, references to the wrong kind of
    component and definition cycles. Sensing references are allowed to close
    a loop. Names in `unparsed` belong to definitions that failed to load;
    references to them are not reported again as unresolved.

    Raises:
        ValidationError: carrying one Violation per problem found.
    """
    definitions = list(definitions)
    unparsed = set(unparsed)
    violations: list[Violation] = []

    handles: dict[str, ComponentHandle] = {}
    unique: list[ComponentDefinition] = []
    for definition in definitions:
        kind = definition.config.kind
        if definition.name in handles:
            first = handles[definition.name]
            violations.append(
                Violation(
                    definition.name,
                    f"name is already used by a {first.kind.value} (redefined as a {kind.value})",
                    "duplicate",
                )
            )
            continue
        handles[definition.name] = ComponentHandle(kind, len(handles), definition.name)
        unique.append(definition)

    resolved: list[ResolvedComponent] = []
    name_edges: dict[str, list[str]] = {}
    handle_edges: dict[ComponentHandle, list[ComponentHandle]] = {}
    for definition in unique:
        handle = handles[definition.name]
        for message in definition.config.validate():
            violations.append(Violation(definition.name, message, "out_of_range"))

        references: dict[str, ComponentHandle] = {}
        sensing: set[str] = set()
        for ref in definition.config.references():
            target = handles.get(ref.target)
            if target is None:
                if ref.target in unparsed:
                    continue
                violations.append(
                    Violation(
                        definition.name,
                        f"{ref.field} refers to unknown component '{ref.target}'",
                        "unresolved_reference",
                    )
                )
                continue
            if target.kind != ref.kind:
                violations.append(
                    Violation(
                        definition.name,
                        f"{ref.field} refers to '{ref.target}' which is a {target.kind.value}, "
                        f"expected a {ref.kind.value}",
                        "wrong_kind",
                    )
                )
                continue
            references[ref.field] = target
            if ref.sensing:
                sensing.add(ref.field)
            else:
                name_edges.setdefault(definition.name, []).append(ref.target)
                handle_edges.setdefault(handle, []).append(target)

        resolved.append(
            ResolvedComponent(
                handle=handle,
                config=definition.config,
                references=MappingProxyType(references),
                sensing=frozenset(sensing),
            )
        )

    for cycle in _find_cycles([d.name for d in unique], name_edges):
        violations.append(
            Violation(cycle[0], "definition cycle " + " -> ".join(cycle), "reference_cycle")
        )

    if violations:
        logger.error("Component configuration has %d violation(s)", len(violations))
        raise ValidationError(violations)

    order = _evaluation_order([c.handle for c in resolved], handle_edges)
    logger.info("Resolved %d components", len(resolved))
    return ComponentGraph(resolved, order)
