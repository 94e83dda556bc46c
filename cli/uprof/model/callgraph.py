"""
Call-graph model consumed by the printers.

A CallGraph is a read-only snapshot of one profiling run:

- CallGraph holds ThreadInfo records
- ThreadInfo maps method names to MethodInfo records
- MethodInfo holds its aggregate statistics plus two tuples of CallEdge
  records (parents = callers, children = callees)

Edges name their target instead of pointing at it; the owning thread
resolves the name.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple, Union


@dataclass(frozen=True)
class CallEdge:
    """Aggregated caller -> callee relationship"""

    target: str
    total_time: float
    self_time: float
    called: int

    @property
    def children_time(self) -> float:
        # self_time may exceed total_time by float noise
        return max(0.0, self.total_time - self.self_time)


@dataclass(frozen=True)
class MethodInfo:
    """One distinct callable as observed on a thread"""

    name: str
    total_time: float
    self_time: float
    called: int
    parents: Tuple[CallEdge, ...] = ()
    children: Tuple[CallEdge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "parents", tuple(self.parents))
        object.__setattr__(self, "children", tuple(self.children))

    @property
    def children_time(self) -> float:
        # self_time may exceed total_time by float noise
        return max(0.0, self.total_time - self.self_time)


@dataclass(frozen=True)
class ThreadInfo:
    id: Union[int, str]
    methods: Mapping[str, MethodInfo] = field(default_factory=dict)
    sequence: int = 0

    def __post_init__(self):
        # Copy so later changes to the caller's dict cannot leak in.
        object.__setattr__(self, "methods", MappingProxyType(dict(self.methods)))

    @classmethod
    def from_methods(cls, thread_id, methods: Iterable[MethodInfo], sequence: int = 0):
        """Build a thread from a method list; duplicate names are rejected."""
        table: Dict[str, MethodInfo] = {}
        dupes: List[str] = []
        for m in methods:
            if m.name in table:
                dupes.append(m.name)
            table[m.name] = m
        if dupes:
            from uprof.model.validate import ModelValidationError

            raise ModelValidationError(
                [f"thread {thread_id}: duplicate method '{name}'" for name in dupes]
            )
        return cls(id=thread_id, methods=table, sequence=sequence)

    def resolve(self, edge: CallEdge) -> MethodInfo:
        """Return the method an edge points at."""
        return self.methods[edge.target]

    def sorted_methods(self) -> List[MethodInfo]:
        """Methods from longest to shortest total time, ties by name."""
        return sorted(self.methods.values(), key=lambda m: (-m.total_time, m.name))

    def toplevel(self):
        ordered = self.sorted_methods()
        return ordered[0] if ordered else None


@dataclass(frozen=True)
class CallGraph:
    threads: Tuple[ThreadInfo, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "threads", tuple(self.threads))

    def __iter__(self) -> Iterator[ThreadInfo]:
        return iter(self.sorted_threads())

    def __len__(self) -> int:
        return len(self.threads)

    def sorted_threads(self) -> List[ThreadInfo]:
        # stable: equal sequences keep construction order
        return sorted(self.threads, key=lambda t: t.sequence)

    def method_count(self) -> int:
        return sum(len(t.methods) for t in self.threads)
