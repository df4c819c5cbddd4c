"""Deferred filters and their propagation through the key graph.

Components:
- Predicate: Opaque boolean expression bound to one table
- FilterSet: Insertion-ordered predicates per table
- FilterPropagator: Transitive semi-join reduction for materialization
- PropagationPlan / SemiJoinStep: Inspectable reduction plan
"""

from relflow.filters.filter_set import FilterSet, Predicate
from relflow.filters.propagation import FilterPropagator, PropagationPlan, SemiJoinStep

__all__ = [
    "FilterPropagator",
    "FilterSet",
    "Predicate",
    "PropagationPlan",
    "SemiJoinStep",
]
