"""
Core Engine Package.

This package contains the principal graphs, the state reconciler and the
pattern mapper that turns access pattern files into rules and CAS access
controls.
"""

from .graph import Principal, PrincipalGraph
from .pattern_mapper import PatternMapper, join_rows, split_permissions
from .reconciler import ActionKind, ReconcileAction, StateReconciler

__all__ = [
    "Principal",
    "PrincipalGraph",
    "PatternMapper",
    "join_rows",
    "split_permissions",
    "StateReconciler",
    "ReconcileAction",
    "ActionKind",
]
