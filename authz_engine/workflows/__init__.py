"""
Authorization Workflows Package.

This package contains one workflow per pattern kind: custom groups,
information product access patterns (folders), data access patterns (CAS
libraries), capability matrices and hardening.
"""

from .base_workflow import BaseWorkflow, WorkflowStep
from .dap import DAPWorkflow
from .groups import GroupsWorkflow
from .harden import HardenWorkflow
from .ipap import IPAPWorkflow
from .matrix import MatrixWorkflow

__all__ = [
    "BaseWorkflow",
    "WorkflowStep",
    "GroupsWorkflow",
    "IPAPWorkflow",
    "DAPWorkflow",
    "MatrixWorkflow",
    "HardenWorkflow",
]
