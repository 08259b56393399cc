"""
Base Workflow Classes for the Authorization Model Engine.

This module provides the foundation for the groups, IPAP, DAP, matrix and
hardening workflows with common functionality for executing operations
against the platform services and collecting their outcomes.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..connectors import (
    AuthorizationConnector,
    CASConnector,
    ConfigurationConnector,
    ConnectorResult,
    FoldersConnector,
    IdentitiesConnector,
)
from ..engine.graph import Principal
from ..engine.pattern_mapper import PatternMapper
from ..models import PrincipalKind, WorkflowResult

logger = logging.getLogger(__name__)


class WorkflowStep:
    """Represents a single step in a workflow execution."""

    def __init__(
        self,
        service: str,
        operation: str,
        resource: str = "",
        parameters: Optional[Dict[str, Any]] = None,
    ):
        self.service = service
        self.operation = operation
        self.resource = resource
        self.parameters = parameters or {}
        self.executed_at: Optional[datetime] = None
        self.success: Optional[bool] = None
        self.error: Optional[str] = None
        self.result: Optional[str] = None

    def mark_success(self, result: Optional[str] = None):
        """Mark step as successful."""
        self.executed_at = datetime.now(timezone.utc)
        self.success = True
        self.result = result

    def mark_failure(self, error: str):
        """Mark step as failed."""
        self.executed_at = datetime.now(timezone.utc)
        self.success = False
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        """Convert step to dictionary for serialization."""
        return {
            "service": self.service,
            "operation": self.operation,
            "resource": self.resource,
            "parameters": self.parameters,
            "executed_at": self.executed_at.isoformat() if self.executed_at else None,
            "success": self.success,
            "error": self.error,
            "result": self.result,
        }


class BaseWorkflow:
    """
    Base class for authorization workflows.

    Each workflow shares one connected session across its connectors. Item
    failures are recorded as failed steps and processing continues; fatal
    errors (session, transport, decode, schema) propagate to the caller.
    """

    pattern = ""

    def __init__(self, session, mapper: Optional[PatternMapper] = None):
        """
        Initialize the workflow.

        Args:
            session: Connected Session (or MockSession)
            mapper: PatternMapper; a default one is created if omitted
        """
        self.session = session
        self.workflow_id = str(uuid.uuid4())
        self.action = ""
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self.steps: List[WorkflowStep] = []
        self.errors: List[str] = []

        self.mapper = mapper or PatternMapper()
        self.identities = IdentitiesConnector(session)
        self.folders = FoldersConnector(session)
        self.authorization = AuthorizationConnector(session)
        self.cas = CASConnector(session)
        self.configuration = ConfigurationConnector(session)

        logger.debug(f"Initialized {self.__class__.__name__} workflow {self.workflow_id}")

    def _start(self, action: str, **parameters: Any):
        self.action = action
        self.started_at = datetime.now(timezone.utc)
        logger.info(f"Starting {self.pattern} {action} workflow {self.workflow_id}: {parameters}")

    def _finish(self) -> WorkflowResult:
        """Close the workflow and build its result."""
        self.completed_at = datetime.now(timezone.utc)
        result = WorkflowResult(
            workflow_id=self.workflow_id,
            pattern=self.pattern,
            action=self.action,
            started_at=self.started_at or self.completed_at,
            completed_at=self.completed_at,
            success=len(self.errors) == 0,
            actions_taken=[step.to_dict() for step in self.steps],
            errors=self.errors.copy(),
        )
        logger.info(
            f"Completed {self.pattern} {self.action} workflow: "
            f"{len(self.steps)} steps, {len(self.errors)} errors"
        )
        return result

    def _execute_step(self, step: WorkflowStep, operation: Callable[[], ConnectorResult]) -> bool:
        """
        Execute a single workflow step.

        Args:
            step: The step to record
            operation: Connector call producing the step's outcome

        Returns:
            True if successful, False otherwise
        """
        return self._record(step, operation())

    def _record(self, step: WorkflowStep, result: ConnectorResult) -> bool:
        """Record a connector outcome on a step."""
        self.steps.append(step)
        if result.success:
            step.mark_success(result.message)
            logger.debug(f"Step completed: {step.service}.{step.operation}({step.resource})")
            return True

        step.mark_failure(result.error or result.message or "Unknown error")
        self.errors.append(f"{step.service}.{step.operation}({step.resource}): {step.error}")
        return False

    def _fail_step(self, step: WorkflowStep, error: str):
        """Record a step that could not be attempted."""
        logger.error(error)
        self.steps.append(step)
        step.mark_failure(error)
        self.errors.append(f"{step.service}.{step.operation}({step.resource}): {error}")

    # Shared group handling

    def _create_group(self, group_id: str) -> bool:
        group = Principal(group_id, PrincipalKind.GROUP)
        step = WorkflowStep("identities", "create_group", group_id)
        return self._execute_step(step, lambda: self.identities.create_principal(group))

    def _delete_group(self, group_id: str) -> bool:
        step = WorkflowStep("identities", "delete_group", group_id)

        def delete() -> ConnectorResult:
            if self.identities.delete_principal(group_id):
                return ConnectorResult(True, f"Deleted group {group_id}")
            return ConnectorResult(False, error=f"Group {group_id} was not deleted")

        return self._execute_step(step, delete)

    def _assert_rule(self, rule, resource: str) -> bool:
        step = WorkflowStep(
            "authorization",
            "enable_rule" if rule.enabled else "disable_rule",
            resource,
            {"principal": rule.principal, "permissions": rule.permissions},
        )
        return self._execute_step(step, lambda: self.authorization.assert_rule(rule))
