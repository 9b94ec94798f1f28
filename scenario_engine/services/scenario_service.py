# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Scenario Service

Invocation contract for HTTP routes and test-run actions:
execute(definition_id, input, triggered_by) -> ExecutionResult.
"""

from typing import Any, Dict, Optional

from scenario_engine.core.errors import (
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
    sanitize_error_for_user,
)
from scenario_engine.core.logging import get_service_logger
from scenario_engine.engine.exceptions import DefinitionValidationError, GraphValidationError
from scenario_engine.engine.executor import ScenarioExecutor
from scenario_engine.engine.logging import UpdateCallback
from scenario_engine.engine.models import ExecutionRequest, ExecutionResult, TriggerType
from scenario_engine.services.definition_store import DefinitionStore

logger = get_service_logger("scenario")


class ScenarioService:
    """
    Runs scenarios on behalf of callers.

    Responsibilities:
    - Resolve the definition reference to a version
    - Execute it via ScenarioExecutor (which writes the execution record)
    - Map engine and storage failures to service errors

    Authorization is the caller's concern.
    """

    def __init__(self, definition_store: DefinitionStore, executor: ScenarioExecutor):
        self.definition_store = definition_store
        self.executor = executor
        logger.info("ScenarioService initialized")

    async def execute(
        self,
        definition_id: str,
        input: Optional[Dict[str, Any]] = None,
        triggered_by: Optional[str] = None,
        trigger_type: TriggerType = TriggerType.MANUAL,
        version_id: Optional[str] = None,
        test_run: bool = False,
        update_callback: Optional[UpdateCallback] = None,
    ) -> ExecutionResult:
        """
        Execute a scenario.

        Raises:
            NotFoundError: Definition or version not found
            ValidationError: The graph cannot be executed (nothing ran)
            InfrastructureError: The execution record could not be written
        """
        request = ExecutionRequest(
            definition_id=definition_id,
            input=input or {},
            triggered_by=triggered_by,
            trigger_type=trigger_type,
            version_id=version_id,
            test_run=test_run,
        )
        return await self.run(request, update_callback=update_callback)

    async def run(
        self,
        request: ExecutionRequest,
        update_callback: Optional[UpdateCallback] = None,
    ) -> ExecutionResult:
        version = await self.definition_store.resolve(request.definition_id, request.version_id)

        logger.info(
            f"Executing scenario: {request.definition_id}",
            extra={
                "definition_id": request.definition_id,
                "version_id": version.version_id,
                "trigger_type": request.trigger_type.value,
                "test_run": request.test_run,
            },
        )

        try:
            record = await self.executor.execute(
                version.orchestration_definition,
                definition_id=request.definition_id,
                input=request.input,
                version_id=version.version_id,
                triggered_by=request.triggered_by,
                trigger_type=request.trigger_type,
                test_run=request.test_run,
                update_callback=update_callback,
            )
        except GraphValidationError as e:
            errors = e.errors if isinstance(e, DefinitionValidationError) else [e]
            raise ValidationError(
                f"Scenario {request.definition_id} cannot be executed: {e.message}",
                field=e.field,
                details={
                    "version_id": version.version_id,
                    "errors": [err.to_dict() for err in errors],
                },
            )
        except (OSError, ConflictError) as e:
            logger.error(
                f"Failed to store execution record for {request.definition_id}: {e}",
                extra={"definition_id": request.definition_id},
            )
            raise InfrastructureError(
                f"Failed to store execution record: {sanitize_error_for_user(e)}",
                service="execution_store",
            )

        logger.info(
            f"Scenario execution {record.status.value}: {record.execution_id}",
            extra={
                "execution_id": record.execution_id,
                "status": record.status.value,
                "duration": record.duration,
            },
        )
        return ExecutionResult.from_record(record)

    def cancel(self, execution_id: str, reason: Optional[str] = None) -> None:
        """
        Cancel a running execution.

        The run finalizes as failed and its record is still written.

        Raises:
            NotFoundError: No execution with this id is running
        """
        if not self.executor.cancel(execution_id, reason):
            raise NotFoundError("Running execution", execution_id)

        logger.info(
            f"Cancellation requested: {execution_id}",
            extra={"execution_id": execution_id, "reason": reason},
        )
