from fastapi import APIRouter, Depends, status
import time

from api.dependencies import get_client_ip, get_execution_registry
from api.schemas.requests import StartExecutionRequest
from api.schemas.responses import (
    ExecutionClosed,
    ExecutionInfo,
    ExecutionListResponse,
    ExecutionStarted,
    StandardResponse,
)
from core.logging import get_api_logger, get_audit_logger
from core.utils.exceptions import ExecutionNotFoundError
from services.executions.registry import ExecutionRegistry

router = APIRouter(prefix="/executions", tags=["Executions"])

api_logger = get_api_logger("executions_api")
audit_logger = get_audit_logger("executions_audit")


@router.post("", response_model=StandardResponse[ExecutionStarted],
             status_code=status.HTTP_201_CREATED)
async def start_execution(
    body: StartExecutionRequest,
    client_ip: str = Depends(get_client_ip),
    registry: ExecutionRegistry = Depends(get_execution_registry),
):
    """
    Start a trading execution.

    Keys come from the unlocked vault unless a password is supplied, in which
    case only the named accounts are decrypted for this execution.
    """
    start_time = time.time()
    chain_configs = body.to_chain_configs()

    if body.password is not None:
        execution_id = await registry.initialize_execution_with_password(
            body.execution_type, body.strategy_id, chain_configs,
            body.password.get_secret_value(),
        )
    else:
        execution_id = await registry.initialize_execution(
            body.execution_type, body.strategy_id, chain_configs,
        )

    audit_logger.info("Execution started",
                      client_ip=client_ip,
                      execution_id=execution_id,
                      strategy_id=body.strategy_id,
                      chains=[c.chain_name for c in chain_configs],
                      action="EXECUTION_START")
    api_logger.info("Start execution completed",
                    execution_id=execution_id,
                    processing_time_ms=(time.time() - start_time) * 1000)
    return StandardResponse(message="Execution initialized",
                            data=ExecutionStarted(execution_id=execution_id))


@router.get("", response_model=StandardResponse[ExecutionListResponse])
async def list_executions(
    registry: ExecutionRegistry = Depends(get_execution_registry),
):
    """Active executions with their chain bindings."""
    executions = []
    for execution_id in registry.get_active_executions():
        record = registry.get_execution(execution_id)
        if record is not None:
            executions.append(ExecutionInfo.from_record(record))
    return StandardResponse(data=ExecutionListResponse(executions=executions, count=len(executions)))


@router.get("/{execution_id}", response_model=StandardResponse[ExecutionInfo])
async def get_execution(
    execution_id: str,
    registry: ExecutionRegistry = Depends(get_execution_registry),
):
    record = registry.get_execution(execution_id)
    if record is None:
        raise ExecutionNotFoundError(execution_id)
    return StandardResponse(data=ExecutionInfo.from_record(record))


@router.post("/{execution_id}/close", response_model=StandardResponse[ExecutionClosed])
async def close_execution(
    execution_id: str,
    client_ip: str = Depends(get_client_ip),
    registry: ExecutionRegistry = Depends(get_execution_registry),
):
    """
    Close an execution. A failing session close still removes it (500 with
    ``removed: true``).
    """
    result = await registry.close_execution(execution_id)
    audit_logger.info("Execution closed", client_ip=client_ip,
                      execution_id=execution_id, action="EXECUTION_CLOSE")
    return StandardResponse(message="Execution closed",
                            data=ExecutionClosed(execution_id=execution_id, result=result))
