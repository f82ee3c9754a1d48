"""
Code execution API routes.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from structlog import get_logger

from coderunner.models.schemas import ErrorResponse, RunCodeRequest, RunCodeResponse
from coderunner.sandbox.errors import InvalidRequest
from coderunner.sandbox.executor import CodeExecutor
from coderunner.sandbox.result_mapper import map_invalid_request, map_outcome
from coderunner.services.executor_service import get_executor

logger = get_logger()
router = APIRouter(tags=["execution"])


@router.post(
    "/run-code",
    response_model=RunCodeResponse,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    summary="Run a code snippet",
    description="Execute a snippet in a fresh, isolated execution unit and return its output"
)
async def run_code(
    request: RunCodeRequest,
    executor: CodeExecutor = Depends(get_executor)
) -> JSONResponse:
    """
    Run code in an ephemeral sandbox.

    - **language**: `python`, `node` or `shell`
    - **code**: the snippet, passed to the interpreter's inline flag
    """
    try:
        sandbox_request = executor.validate(request.language, request.code)
    except InvalidRequest as e:
        logger.info("Rejected run request", language=request.language, error=str(e))
        status_code, body = map_invalid_request(e)
        return JSONResponse(status_code=status_code, content=body)

    outcome = await executor.execute(sandbox_request)
    status_code, body = map_outcome(outcome)
    return JSONResponse(status_code=status_code, content=body)
