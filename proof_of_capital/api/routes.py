import asyncio

from fastapi import APIRouter, HTTPException, Request

from proof_of_capital.engine.errors import AuthorizationError, ProofOfCapitalError
from proof_of_capital.schemas import CurveTableInput, QuoteInput, ScenarioInput
from proof_of_capital.services.curve_table import compute_level_schedule, compute_trade_quotes
from proof_of_capital.services.sandbox import run_scenario


router = APIRouter()


def _engine_error(e: ProofOfCapitalError) -> HTTPException:
    status = 403 if isinstance(e, AuthorizationError) else 409
    return HTTPException(status_code=status, detail={"error": e.code, "message": str(e)})


@router.post("/curve-table")
async def api_curve_table(data: CurveTableInput, request: Request):
    max_levels = request.app.state.settings.max_curve_levels
    if data.levels > max_levels:
        raise HTTPException(
            status_code=422,
            detail=f"levels must be <= {max_levels}. Requested: {data.levels}",
        )
    try:
        return compute_level_schedule(data.curve, data.levels)
    except ProofOfCapitalError as e:
        raise _engine_error(e)


@router.post("/quote")
async def api_quote(data: QuoteInput):
    # a far cursor walks many levels; keep it off the event loop
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(
            None,
            compute_trade_quotes,
            data.curve,
            data.total_sold,
            data.launch_tokens_earned,
            data.amount,
        )
    except ProofOfCapitalError as e:
        raise _engine_error(e)


@router.post("/scenario")
async def api_scenario(data: ScenarioInput, request: Request):
    max_steps = request.app.state.settings.max_scenario_steps
    if len(data.steps) > max_steps:
        raise HTTPException(
            status_code=422,
            detail=f"scenario may have at most {max_steps} steps. Current: {len(data.steps)}",
        )

    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(None, run_scenario, data)
    except ProofOfCapitalError as e:
        # construction-time failures; step failures are reported per step
        raise _engine_error(e)


@router.get("/health")
async def health():
    return {"status": "ok"}
