# backend/fintrack/routers/goals.py
"""Savings goal endpoints."""

from fastapi import APIRouter, Depends, Request, status

from fintrack.dependencies import get_finance_state
from fintrack.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from fintrack.schemas.goals import GoalContribution, GoalCreate, GoalResponse
from fintrack.schemas.records import GoalRecord
from fintrack.services.finance_state import FinanceState
from fintrack.services.portfolio import goal_progress

router = APIRouter(
    prefix="/goals",
    tags=["Goals"],
)


def _to_response(goal: GoalRecord) -> GoalResponse:
    return GoalResponse(
        **goal.model_dump(),
        progress=goal_progress(goal.current_amount, goal.target_amount),
    )


@router.get("/", response_model=list[GoalResponse], summary="List goals with progress")
def list_goals(state: FinanceState = Depends(get_finance_state)):
    return [
        GoalResponse(**item.goal.model_dump(), progress=item.progress)
        for item in state.goals_with_progress()
    ]


@router.post("/", response_model=GoalResponse, status_code=status.HTTP_201_CREATED, summary="Create a goal")
@limiter.limit(RATE_LIMIT_WRITE)
def create_goal(
        request: Request,
        goal: GoalCreate,
        state: FinanceState = Depends(get_finance_state),
):
    return _to_response(state.add_goal(GoalRecord(**goal.model_dump())))


@router.post("/{goal_id}/contribute", response_model=GoalResponse, summary="Contribute to a goal")
@limiter.limit(RATE_LIMIT_WRITE)
def contribute(
        request: Request,
        goal_id: int,
        body: GoalContribution,
        state: FinanceState = Depends(get_finance_state),
):
    """When **account_id** is given the amount is debited as a "Goals" expense."""
    return _to_response(state.contribute_to_goal(goal_id, body.amount, body.account_id, body.date))


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a goal")
@limiter.limit(RATE_LIMIT_WRITE)
def delete_goal(
        request: Request,
        goal_id: int,
        state: FinanceState = Depends(get_finance_state),
) -> None:
    state.delete_entity("goals", goal_id)
