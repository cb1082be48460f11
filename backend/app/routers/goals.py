from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
from ..auth import get_current_user
from ..database import get_db
from ..models.goal import Goal
from ..models.user import User
from ..schemas.goal import GoalCreate, GoalUpdate, GoalResponse
from ..services.portfolio_service import goal_progress

router = APIRouter(prefix="/goals", tags=["goals"])


def _to_response(goal: Goal) -> GoalResponse:
    response = GoalResponse.model_validate(goal)
    response.progress = goal_progress(goal.current_amount, goal.target_amount)
    return response


def _get_owned_goal(db: Session, user_id: str, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id, Goal.user_id == user_id).first()
    if not goal:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Goal with id {goal_id} not found"
        )
    return goal


@router.get("/", response_model=List[GoalResponse])
def get_goals(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get the current user's savings goals with progress"""
    goals = db.query(Goal).filter(Goal.user_id == user.id).order_by(Goal.id).all()
    return [_to_response(g) for g in goals]


@router.get("/{goal_id}", response_model=GoalResponse)
def get_goal(goal_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return _to_response(_get_owned_goal(db, user.id, goal_id))


@router.post("/", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
def create_goal(goal: GoalCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Create a new savings goal"""
    db_goal = Goal(user_id=user.id, **goal.model_dump())
    db.add(db_goal)
    db.commit()
    db.refresh(db_goal)
    return _to_response(db_goal)


@router.put("/{goal_id}", response_model=GoalResponse)
def update_goal(
    goal_id: int,
    goal_update: GoalUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user)
):
    """Update an existing goal"""
    db_goal = _get_owned_goal(db, user.id, goal_id)

    update_data = goal_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_goal, field, value)

    db.commit()
    db.refresh(db_goal)
    return _to_response(db_goal)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(goal_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Delete a goal"""
    db_goal = _get_owned_goal(db, user.id, goal_id)
    db.delete(db_goal)
    db.commit()
    return None
