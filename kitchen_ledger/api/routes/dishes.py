from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kitchen_ledger.api.deps import unwrap
from kitchen_ledger.api.routes.products import cost_out
from kitchen_ledger.db.database import get_db
from kitchen_ledger.schemas.menu import AvailabilityOut, CostOut, DishCreate, DishOut, DishUpdate
from kitchen_ledger.services import recipes

router = APIRouter(prefix="/dishes", tags=["Dishes"])


@router.post("", response_model=DishOut, status_code=status.HTTP_201_CREATED)
def create_dish(payload: DishCreate, db: Session = Depends(get_db)):
    return unwrap(recipes.create_dish(db, payload))


@router.get("", response_model=list[DishOut])
def list_dishes(is_active: bool | None = None, db: Session = Depends(get_db)):
    return recipes.list_dishes(db, is_active)


@router.get("/{dish_id}", response_model=DishOut)
def get_dish(dish_id: int, db: Session = Depends(get_db)):
    return unwrap(recipes.get_dish(db, dish_id))


@router.patch("/{dish_id}", response_model=DishOut)
def update_dish(dish_id: int, payload: DishUpdate, db: Session = Depends(get_db)):
    return unwrap(recipes.update_dish(db, dish_id, payload))


@router.post("/{dish_id}/deactivate", response_model=DishOut)
def deactivate_dish(dish_id: int, db: Session = Depends(get_db)):
    return unwrap(recipes.deactivate_dish(db, dish_id))


@router.get("/{dish_id}/cost", response_model=CostOut)
def dish_cost(dish_id: int, db: Session = Depends(get_db)):
    return cost_out(unwrap(recipes.dish_cost(db, dish_id)))


@router.get("/{dish_id}/availability", response_model=AvailabilityOut)
def availability(dish_id: int, multiplier: int = Query(default=1, ge=1), db: Session = Depends(get_db)):
    result = unwrap(recipes.can_fulfill(db, dish_id, multiplier))
    return AvailabilityOut(
        dish_id=result.dish_id,
        multiplier=result.multiplier,
        can_fulfill=result.can_fulfill,
        max_units=result.max_units,
        missing_ingredients=result.missing_ingredients,
    )
