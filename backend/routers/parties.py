from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from schemas.parties import Party, PartyCreate, PartyUpdate, NextOrderNumber
from crud import parties as crud_parties
from utils.auth_utils import get_current_user, get_user_identifier

router = APIRouter(prefix="/parties", tags=["Parties"])
logger = logging.getLogger("parties")


@router.post("/", response_model=Party, status_code=status.HTTP_201_CREATED)
def create_party(party: PartyCreate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_party = crud_parties.create_party(db, party, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Party '{db_party.name}' (prefix {db_party.prefix}) created by user {get_user_identifier(user)}")
    return db_party


@router.get("/", response_model=List[Party])
def read_parties(
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user)
):
    return crud_parties.get_parties(db, search=search, skip=skip, limit=limit)


@router.get("/{party_id}", response_model=Party)
def read_party(party_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    db_party = crud_parties.get_party(db, party_id)
    if db_party is None:
        raise HTTPException(status_code=404, detail="Party not found")
    return db_party


@router.get("/{party_id}/next-order-number", response_model=NextOrderNumber)
def read_next_order_number(party_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    """Preview the number the party's next order will get. Nothing is reserved."""
    db_party = crud_parties.get_party(db, party_id)
    if db_party is None:
        raise HTTPException(status_code=404, detail="Party not found")
    return {"party_id": party_id, "order_number": crud_parties.preview_next_order_number(db, db_party)}


@router.patch("/{party_id}", response_model=Party)
def update_party(party_id: str, party: PartyUpdate, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        db_party = crud_parties.update_party(db, party_id, party, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if db_party is None:
        raise HTTPException(status_code=404, detail="Party not found")
    logger.info(f"Party '{db_party.name}' (ID: {party_id}) updated by user {get_user_identifier(user)}")
    return db_party


@router.delete("/{party_id}")
def delete_party(party_id: str, db: Session = Depends(get_db), user: dict = Depends(get_current_user)):
    try:
        deleted = crud_parties.delete_party(db, party_id, user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Party not found")
    logger.info(f"Party {party_id} deleted by user {get_user_identifier(user)}")
    return {"message": "Party deleted successfully"}
