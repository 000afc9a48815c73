"""Admin endpoints: content moderation and manual expiry sweeps.

Access control is enforced upstream (admin gateway); these routes carry no
tenant scope.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from catalogx.deps import get_db
from catalogx.schemas import ContentViolation, ExpireResult
from catalogx.services.content_guidelines import get_content_violations
from catalogx.services.promotion_lifecycle import expire_promoted_listings


router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/content-violations", response_model=List[ContentViolation])
def content_violations(db: Session = Depends(get_db)):
    return get_content_violations(db)


@router.post("/promotions/expire", response_model=ExpireResult)
def expire_promotions(db: Session = Depends(get_db)):
    """Run the expiry sweep on demand; safe to call any number of times."""
    return ExpireResult(expired=expire_promoted_listings(db))
