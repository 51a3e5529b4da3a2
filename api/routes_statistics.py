"""
api/routes_statistics.py — Statistics API Endpoints

Endpoints:
    GET /statistics/quarter?quarter=Q2&year=2024   → One quarter
    GET /statistics/year/{year}                    → Q1..Q4 of a year
    GET /statistics/annual?year=2024               → Annual report (all time without year)
    GET /statistics/compare?years=2023&years=2024  → Annual reports side by side
    GET /statistics/assistance-distribution        → Requests per assistance type
    GET /statistics/assistance-records/{year}      → Distribution records per quarter and status
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import ok
from db.session import get_db
from modules import statistics

router = APIRouter()


@router.get("/quarter")
async def quarter_summary(quarter: str, year: int, db: AsyncSession = Depends(get_db)):
    return ok(await statistics.quarter_summary(db, quarter, year))


@router.get("/year/{year}")
async def year_summary(year: int, db: AsyncSession = Depends(get_db)):
    return ok(await statistics.year_summary(db, year))


@router.get("/annual")
async def annual_report(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return ok(await statistics.annual_report(db, year))


@router.get("/compare")
async def comparative_summary(years: List[int] = Query(...), db: AsyncSession = Depends(get_db)):
    return ok(await statistics.comparative_summary(db, years))


@router.get("/assistance-distribution")
async def assistance_distribution(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    return ok(await statistics.assistance_distribution(db, year))


@router.get("/assistance-records/{year}")
async def assistance_records(year: int, db: AsyncSession = Depends(get_db)):
    return ok(await statistics.assistance_records(db, year))
