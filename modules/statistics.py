"""
modules/statistics.py — Statistics Aggregator
==============================================
Read-only summaries over the registry. Nothing here writes; every figure is
computed from the live tables at the time of the call.

    quarter_summary          one quarter of one year
    year_summary             all four quarters of a year, Q1..Q4 always present
    annual_report            registrations, assisted beneficiaries, pending requests
    comparative_summary      annual_report for several years side by side
    assistance_distribution  requests per assistance type
    assistance_records       distribution records per quarter and status, by date of support
"""

import logging
from typing import Iterable, Optional

from sqlalchemy import distinct, extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.fields import QUARTERS, validate_quarter, validate_year
from core.workflow import ASSISTANCE_STATUS, BENEFICIARY_STATUS
from db.models import Assistance, AssistanceRequest, AssistanceType, Gender, PwdRecord

logger = logging.getLogger("pwdregistry.statistics")

# Request states that count a beneficiary as having received assistance
ACCEPTED_REQUEST_STATES = ("assessed",)


async def quarter_summary(db: AsyncSession, quarter: str, year: int) -> dict:
    validate_quarter(quarter)
    validate_year(year)
    in_period = (PwdRecord.quarter == quarter, PwdRecord.year == year)

    by_status = dict((await db.execute(
        select(PwdRecord.status, func.count(PwdRecord.pwd_id)).where(*in_period).group_by(PwdRecord.status)
    )).all())
    by_gender = dict((await db.execute(
        select(Gender.gender_name, func.count(PwdRecord.pwd_id))
        .select_from(PwdRecord)
        .join(Gender, Gender.gender_id == PwdRecord.gender_id)
        .where(*in_period)
        .group_by(Gender.gender_name)
    )).all())
    communities, categories = (await db.execute(
        select(
            func.count(distinct(PwdRecord.community_id)),
            func.count(distinct(PwdRecord.disability_category_id)),
        ).where(*in_period)
    )).one()

    summary = {
        "quarter": quarter,
        "year": year,
        "total": sum(by_status.values()),
        "by_gender": by_gender,
        "communities": communities,
        "disability_categories": categories,
    }
    for state in BENEFICIARY_STATUS.states:
        summary[state] = by_status.get(state, 0)
    return summary


async def year_summary(db: AsyncSession, year: int) -> dict:
    validate_year(year)
    quarters = [await quarter_summary(db, quarter, year) for quarter in QUARTERS]
    return {
        "year": year,
        "total": sum(q["total"] for q in quarters),
        "quarters": quarters,
    }


async def annual_report(db: AsyncSession, year: Optional[int] = None) -> dict:
    """
    Three figures for one year, or for all time when `year` is None:
        registrations            PWD records registered with that record year
        assisted_beneficiaries   distinct beneficiaries with an accepted request created that year
        pending_requests         requests created that year still pending
    """
    registrations = select(func.count(PwdRecord.pwd_id))
    assisted = select(func.count(distinct(AssistanceRequest.beneficiary_id))).where(
        AssistanceRequest.status.in_(ACCEPTED_REQUEST_STATES)
    )
    pending = select(func.count(AssistanceRequest.request_id)).where(AssistanceRequest.status == "pending")

    if year is not None:
        validate_year(year)
        created_in_year = extract("year", AssistanceRequest.created_at) == year
        registrations = registrations.where(PwdRecord.year == year)
        assisted = assisted.where(created_in_year)
        pending = pending.where(created_in_year)

    return {
        "year": year,
        "registrations": (await db.execute(registrations)).scalar_one(),
        "assisted_beneficiaries": (await db.execute(assisted)).scalar_one(),
        "pending_requests": (await db.execute(pending)).scalar_one(),
    }


async def comparative_summary(db: AsyncSession, years: Iterable[int]) -> list:
    return [await annual_report(db, year) for year in sorted(set(years))]


async def assistance_distribution(db: AsyncSession, year: Optional[int] = None) -> list:
    joined_on = AssistanceRequest.assistance_type_id == AssistanceType.assistance_type_id
    if year is not None:
        validate_year(year)
        # Year filter lives in the join so unused types still show with 0
        joined_on = joined_on & (extract("year", AssistanceRequest.created_at) == year)

    rows = (await db.execute(
        select(
            AssistanceType.assistance_type_id,
            AssistanceType.assistance_type_name,
            func.count(AssistanceRequest.request_id),
        )
        .outerjoin(AssistanceRequest, joined_on)
        .group_by(AssistanceType.assistance_type_id, AssistanceType.assistance_type_name)
        .order_by(AssistanceType.assistance_type_name)
    )).all()
    return [
        {"assistance_type_id": type_id, "assistance_type_name": name, "requests": count}
        for type_id, name, count in rows
    ]


async def assistance_records(db: AsyncSession, year: int) -> dict:
    """
    Distribution records for one year, bucketed into quarters by the month of
    `date_of_support`. Every quarter is present, with a count per status.
    """
    validate_year(year)
    month = extract("month", Assistance.date_of_support)
    rows = (await db.execute(
        select(month, Assistance.status, func.count(Assistance.assistance_id))
        .where(extract("year", Assistance.date_of_support) == year)
        .group_by(month, Assistance.status)
    )).all()

    quarters = {q: dict.fromkeys(ASSISTANCE_STATUS.states, 0) for q in QUARTERS}
    for month_number, status, count in rows:
        quarters[QUARTERS[(int(month_number) - 1) // 3]][status] += count

    summaries = [{"quarter": q, "total": sum(c.values()), **c} for q, c in quarters.items()]
    return {
        "year": year,
        "total": sum(q["total"] for q in summaries),
        "quarters": summaries,
    }
