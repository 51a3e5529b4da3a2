"""
db/models.py — Database Table Definitions
==========================================
Each class = one table.
Reference tables (roles, users, genders, communities, disability categories
and types, assistance types) are plain lookups. The beneficiary ("PWD record")
owns its guardians, education and support-need rows through pwd_id.
Supporting documents point at either a PWD record or an assistance request
through the (related_type, related_id) pair, see core/documents.py.
"""

from datetime import datetime, date
from typing import Optional
from sqlalchemy import (
    String, DateTime, Date, Boolean, Text, Integer, Numeric, ForeignKey, JSON, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from core.fields import QUARTERS
from core.workflow import ASSISTANCE_STATUS, BENEFICIARY_STATUS, REQUEST_STATUS
from db.session import Base


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


def as_dict(row) -> dict:
    """Column values of a row, dates as ISO strings."""
    data = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        data[column.key] = value
    return data


# ── 1. Reference data ─────────────────────────────────────────────────────────
class Role(Base):
    __tablename__ = "roles"

    role_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(ForeignKey("roles.role_id"), nullable=False)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class Gender(Base):
    __tablename__ = "genders"

    gender_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    gender_name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class Community(Base):
    __tablename__ = "communities"

    community_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    community_name: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)


class DisabilityCategory(Base):
    __tablename__ = "disability_categories"

    category_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class DisabilityType(Base):
    __tablename__ = "disability_types"

    type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("disability_categories.category_id"), nullable=False)
    type_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class AssistanceType(Base):
    __tablename__ = "assistance_types"

    assistance_type_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assistance_type_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# ── 2. Beneficiary (aggregate root) ───────────────────────────────────────────
class PwdRecord(Base):
    __tablename__ = "pwd_records"
    __table_args__ = (
        CheckConstraint(_in("quarter", QUARTERS), name="ck_pwd_records_quarter"),
        CheckConstraint(_in("status", BENEFICIARY_STATUS.states), name="ck_pwd_records_status"),
    )

    pwd_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)   # registering officer
    quarter: Mapped[str] = mapped_column(String(2), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    gender_id: Mapped[int] = mapped_column(ForeignKey("genders.gender_id"), nullable=False)
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    occupation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    contact: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    disability_category_id: Mapped[int] = mapped_column(
        ForeignKey("disability_categories.category_id"), nullable=False)
    disability_type_id: Mapped[int] = mapped_column(ForeignKey("disability_types.type_id"), nullable=False)
    gh_card_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)   # Ghana card
    nhis_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    community_id: Mapped[int] = mapped_column(ForeignKey("communities.community_id"), nullable=False)
    assistance_type_needed_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("assistance_types.assistance_type_id"), nullable=True)
    supporting_documents: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)   # free-form list
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=BENEFICIARY_STATUS.default)
    profile_image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ── 3. Child collections ──────────────────────────────────────────────────────
class PwdGuardian(Base):
    __tablename__ = "pwd_guardians"

    guardian_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pwd_id: Mapped[int] = mapped_column(ForeignKey("pwd_records.pwd_id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    occupation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    relationship: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class PwdEducation(Base):
    __tablename__ = "pwd_education"

    education_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pwd_id: Mapped[int] = mapped_column(ForeignKey("pwd_records.pwd_id"), nullable=False, index=True)
    education_level: Mapped[str] = mapped_column(String(100), nullable=False)
    school_name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)


class PwdSupportNeed(Base):
    __tablename__ = "pwd_support_needs"

    need_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pwd_id: Mapped[int] = mapped_column(ForeignKey("pwd_records.pwd_id"), nullable=False, index=True)
    assistance_needed: Mapped[str] = mapped_column(Text, nullable=False)


# ── 4. Supporting documents (polymorphic owner) ───────────────────────────────
class SupportingDocument(Base):
    __tablename__ = "supporting_documents"
    __table_args__ = (
        CheckConstraint(_in("related_type", ("pwd", "assistance")), name="ck_documents_related_type"),
    )

    document_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    related_type: Mapped[str] = mapped_column(String(20), nullable=False)
    related_id: Mapped[int] = mapped_column(Integer, nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)          # stored path, opaque
    original_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    document_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    uploaded_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.user_id"), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ── 5. Assistance requests ────────────────────────────────────────────────────
class AssistanceRequest(Base):
    __tablename__ = "assistance_requests"
    __table_args__ = (
        CheckConstraint(_in("status", REQUEST_STATUS.states), name="ck_assistance_requests_status"),
    )

    request_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assistance_type_id: Mapped[int] = mapped_column(
        ForeignKey("assistance_types.assistance_type_id"), nullable=False)
    beneficiary_id: Mapped[int] = mapped_column(ForeignKey("pwd_records.pwd_id"), nullable=False, index=True)
    requested_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.user_id"), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount_value_cost: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    admin_review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ── 6. Legacy assistance distribution records ────────────────────────────────
class Assistance(Base):
    __tablename__ = "assistance"
    __table_args__ = (
        CheckConstraint(_in("status", ASSISTANCE_STATUS.states), name="ck_assistance_status"),
    )

    assistance_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    assistance_type_id: Mapped[int] = mapped_column(
        ForeignKey("assistance_types.assistance_type_id"), nullable=False)
    date_of_support: Mapped[date] = mapped_column(Date, nullable=False)
    beneficiary_id: Mapped[int] = mapped_column(ForeignKey("pwd_records.pwd_id"), nullable=False, index=True)
    pre_assessment: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    assessment_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


# ── 7. Activity Log ───────────────────────────────────────────────────────────
class ActivityLog(Base):
    __tablename__ = "activity_logs"

    log_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id"), nullable=False)
    activity: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
