# alumni_hub/models/user.py
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from .base import Base

ROLE_ALUMNI = "alumni"
ROLE_SCHOOL_ADMIN = "school_admin"
ROLE_SUPER_ADMIN = "super_admin"

ADMIN_ROLES = (ROLE_SCHOOL_ADMIN, ROLE_SUPER_ADMIN)


class School(Base):
    __tablename__ = "schools"

    school_id = Column(Integer, primary_key=True, autoincrement=True)
    school_name = Column(String(200), nullable=False, index=True)
    city = Column(String(100))
    country = Column(String(100))


class User(Base):
    """Alumni and super admin accounts. School admins live in school_admins."""
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_ALUMNI)  # alumni / super_admin
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    profile_picture = Column(String(500))
    bio = Column(Text)
    current_city = Column(String(100))
    current_country = Column(String(100))

    work_experience = relationship("WorkExperience", back_populates="user", cascade="all, delete-orphan")
    education = relationship("AlumniEducation", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_users_role_active', 'role', 'is_active'),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class SchoolAdmin(Base):
    __tablename__ = "school_admins"

    admin_id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    school = relationship("School")


class AlumniEducation(Base):
    __tablename__ = "alumni_education"

    education_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.school_id"), nullable=False, index=True)
    start_year = Column(Integer)
    end_year = Column(Integer)
    is_verified = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="education")
    school = relationship("School")


class WorkExperience(Base):
    __tablename__ = "work_experience"

    work_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    company_name = Column(String(200), nullable=False)
    position = Column(String(200))
    is_current = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="work_experience")
