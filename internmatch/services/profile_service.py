"""
Student and company profiles.

A profile ties an identity subject (the JWT `sub`) to a marketplace
role. Students must complete theirs before applying.
"""

import logging
from typing import List

from internmatch.core.errors import NotFound
from internmatch.services.documents import (
    CompanyProfileDocuments,
    StudentProfileDocuments,
    serialize_doc,
)

logger = logging.getLogger(__name__)

MIN_BIO_LENGTH = 50

# (field, check) pairs, in the order they are reported to the student
STUDENT_CHECKLIST = [
    ("full_name", lambda v: bool(v and str(v).strip())),
    ("bio", lambda v: bool(v) and len(str(v).strip()) >= MIN_BIO_LENGTH),
    ("university", lambda v: bool(v and str(v).strip())),
    ("degree", lambda v: bool(v and str(v).strip())),
    ("graduation_year", lambda v: v is not None),
    ("location", lambda v: bool(v and str(v).strip())),
    ("skills", lambda v: bool(v)),
    ("phone", lambda v: bool(v and str(v).strip())),
]


def missing_student_fields(profile: dict) -> List[str]:
    """Checklist items the student profile does not satisfy yet."""
    return [name for name, ok in STUDENT_CHECKLIST if not ok(profile.get(name))]


class ProfileService:

    def __init__(self):
        self.students = StudentProfileDocuments()
        self.companies = CompanyProfileDocuments()

    # ==================== STUDENTS ====================

    def create_student(self, user: dict, fields: dict) -> dict:
        doc = self.students.insert(user["user_id"], {**fields, "email": user.get("email")})
        logger.info("Student profile created for %s", user["user_id"])
        return serialize_doc(doc)

    def get_student(self, user_id: str) -> dict:
        doc = self.students.get_by_user(user_id)
        if not doc:
            raise NotFound("Student profile not found")
        return serialize_doc(doc)

    def update_student(self, user_id: str, fields: dict) -> dict:
        doc = self.students.get_by_user(user_id)
        if not doc:
            raise NotFound("Student profile not found")
        if not fields:
            return serialize_doc(doc)
        return serialize_doc(self.students.update(doc["_id"], fields))

    def student_completeness(self, user_id: str) -> dict:
        doc = self.students.get_by_user(user_id)
        if not doc:
            raise NotFound("Student profile not found")
        missing = missing_student_fields(doc)
        return {"is_complete": not missing, "missing_fields": missing}

    # ==================== COMPANIES ====================

    def create_company(self, user: dict, fields: dict) -> dict:
        doc = self.companies.insert(
            user["user_id"],
            {**fields, "email": user.get("email"), "is_verified": False}
        )
        logger.info("Company profile created for %s", user["user_id"])
        return serialize_doc(doc)

    def get_company(self, user_id: str) -> dict:
        doc = self.companies.get_by_user(user_id)
        if not doc:
            raise NotFound("Company profile not found")
        return serialize_doc(doc)

    def update_company(self, user_id: str, fields: dict) -> dict:
        doc = self.companies.get_by_user(user_id)
        if not doc:
            raise NotFound("Company profile not found")
        if not fields:
            return serialize_doc(doc)
        return serialize_doc(self.companies.update(doc["_id"], fields))

    def set_company_verified(self, company_id: str, verified: bool = True) -> dict:
        doc = self.companies.update(company_id, {"is_verified": verified})
        if not doc:
            raise NotFound("Company profile not found")
        logger.info("Company %s verified=%s", company_id, verified)
        return serialize_doc(doc)
