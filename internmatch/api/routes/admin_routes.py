"""
Admin Routes

POST /admin/reconcile-counters - Recompute internship applications_count
PATCH /admin/companies/{company_id}/verify - Mark a company verified
"""

from typing import Optional

from fastapi import APIRouter, Depends

from internmatch.api.deps import get_counters, get_profile_service
from internmatch.core.auth import require_admin
from internmatch.schemas.schemas import CompanyProfileResponse, ReconcileRequest, ReconcileResponse
from internmatch.services.counters import InternshipCounters
from internmatch.services.documents import to_object_id
from internmatch.services.profile_service import ProfileService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/reconcile-counters", response_model=ReconcileResponse)
async def reconcile_counters(
    data: Optional[ReconcileRequest] = None,
    admin: dict = Depends(require_admin),
    counters: InternshipCounters = Depends(get_counters)
):
    """
    Recount applications for the given internships, every internship
    (all_internships=true), or, by default, the ones queued after a
    failed counter write.
    """
    data = data or ReconcileRequest()
    ids = None
    if data.internship_ids is not None:
        ids = [to_object_id(i, "Internship") for i in data.internship_ids]
    return {"reconciled": counters.reconcile(ids, data.all_internships)}


@router.patch("/companies/{company_id}/verify", response_model=CompanyProfileResponse)
async def verify_company(
    company_id: str,
    verified: bool = True,
    admin: dict = Depends(require_admin),
    service: ProfileService = Depends(get_profile_service)
):
    return service.set_company_verified(company_id, verified)
