# backend/roamplan/api/routes_partners.py

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Response

from roamplan.core.security import get_admin_user
from roamplan.models.partner_models import PartnerIn, PartnerOut, PartnerOffersOut
from roamplan.services.partner_service import PartnerService
from roamplan.api.deps import get_partner_service

router = APIRouter(prefix="/partners", tags=["partners"])


@router.get("", response_model=List[PartnerOut])
def list_partners(service: PartnerService = Depends(get_partner_service)):
    return service.store.list_partners(active_only=True)


@router.post("", response_model=PartnerOut, status_code=201)
def create_partner(
    data: PartnerIn,
    admin: Dict[str, Any] = Depends(get_admin_user),
    service: PartnerService = Depends(get_partner_service),
):
    return service.create_partner(data)


@router.delete("/{partner_id}", status_code=204)
def delete_partner(
    partner_id: int,
    admin: Dict[str, Any] = Depends(get_admin_user),
    service: PartnerService = Depends(get_partner_service),
):
    service.delete_partner(partner_id)
    return Response(status_code=204)


@router.get("/{partner_id}/offers", response_model=PartnerOffersOut)
def get_offers(partner_id: int, service: PartnerService = Depends(get_partner_service)):
    """Live partner offers; falls back to the last cached copy with stale=true."""
    return service.fetch_offers(partner_id)
