"""
Quotation endpoints.
Customer requests, staff review, customer decision and conversion to order.
"""

from fastapi import APIRouter, Query, status

from optiquote.api.deps import CurrentUser, OptionalUser, StaffUser, Workflow
from optiquote.models.quotation import QuotationStatus
from optiquote.schemas.base import MessageResponse
from optiquote.schemas.order import OrderResponse
from optiquote.schemas.quotation import (
    ApproveRequest,
    ConversionResponse,
    CustomerRejectRequest,
    ExpireOverdueResponse,
    QuotationCreate,
    QuotationListResponse,
    QuotationResponse,
    QuotationUpdate,
    RejectRequest,
    StaffReplyRequest,
)


router = APIRouter()


def _page(quotations, total: int, page: int, per_page: int) -> QuotationListResponse:
    return QuotationListResponse(
        items=[QuotationResponse.model_validate(q) for q in quotations],
        total=total,
        page=page,
        per_page=per_page,
        pages=QuotationListResponse.page_count(total, per_page),
    )


@router.post(
    "",
    response_model=QuotationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a quotation",
    description="Create a pending quotation. Guests may request one without a token.",
)
async def create_quotation(
    data: QuotationCreate,
    current_user: OptionalUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.create(
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        items=data.items,
        user_id=current_user.id if current_user else None,
        customer_phone=data.customer_phone,
        notes=data.notes,
        prescription_file=data.prescription_file,
    )
    return QuotationResponse.model_validate(quotation)


@router.get(
    "",
    response_model=QuotationListResponse,
    summary="List my quotations",
    description="Paginated list of the current user's quotations, newest first",
)
async def list_my_quotations(
    current_user: CurrentUser,
    workflow: Workflow,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
) -> QuotationListResponse:
    quotations, total = await workflow.list_for_user(
        current_user.id,
        skip=(page - 1) * per_page,
        limit=per_page,
    )
    return _page(quotations, total, page, per_page)


@router.get(
    "/all",
    response_model=QuotationListResponse,
    summary="List all quotations",
    description="Staff view of every quotation with status and text filters",
)
async def list_all_quotations(
    staff_user: StaffUser,
    workflow: Workflow,
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
    status: QuotationStatus | None = Query(None, description="Filter by stored status"),
    search: str | None = Query(None, description="Search number, customer name or email"),
) -> QuotationListResponse:
    quotations, total = await workflow.list_all(
        status=status,
        search=search,
        skip=(page - 1) * per_page,
        limit=per_page,
    )
    return _page(quotations, total, page, per_page)


@router.post(
    "/expire-overdue",
    response_model=ExpireOverdueResponse,
    summary="Expire overdue quotations",
    description="Mark open quotations past their validity window as expired",
)
async def expire_overdue_quotations(
    staff_user: StaffUser,
    workflow: Workflow,
) -> ExpireOverdueResponse:
    expired = await workflow.expire_overdue()
    return ExpireOverdueResponse(
        expired=len(expired),
        quotation_numbers=[q.quotation_number for q in expired],
    )


@router.get(
    "/{quotation_id}",
    response_model=QuotationResponse,
    summary="Quotation details",
    description="Visible to the owning customer and to staff",
)
async def get_quotation(
    quotation_id: int,
    current_user: CurrentUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.get(quotation_id, current_user.id, current_user.role)
    return QuotationResponse.model_validate(quotation)


@router.put(
    "/{quotation_id}",
    response_model=QuotationResponse,
    summary="Edit a quotation",
    description="Replace items, notes or staff notes while the quotation is pending",
)
async def update_quotation(
    quotation_id: int,
    data: QuotationUpdate,
    staff_user: StaffUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.update(
        quotation_id,
        items=data.items,
        notes=data.notes,
        staff_notes=data.staff_notes,
    )
    return QuotationResponse.model_validate(quotation)


@router.put(
    "/{quotation_id}/approve",
    response_model=QuotationResponse,
    summary="Approve a quotation",
)
async def approve_quotation(
    quotation_id: int,
    staff_user: StaffUser,
    workflow: Workflow,
    data: ApproveRequest | None = None,
) -> QuotationResponse:
    staff_notes = data.staff_notes if data else None
    quotation = await workflow.approve(quotation_id, staff_user.id, staff_notes)
    return QuotationResponse.model_validate(quotation)


@router.put(
    "/{quotation_id}/reject",
    response_model=QuotationResponse,
    summary="Reject a quotation",
)
async def reject_quotation(
    quotation_id: int,
    data: RejectRequest,
    staff_user: StaffUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.reject(quotation_id, staff_user.id, data.reason, data.staff_notes)
    return QuotationResponse.model_validate(quotation)


@router.put(
    "/{quotation_id}/customer-approve",
    response_model=QuotationResponse,
    summary="Accept an approved quotation",
    description="The owning customer accepts the staff-approved terms",
)
async def customer_approve_quotation(
    quotation_id: int,
    current_user: CurrentUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.customer_approve(quotation_id, current_user.id)
    return QuotationResponse.model_validate(quotation)


@router.put(
    "/{quotation_id}/customer-reject",
    response_model=QuotationResponse,
    summary="Decline an approved quotation",
)
async def customer_reject_quotation(
    quotation_id: int,
    data: CustomerRejectRequest,
    current_user: CurrentUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.customer_reject(quotation_id, current_user.id, data.reason)
    return QuotationResponse.model_validate(quotation)


@router.post(
    "/{quotation_id}/staff-reply",
    response_model=QuotationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a quotation",
)
async def add_staff_reply(
    quotation_id: int,
    data: StaffReplyRequest,
    staff_user: StaffUser,
    workflow: Workflow,
) -> QuotationResponse:
    quotation = await workflow.add_staff_reply(quotation_id, staff_user.id, data.message)
    return QuotationResponse.model_validate(quotation)


@router.post(
    "/{quotation_id}/convert",
    response_model=ConversionResponse,
    summary="Convert to order",
    description="Create a confirmed order from a customer-approved quotation and consume stock",
)
async def convert_quotation(
    quotation_id: int,
    staff_user: StaffUser,
    workflow: Workflow,
) -> ConversionResponse:
    quotation, order = await workflow.convert_to_order(quotation_id, staff_user.id)
    return ConversionResponse(
        quotation=QuotationResponse.model_validate(quotation),
        order=OrderResponse.model_validate(order),
    )


@router.delete(
    "/{quotation_id}",
    response_model=MessageResponse,
    summary="Delete a quotation",
    description="Only pending quotations can be deleted",
)
async def delete_quotation(
    quotation_id: int,
    current_user: CurrentUser,
    workflow: Workflow,
) -> MessageResponse:
    await workflow.delete(quotation_id, current_user.id, current_user.role)
    return MessageResponse(message="Quotation deleted")
