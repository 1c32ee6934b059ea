"""Diet plan endpoints: plans, templates, publishing and PDF export."""

import logging
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy import func
from sqlalchemy.orm import Session

from dietconnect.api.common import get_client_for_staff
from dietconnect.core.auth import get_current_staff
from dietconnect.core.database import get_db, utcnow
from dietconnect.core.errors import AppError, bad_request, not_found
from dietconnect.core.pagination import PageParams, page_params, paginate
from dietconnect.models.models import DietPlan, Meal, PlanStatus, RecipientType, User
from dietconnect.schemas.schemas import (
    AssignTemplateRequest,
    DietPlanCreate,
    DietPlanDetail,
    DietPlanResponse,
    DietPlanUpdate,
    EmailPlanResponse,
    MessageResponse,
    Page,
)
from dietconnect.services.email_service import email_service
from dietconnect.services.notification_service import notification_service
from dietconnect.services.pdf_service import render_diet_plan_pdf
from dietconnect.services.plan_service import build_meal, copy_meal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diet-plans", tags=["diet-plans"])


def get_plan_for_staff(db: Session, user: User, plan_id: str) -> DietPlan:
    plan = db.query(DietPlan).filter(
        DietPlan.id == plan_id,
        DietPlan.org_id == user.org_id,
        DietPlan.is_active.is_(True),
    ).first()
    if not plan:
        raise not_found("Diet plan", "PLAN_NOT_FOUND")
    return plan


def _plan_to_response(plan: DietPlan, meal_count: int) -> DietPlanResponse:
    response = DietPlanResponse.model_validate(plan)
    response.meal_count = meal_count
    return response


def _plan_to_detail(plan: DietPlan) -> DietPlanDetail:
    detail = DietPlanDetail.model_validate(plan)
    detail.meal_count = len(plan.meals)
    detail.client_name = plan.client.full_name if plan.client else None
    return detail


@router.post("", response_model=DietPlanDetail, status_code=201)
def create_diet_plan(
    data: DietPlanCreate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Create a plan (or a reusable template) with nested meals and food items."""
    if not data.is_template and not data.client_id:
        raise bad_request("client_id is required for non-template plans", "CLIENT_ID_REQUIRED")
    if data.client_id:
        get_client_for_staff(db, user, data.client_id)
    if data.start_date and data.end_date and data.end_date < data.start_date:
        raise bad_request("end_date must not be before start_date", "INVALID_DATE_RANGE")

    plan = DietPlan(
        **data.model_dump(exclude={"meals"}),
        org_id=user.org_id,
        created_by=user.id,
        status=PlanStatus.DRAFT,
    )
    db.add(plan)
    for meal_data in data.meals:
        build_meal(db, user.org_id, plan, meal_data)
    db.commit()
    db.refresh(plan)

    logger.info("Diet plan %s created with %s meals", plan.id, len(plan.meals))
    return _plan_to_detail(plan)


@router.get("", response_model=Page[DietPlanResponse])
def list_diet_plans(
    client_id: Optional[str] = None,
    status: Optional[PlanStatus] = None,
    is_template: Optional[bool] = None,
    params: PageParams = Depends(page_params),
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    query = db.query(DietPlan).filter(
        DietPlan.org_id == user.org_id,
        DietPlan.is_active.is_(True),
    )
    if client_id:
        query = query.filter(DietPlan.client_id == client_id)
    if status:
        query = query.filter(DietPlan.status == status)
    if is_template is not None:
        query = query.filter(DietPlan.is_template.is_(is_template))

    plans, meta = paginate(query.order_by(DietPlan.created_at.desc()), params)
    counts = dict(
        db.query(Meal.plan_id, func.count(Meal.id))
        .filter(Meal.plan_id.in_([p.id for p in plans]))
        .group_by(Meal.plan_id)
        .all()
    ) if plans else {}
    return {"items": [_plan_to_response(p, counts.get(p.id, 0)) for p in plans], "meta": meta}


@router.get("/{plan_id}", response_model=DietPlanDetail)
def get_diet_plan(plan_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    return _plan_to_detail(get_plan_for_staff(db, user, plan_id))


@router.patch("/{plan_id}", response_model=DietPlanDetail)
def update_diet_plan(
    plan_id: str,
    update: DietPlanUpdate,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    plan = get_plan_for_staff(db, user, plan_id)
    update_data = update.model_dump(exclude_unset=True)
    if update_data.get("status") == PlanStatus.ACTIVE and plan.status != PlanStatus.ACTIVE:
        raise bad_request("Use the publish endpoint to activate a plan", "USE_PUBLISH")

    for field, value in update_data.items():
        setattr(plan, field, value)
    db.commit()
    db.refresh(plan)
    return _plan_to_detail(plan)


@router.delete("/{plan_id}", response_model=MessageResponse)
def delete_diet_plan(plan_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    plan = get_plan_for_staff(db, user, plan_id)
    plan.is_active = False
    db.commit()
    return MessageResponse(message="Diet plan deleted")


@router.post("/{plan_id}/publish", response_model=DietPlanDetail)
async def publish_diet_plan(
    plan_id: str,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Make a plan the client's active plan. A client has at most one active plan."""
    plan = get_plan_for_staff(db, user, plan_id)
    if plan.is_template or not plan.client_id:
        raise bad_request("Templates cannot be published", "TEMPLATE_NOT_PUBLISHABLE")

    db.query(DietPlan).filter(
        DietPlan.client_id == plan.client_id,
        DietPlan.status == PlanStatus.ACTIVE,
        DietPlan.id != plan.id,
    ).update({DietPlan.status: PlanStatus.COMPLETED}, synchronize_session=False)

    plan.status = PlanStatus.ACTIVE
    plan.published_at = utcnow()
    db.commit()
    db.refresh(plan)

    await notification_service.notify(
        db,
        org_id=plan.org_id,
        recipient_id=plan.client_id,
        recipient_type=RecipientType.CLIENT,
        category="diet_plan",
        title="Your new diet plan is ready",
        message=f"{plan.name} has been published by {user.full_name}.",
        related_entity_type="diet_plan",
        related_entity_id=plan.id,
    )
    logger.info("Diet plan %s published for client %s", plan.id, plan.client_id)
    return _plan_to_detail(plan)


@router.post("/{plan_id}/assign", response_model=DietPlanDetail, status_code=201)
def assign_template(
    plan_id: str,
    data: AssignTemplateRequest,
    user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    """Copy a template into a draft plan for a client."""
    template = get_plan_for_staff(db, user, plan_id)
    if not template.is_template:
        raise bad_request("Only templates can be assigned", "NOT_A_TEMPLATE")
    client = get_client_for_staff(db, user, data.client_id)

    plan = DietPlan(
        org_id=user.org_id,
        client_id=client.id,
        created_by=user.id,
        name=data.name or f"{template.name} - {client.full_name}",
        description=template.description,
        start_date=data.start_date,
        end_date=data.end_date,
        target_calories=template.target_calories,
        target_protein_g=template.target_protein_g,
        target_carbs_g=template.target_carbs_g,
        target_fats_g=template.target_fats_g,
        notes_for_client=template.notes_for_client,
        internal_notes=template.internal_notes,
        status=PlanStatus.DRAFT,
        is_template=False,
    )
    for meal in template.meals:
        plan.meals.append(copy_meal(meal))
    db.add(plan)
    db.commit()
    db.refresh(plan)
    return _plan_to_detail(plan)


@router.get("/{plan_id}/pdf")
def download_diet_plan_pdf(plan_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    plan = get_plan_for_staff(db, user, plan_id)
    pdf = render_diet_plan_pdf(plan, user.organization.name)
    filename = f"diet-plan-{plan.id}.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{plan_id}/email", response_model=EmailPlanResponse)
def email_diet_plan(plan_id: str, user: User = Depends(get_current_staff), db: Session = Depends(get_db)):
    """Email the plan PDF to its client."""
    plan = get_plan_for_staff(db, user, plan_id)
    if not plan.client or not plan.client.email:
        raise bad_request("Client has no email address", "CLIENT_EMAIL_MISSING")

    org_name = user.organization.name
    pdf = render_diet_plan_pdf(plan, org_name)
    html = (
        f"<p>Hi {escape(plan.client.full_name)},</p>"
        f"<p>{escape(user.full_name)} from {escape(org_name)} has shared your diet plan "
        f"<b>{escape(plan.name)}</b>. The full plan is attached as a PDF.</p>"
    )
    if plan.notes_for_client:
        html += f"<p>{escape(plan.notes_for_client)}</p>"

    sent = email_service.send(
        plan.client.email,
        f"Your diet plan: {plan.name}",
        html,
        attachment=(f"{plan.name}.pdf", pdf, "application/pdf"),
    )
    if not sent:
        raise AppError("Failed to send email", 502, "EMAIL_FAILED")
    return EmailPlanResponse(sent=True, recipient=plan.client.email)
