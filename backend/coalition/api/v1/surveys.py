"""
Survey endpoints.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, or_

from coalition.db.base import get_db
from coalition.core.deps import get_current_user_optional, require_admin, CurrentUser
from coalition.core.permissions import is_admin
from coalition.models.base import utcnow
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.models.notification import NotificationType
from coalition.schemas.survey import SurveyCreate, SurveyUpdate, SurveyResponseSchema
from coalition.services.notifications import notify_published

router = APIRouter()


def survey_to_response(survey: Survey) -> SurveyResponseSchema:
    return SurveyResponseSchema.model_validate(survey)


async def get_survey_or_404(db: AsyncSession, survey_id: str) -> Survey:
    result = await db.execute(select(Survey).where(Survey.id == survey_id))
    survey = result.scalar_one_or_none()
    if survey is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey not found")
    return survey


@router.get("", response_model=list[SurveyResponseSchema])
async def list_surveys(
    title: Optional[str] = None,
    is_active: Optional[bool] = None,
    is_published: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    """Admins may filter freely; everyone else sees published surveys."""
    query = select(Survey)
    if is_admin(current_user):
        if title:
            query = query.where(Survey.title.ilike(f"%{title}%"))
        if is_active is not None:
            query = query.where(Survey.is_active == is_active)
        if is_published is not None:
            query = query.where(Survey.is_published == is_published)
    else:
        query = query.where(Survey.is_published == True)  # noqa: E712

    result = await db.execute(query.order_by(Survey.title.asc()))
    return [survey_to_response(s) for s in result.scalars().all()]


@router.get("/active/list", response_model=list[SurveyResponseSchema])
async def list_active_surveys(db: AsyncSession = Depends(get_db)):
    """Open surveys, soonest deadline first; surveys without a deadline last."""
    result = await db.execute(
        select(Survey).where(
            Survey.is_active == True,  # noqa: E712
            Survey.is_published == True,  # noqa: E712
            or_(Survey.due_date.is_(None), Survey.due_date >= utcnow())
        ).order_by(Survey.due_date.is_(None), Survey.due_date.asc())
    )
    return [survey_to_response(s) for s in result.scalars().all()]


@router.get("/{survey_id}", response_model=SurveyResponseSchema)
async def get_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional)
):
    survey = await get_survey_or_404(db, survey_id)
    if not survey.is_published and not is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey not found")
    return survey_to_response(survey)


@router.post("", response_model=SurveyResponseSchema, status_code=status.HTTP_201_CREATED)
async def create_survey(
    data: SurveyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin)
):
    survey = Survey(
        title=data.title,
        description=data.description,
        questions=[q.model_dump() for q in data.questions],
        is_active=data.is_active,
        is_published=data.is_published,
        due_date=data.due_date,
        created_by_admin_id=current_user.id,
    )
    db.add(survey)
    await db.flush()

    if survey.is_published:
        await notify_published(db, NotificationType.SURVEY, survey)
    return survey_to_response(survey)


@router.put("/{survey_id}", response_model=SurveyResponseSchema)
async def update_survey(
    survey_id: str,
    data: SurveyUpdate,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    survey = await get_survey_or_404(db, survey_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("questions") is None:
        update_data.pop("questions", None)

    for field, value in update_data.items():
        setattr(survey, field, value)
    await db.flush()
    return survey_to_response(survey)


@router.patch("/{survey_id}/publish", response_model=SurveyResponseSchema)
async def publish_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    """Publish and open a survey, then notify member organizations."""
    survey = await get_survey_or_404(db, survey_id)
    survey.is_published = True
    survey.is_active = True
    await db.flush()

    await notify_published(db, NotificationType.SURVEY, survey)
    return survey_to_response(survey)


@router.patch("/{survey_id}/close", response_model=SurveyResponseSchema)
async def close_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    survey = await get_survey_or_404(db, survey_id)
    survey.is_active = False
    await db.flush()
    return survey_to_response(survey)


@router.delete("/{survey_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    survey = await get_survey_or_404(db, survey_id)
    await db.execute(delete(SurveyResponse).where(SurveyResponse.survey_id == survey_id))
    await db.delete(survey)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
