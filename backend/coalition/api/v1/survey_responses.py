"""
Survey response endpoints.

Each organization may answer a survey once. Organizations can read and edit
their own responses; admins can see and remove all of them.
"""
import json
import logging
from typing import Any, Optional, Union
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from coalition.db.base import get_db
from coalition.core.deps import get_current_user, require_admin, CurrentUser
from coalition.core.permissions import ensure_admin_or_self
from coalition.models.base import utcnow
from coalition.models.survey import Survey
from coalition.models.survey_response import SurveyResponse
from coalition.models.organization import Organization
from coalition.schemas.survey import SubmissionCreate, SubmissionUpdate, SubmissionResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_answers(value: Union[dict[str, Any], str]) -> dict[str, Any]:
    """Accept answers as an object or a JSON-encoded object."""
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid responses format")
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid responses format")
    return parsed


def missing_required(questions: Optional[list], answers: dict[str, Any]) -> list[str]:
    """Ids of required questions with no usable answer."""
    missing = []
    for question in questions or []:
        if not question.get("required"):
            continue
        qid = str(question.get("id"))
        answer = answers.get(qid)
        if answer is None or answer == "" or answer == []:
            missing.append(qid)
    return missing


def submission_to_response(item: SurveyResponse) -> SubmissionResponse:
    return SubmissionResponse(
        id=item.id,
        survey_id=item.survey_id,
        organization_id=item.organization_id,
        survey_title=item.survey.title if item.survey else None,
        organization_name=item.organization.name if item.organization else None,
        responses=item.responses,
        submitted_date=item.submitted_date,
        created=item.created,
        updated=item.updated,
    )


async def get_submission_or_404(db: AsyncSession, response_id: str) -> SurveyResponse:
    result = await db.execute(select(SurveyResponse).where(SurveyResponse.id == response_id))
    item = result.scalar_one_or_none()
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey response not found")
    return item


@router.get("", response_model=list[SubmissionResponse])
async def list_survey_responses(
    survey_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    query = select(SurveyResponse)
    if survey_id:
        query = query.where(SurveyResponse.survey_id == survey_id)
    if organization_id:
        query = query.where(SurveyResponse.organization_id == organization_id)
    result = await db.execute(query.order_by(SurveyResponse.submitted_date.desc()))
    return [submission_to_response(r) for r in result.scalars().all()]


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_survey_response(
    data: SubmissionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Submit an organization's answers to an active, published survey."""
    if current_user.is_admin:
        if not data.organization_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="organization_id is required"
            )
        organization_id = data.organization_id
        org = (await db.execute(
            select(Organization).where(Organization.id == organization_id)
        )).scalar_one_or_none()
        if org is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    else:
        if data.organization_id and data.organization_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only submit responses for your own organization"
            )
        organization_id = current_user.id
        org = current_user.record

    survey = (await db.execute(select(Survey).where(Survey.id == data.survey_id))).scalar_one_or_none()
    if survey is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey not found")
    if not survey.is_active or not survey.is_published:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey is not available for responses"
        )

    existing = await db.execute(
        select(SurveyResponse.id).where(
            SurveyResponse.survey_id == survey.id,
            SurveyResponse.organization_id == organization_id
        )
    )
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization has already submitted a response to this survey"
        )

    answers = parse_answers(data.responses)
    missing = missing_required(survey.questions, answers)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing answers for required questions: {', '.join(missing)}"
        )

    item = SurveyResponse(
        survey=survey,
        organization=org,
        responses=answers,
        submitted_date=utcnow(),
    )
    db.add(item)
    await db.flush()

    logger.info(f"Survey response {item.id} submitted for survey {survey.id} by {organization_id}")
    return submission_to_response(item)


@router.get("/survey/{survey_id}", response_model=list[SubmissionResponse])
async def responses_for_survey(
    survey_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    result = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.survey_id == survey_id)
        .order_by(SurveyResponse.submitted_date.desc())
    )
    return [submission_to_response(r) for r in result.scalars().all()]


@router.get("/organization/{organization_id}", response_model=list[SubmissionResponse])
async def responses_for_organization(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    ensure_admin_or_self(current_user, organization_id)
    result = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.organization_id == organization_id)
        .order_by(SurveyResponse.submitted_date.desc())
    )
    return [submission_to_response(r) for r in result.scalars().all()]


@router.get("/{response_id}", response_model=SubmissionResponse)
async def get_survey_response(
    response_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    item = await get_submission_or_404(db, response_id)
    ensure_admin_or_self(current_user, item.organization_id)
    return submission_to_response(item)


@router.put("/{response_id}", response_model=SubmissionResponse)
async def update_survey_response(
    response_id: str,
    data: SubmissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    item = await get_submission_or_404(db, response_id)
    ensure_admin_or_self(current_user, item.organization_id)

    answers = parse_answers(data.responses)
    missing = missing_required(item.survey.questions if item.survey else None, answers)
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing answers for required questions: {', '.join(missing)}"
        )

    item.responses = answers
    item.submitted_date = utcnow()
    await db.flush()
    return submission_to_response(item)


@router.delete("/{response_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_survey_response(
    response_id: str,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_admin)
):
    item = await get_submission_or_404(db, response_id)
    await db.delete(item)
    await db.flush()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
