import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config.dependency_injection import get_db, get_response_service
from app.core.exceptions import SurveyResponseError
from app.crud.crud_question import question as crud_question
from app.crud.crud_survey_response import survey_response as crud_survey_response
from app.schemas.response import StandardResponse
from app.schemas.survey_response import (
    RespondentInfo,
    SubmitResponseRequest,
    SubmitResponseResult,
    SurveyResponseInDB,
    SurveyResponseListing,
    UpdateResponseRequest,
)
from app.services.response_service import ResponseService

logger = logging.getLogger(__name__)

router = APIRouter()


def client_ip(request: Request) -> str:
    """取请求来源IP：X-Forwarded-For 的第一个地址，其次 X-Real-IP，再次连接地址"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "Unknown"


def raise_http(exc: SurveyResponseError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc


@router.post(
    "/surveys/{survey_id}/responses",
    response_model=StandardResponse[SubmitResponseResult],
    status_code=201,
)
def submit_survey_response(
    survey_id: str,
    request: Request,
    *,
    db: Session = Depends(get_db),
    submission_in: SubmitResponseRequest,
    service: ResponseService = Depends(get_response_service),
) -> Any:
    """
    接收一份答卷，校验通过后与当日统计计数一起原子写入。
    """
    respondent = RespondentInfo(
        email=submission_in.email,
        user_id=submission_in.user_id,
        full_name=submission_in.full_name,
        company=submission_in.company,
        position=submission_in.position,
        ships=submission_in.ships,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent") or "Unknown",
    )
    try:
        result = service.submit_response(
            db,
            survey_id=survey_id,
            respondent=respondent,
            answers=submission_in.answers,
            is_complete=submission_in.is_complete,
        )
    except SurveyResponseError as e:
        raise_http(e)
    return StandardResponse(code=201, data=result)


@router.get("/surveys/{survey_id}/responses", response_model=StandardResponse[SurveyResponseListing])
def list_survey_responses(
    survey_id: str,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    db: Session = Depends(get_db),
) -> Any:
    """
    获取问卷在时间范围内的全部答卷（含答案），附带规范化后的问题定义。
    """
    try:
        questions = crud_question.get_questions_for_survey(db, survey_id=survey_id)
    except SurveyResponseError as e:
        raise_http(e)
    responses = crud_survey_response.get_by_survey(
        db, survey_id=survey_id, date_from=date_from, date_to=date_to
    )
    return StandardResponse(
        data=SurveyResponseListing(
            questions=questions,
            responses=[SurveyResponseInDB.model_validate(r) for r in responses],
        )
    )


@router.patch("/survey-responses/{response_id}", response_model=StandardResponse[SubmitResponseResult])
def update_survey_response(
    response_id: str,
    *,
    db: Session = Depends(get_db),
    update_in: UpdateResponseRequest,
    service: ResponseService = Depends(get_response_service),
) -> Any:
    """
    补充草稿答案或将答卷标记为完成。
    """
    try:
        result = service.update_response(
            db,
            response_id=response_id,
            answers=update_in.answers,
            is_complete=update_in.is_complete,
        )
    except SurveyResponseError as e:
        raise_http(e)
    return StandardResponse(data=result)
