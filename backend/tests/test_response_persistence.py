"""
答卷持久化测试

验证答卷、答案和当日计数器在同一事务中写入：失败时整体回滚，
并发提交时计数不丢失，匿名问卷不保存身份信息，重复提交被拒绝。
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    DuplicateSubmission,
    PersistenceFailure,
    SurveyNotFound,
    SurveyNotPublished,
    SurveyOutsideWindow,
)
from app.core.config import settings
from app.crud.crud_analytics import analytics as crud_analytics
from app.crud.crud_survey_response import survey_response as crud_survey_response
from app.models.survey import SurveyStatus
from app.models.survey_analytics import SurveyAnalytics
from app.models.survey_response import Answer, SurveyResponse
from app.schemas.survey_response import NormalizedAnswer, RespondentInfo
from app.services.response_persistence import (
    ResponsePersistenceCoordinator,
    analytics_day,
    counter_increments,
    translate_storage_error,
)

from conftest import FIXED_NOW, fixed_clock

QUESTION = {"id": "q_name", "title": "Nombre", "type": "TEXT", "required": True}
ANSWERS = [NormalizedAnswer(question_id="q_name", value="Ana")]


@pytest.fixture
def coordinator():
    return ResponsePersistenceCoordinator(clock=fixed_clock)


def counters(session, survey_id):
    return crud_analytics.get_by_survey(session, survey_id=survey_id)


def test_counter_increments():
    assert counter_increments(False) == {"starts": 1, "completions": 0}
    assert counter_increments(True) == {"starts": 0, "completions": 1}


def test_persist_complete_response(db, make_survey, coordinator):
    survey = make_survey(questions=[QUESTION])
    response = coordinator.persist(
        db,
        survey_id=survey.id,
        answers=ANSWERS,
        is_complete=True,
        respondent=RespondentInfo(email="ana@example.com", user_id="u-1", ip_address="10.0.0.1"),
    )

    assert response.id
    assert response.is_complete is True
    assert response.email == "ana@example.com"
    assert response.user_id == "u-1"
    assert response.ip_address == "10.0.0.1"
    assert response.completed_at is not None
    assert [(a.question_id, a.value) for a in response.answers] == [("q_name", "Ana")]
    # 允许多次提交时不设置唯一键
    assert response.respondent_key is None

    rows = counters(db, survey.id)
    assert len(rows) == 1
    assert rows[0].date == FIXED_NOW.date()
    assert (rows[0].views, rows[0].starts, rows[0].completions) == (0, 0, 1)


def test_anonymous_survey_discards_identity(db, make_survey, coordinator):
    """场景5：匿名问卷不保存 email 和身份ID"""
    survey = make_survey(questions=[QUESTION], is_anonymous=True)
    response = coordinator.persist(
        db,
        survey_id=survey.id,
        answers=ANSWERS,
        is_complete=True,
        respondent=RespondentInfo(
            email="x@y.com", user_id="u-7", full_name="Ana Pérez", company="Naviera", ships=3,
            ip_address="10.0.0.2", user_agent="pytest",
        ),
    )
    db.refresh(response)
    assert response.email is None
    assert response.user_id is None
    assert response.full_name is None
    assert response.company is None
    assert response.ships is None
    assert response.respondent_key is None
    assert response.ip_address == "10.0.0.2"
    assert response.user_agent == "pytest"


def test_duplicate_submission_rejected_by_precheck(db, make_survey, coordinator):
    """场景6：不允许多次提交时，同一身份的第二次提交被拒绝且不写入任何数据"""
    survey = make_survey(questions=[QUESTION], allow_multiple_responses=False)
    respondent = RespondentInfo(user_id="u-1")
    coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=False, respondent=respondent)

    with pytest.raises(DuplicateSubmission) as exc_info:
        coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=False, respondent=respondent)
    assert exc_info.value.status_code == 409

    assert db.query(SurveyResponse).count() == 1
    assert db.query(Answer).count() == 1
    assert counters(db, survey.id)[0].starts == 1


def test_duplicate_submission_rejected_by_storage_constraint(db, make_survey, coordinator):
    """预检被并发绕过时，由唯一约束兜底并转换为 DuplicateSubmission"""
    survey = make_survey(questions=[QUESTION], allow_multiple_responses=False)
    respondent = RespondentInfo(user_id="u-1")
    coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=True, respondent=respondent)

    with patch.object(crud_survey_response, "find_for_respondent", return_value=None):
        with pytest.raises(DuplicateSubmission):
            coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=True, respondent=respondent)

    assert db.query(SurveyResponse).count() == 1
    assert counters(db, survey.id)[0].completions == 1


def test_different_respondents_may_each_submit_once(db, make_survey, coordinator):
    survey = make_survey(questions=[QUESTION], allow_multiple_responses=False)
    for user_id in ("u-1", "u-2"):
        coordinator.persist(
            db, survey_id=survey.id, answers=ANSWERS, is_complete=True,
            respondent=RespondentInfo(user_id=user_id),
        )
    # 没有身份ID的提交不受限制
    for _ in range(2):
        coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=True, respondent=RespondentInfo())
    assert db.query(SurveyResponse).count() == 4


def test_failure_after_response_insert_rolls_back_everything(db, session_factory, make_survey, coordinator):
    """原子性：计数器写入前失败，答卷和答案都不可见"""
    survey = make_survey(questions=[QUESTION])
    survey_id = survey.id

    def fail_after_insert(session, **kwargs):
        # 此时答卷和答案已经 flush 到当前事务中
        assert session.query(SurveyResponse).count() == 1
        assert session.query(Answer).count() == 1
        raise RuntimeError("simulated failure")

    with patch.object(crud_analytics, "increment", side_effect=fail_after_insert):
        with pytest.raises(RuntimeError):
            coordinator.persist(
                db, survey_id=survey_id, answers=ANSWERS, is_complete=True,
                respondent=RespondentInfo(email="ana@example.com"),
            )

    check = session_factory()
    try:
        assert check.query(SurveyResponse).count() == 0
        assert check.query(Answer).count() == 0
        assert check.query(SurveyAnalytics).count() == 0
    finally:
        check.close()


def test_concurrent_drafts_count_every_start(session_factory, make_survey):
    """N 个并发草稿提交后 starts == N，completions == 0"""
    survey = make_survey(questions=[QUESTION])
    survey_id = survey.id
    total = 12
    coordinator = ResponsePersistenceCoordinator(clock=fixed_clock)

    def submit(index):
        session = session_factory()
        try:
            response = coordinator.persist(
                session,
                survey_id=survey_id,
                answers=[NormalizedAnswer(question_id="q_name", value=f"Persona {index}")],
                is_complete=False,
                respondent=RespondentInfo(),
            )
            return response.id
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=6) as pool:
        response_ids = list(pool.map(submit, range(total)))

    assert len(set(response_ids)) == total
    check = session_factory()
    try:
        rows = counters(check, survey_id)
        assert len(rows) == 1
        assert rows[0].starts == total
        assert rows[0].completions == 0
        assert check.query(SurveyResponse).count() == total
    finally:
        check.close()


def test_missing_survey(db, coordinator):
    with pytest.raises(SurveyNotFound):
        coordinator.persist(db, survey_id="no-existe", answers=[], is_complete=True, respondent=RespondentInfo())


@pytest.mark.parametrize("status", [SurveyStatus.DRAFT, SurveyStatus.CLOSED, SurveyStatus.ARCHIVED])
def test_unpublished_survey_rejected(db, make_survey, coordinator, status):
    survey = make_survey(questions=[QUESTION], status=status)
    with pytest.raises(SurveyNotPublished) as exc_info:
        coordinator.persist(db, survey_id=survey.id, answers=ANSWERS, is_complete=True, respondent=RespondentInfo())
    assert exc_info.value.status_code == 403
    assert db.query(SurveyResponse).count() == 0


def test_publication_window(db, make_survey, coordinator):
    not_started = make_survey(questions=[], start_date=FIXED_NOW + timedelta(days=1))
    finished = make_survey(questions=[], end_date=FIXED_NOW - timedelta(seconds=1))
    open_now = make_survey(
        questions=[], start_date=FIXED_NOW - timedelta(days=1), end_date=FIXED_NOW + timedelta(days=1)
    )

    with pytest.raises(SurveyOutsideWindow) as exc_info:
        coordinator.persist(db, survey_id=not_started.id, answers=[], is_complete=True, respondent=RespondentInfo())
    assert exc_info.value.message == "La encuesta aún no ha comenzado."

    with pytest.raises(SurveyOutsideWindow) as exc_info:
        coordinator.persist(db, survey_id=finished.id, answers=[], is_complete=True, respondent=RespondentInfo())
    assert exc_info.value.message == "La encuesta ha finalizado."

    response = coordinator.persist(db, survey_id=open_now.id, answers=[], is_complete=True, respondent=RespondentInfo())
    assert response.answers == []


def test_operational_error_is_transient_failure():
    error = OperationalError("INSERT ...", {}, Exception("database is locked"))
    failure = translate_storage_error(error, "s-1")
    assert isinstance(failure, PersistenceFailure)
    assert failure.transient is True
    assert failure.status_code == 503


def test_analytics_day_uses_configured_timezone(monkeypatch):
    late_utc = FIXED_NOW.replace(hour=2)
    assert analytics_day(late_utc) == late_utc.date()
    monkeypatch.setattr(settings, "ANALYTICS_TIMEZONE", "America/Panama")
    assert analytics_day(late_utc) == (late_utc - timedelta(days=1)).date()
