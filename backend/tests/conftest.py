"""
测试公共夹具

每个测试使用 tmp_path 下独立的 SQLite 文件数据库，
多线程测试可以为每个线程打开独立的会话。
"""
import os
import sys
from datetime import datetime
from typing import Generator

import pytest
import pytz
from sqlalchemy.orm import Session, sessionmaker

# 将 backend 目录添加到 sys.path 中，便于按项目方式导入
backend_path = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)

# 在导入项目模块前设置测试环境
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"

from app.crud import survey as crud_survey
from app.db.database import build_engine
from app.db.init_db import init_db
from app.models.survey import SurveyStatus
from app.schemas.survey import QuestionCreate, SurveyCreate

# 测试中统一使用的"当前时间"
FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=pytz.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture(scope="function")
def engine(tmp_path):
    """创建文件数据库并建表"""
    db_engine = build_engine(f"sqlite:///{tmp_path / 'survey_test.db'}", timeout=30)
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def make_survey(db):
    """创建问卷及其问题，默认已发布、不限时间、允许多次提交"""
    def _make(questions=(), **fields):
        fields.setdefault("title", "Encuesta de prueba")
        fields.setdefault("status", SurveyStatus.PUBLISHED)
        survey_in = SurveyCreate(
            questions=[QuestionCreate(**q) for q in questions],
            **fields,
        )
        return crud_survey.create_with_questions(db, obj_in=survey_in)
    return _make
