import datetime
import logging
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase, SortDirection
from app.models.survey import Survey
from app.models.survey_analytics import SurveyAnalytics
from app.schemas.analytics import AnalyticsTotals, DailyAnalyticsCounter

logger = logging.getLogger(__name__)

_COUNTER_FIELDS = ("views", "starts", "completions")


def completion_rate(starts: int, completions: int) -> float:
    """完成率 = completions / starts * 100，保留两位小数；任一为0时为0"""
    if not starts or not completions:
        return 0.0
    return round(completions / starts * 100, 2)


class CRUDAnalytics(CRUDBase[SurveyAnalytics, DailyAnalyticsCounter, DailyAnalyticsCounter]):
    def increment(
        self,
        db: Session,
        *,
        survey_id: str,
        day: datetime.date,
        views: int = 0,
        starts: int = 0,
        completions: int = 0,
    ) -> None:
        """
        原子地累加 (survey_id, day) 的计数器，当天不存在则创建。

        自增在数据库内完成（SET starts = starts + n），不做应用层读-改-写，
        并发提交不会丢失更新。只 flush，不提交，由调用方的事务决定是否生效。

        Args:
            db: 数据库会话
            survey_id: 问卷ID
            day: 自然日
            views / starts / completions: 各计数器的增量
        """
        increments = {"views": views, "starts": starts, "completions": completions}
        dialect = db.get_bind().dialect.name
        if dialect in ("sqlite", "postgresql"):
            self._upsert_on_conflict(db, dialect, survey_id, day, increments)
        else:
            self._update_then_insert(db, survey_id, day, increments)
        logger.debug(f"Analytics counter for survey {survey_id} on {day} incremented by {increments}")

    def _upsert_on_conflict(
        self, db: Session, dialect: str, survey_id: str, day: datetime.date, increments: Dict[str, int]
    ) -> None:
        table = self.model.__table__
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = insert(table).values(survey_id=survey_id, date=day, **increments)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.survey_id, table.c.date],
            set_={field: table.c[field] + stmt.excluded[field] for field in _COUNTER_FIELDS},
        )
        db.execute(stmt)

    def _update_then_insert(
        self, db: Session, survey_id: str, day: datetime.date, increments: Dict[str, int]
    ) -> None:
        table = self.model.__table__
        stmt = (
            update(table)
            .where(table.c.survey_id == survey_id, table.c.date == day)
            .values({field: table.c[field] + increments[field] for field in _COUNTER_FIELDS})
        )
        if db.execute(stmt).rowcount:
            return
        try:
            # 并发情况下可能有别的事务先插入了当天的行，用保存点隔离插入失败
            with db.begin_nested():
                db.execute(table.insert().values(survey_id=survey_id, date=day, **increments))
        except IntegrityError:
            db.execute(stmt)

    def record_view(self, db: Session, *, survey_id: str, day: datetime.date) -> None:
        """记录一次问卷浏览"""
        self.increment(db, survey_id=survey_id, day=day, views=1)

    def get_by_survey(
        self,
        db: Session,
        *,
        survey_id: str,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
    ) -> List[SurveyAnalytics]:
        """
        获取问卷在日期范围内（闭区间）的每日计数，按日期升序排列。
        """
        return self.get_multi(
            db,
            limit=None,
            filter_conditions={
                "survey_id": survey_id,
                "date": {"gte": date_from, "lte": date_to},
            },
            sort_by=[("date", SortDirection.ASC)],
        )

    def summarize(
        self,
        db: Session,
        *,
        survey_id: str,
        date_from: Optional[datetime.date] = None,
        date_to: Optional[datetime.date] = None,
    ) -> AnalyticsTotals:
        """
        汇总问卷在日期范围内的浏览、开始和完成次数。
        """
        rows = self.get_by_survey(db, survey_id=survey_id, date_from=date_from, date_to=date_to)
        starts = sum(row.starts for row in rows)
        completions = sum(row.completions for row in rows)
        return AnalyticsTotals(
            survey_id=survey_id,
            total_views=sum(row.views for row in rows),
            total_starts=starts,
            total_completions=completions,
            completion_rate=completion_rate(starts, completions),
        )

    def summarize_all(self, db: Session) -> List[AnalyticsTotals]:
        """
        按问卷分组汇总所有计数，附带问卷标题。
        """
        rows = (
            db.query(
                self.model.survey_id,
                Survey.title,
                func.coalesce(func.sum(self.model.views), 0),
                func.coalesce(func.sum(self.model.starts), 0),
                func.coalesce(func.sum(self.model.completions), 0),
            )
            .outerjoin(Survey, Survey.id == self.model.survey_id)
            .group_by(self.model.survey_id, Survey.title)
            .order_by(self.model.survey_id)
            .all()
        )
        return [
            AnalyticsTotals(
                survey_id=survey_id,
                survey_title=title or "Encuesta desconocida",
                total_views=views,
                total_starts=starts,
                total_completions=completions,
                completion_rate=completion_rate(starts, completions),
            )
            for survey_id, title, views, starts, completions in rows
        ]


# 实例化并暴露给服务层使用
analytics = CRUDAnalytics(SurveyAnalytics)
