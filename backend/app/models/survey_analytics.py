from sqlalchemy import Column, Date, ForeignKey, Integer, String, UniqueConstraint

from app.db.base_class import Base

DAILY_COUNTER_UNIQUE_CONSTRAINT = "uq_survey_analytics_survey_date"


class SurveyAnalytics(Base):
    """每日统计计数器

    每个问卷每天只有一行，由当天第一次事件创建，之后只做原子自增。

    Attributes:
        survey_id: 关联到 surveys.id
        date: 自然日（按 ANALYTICS_TIMEZONE 划分）
        views: 浏览次数
        starts: 以草稿形式提交的次数
        completions: 完成提交的次数
    """
    __tablename__ = "survey_analytics"
    __table_args__ = (
        UniqueConstraint("survey_id", "date", name=DAILY_COUNTER_UNIQUE_CONSTRAINT),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(String, ForeignKey("surveys.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    views = Column(Integer, nullable=False, default=0)
    starts = Column(Integer, nullable=False, default=0)
    completions = Column(Integer, nullable=False, default=0)
