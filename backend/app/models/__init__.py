# This file makes the 'models' directory a Python package.

from .survey import Survey, SurveyStatus
from .question import Question
from .survey_response import SurveyResponse, Answer
from .survey_analytics import SurveyAnalytics
