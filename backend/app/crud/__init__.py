from .crud_survey import survey
from .crud_question import question
from .crud_survey_response import survey_response
from .crud_analytics import analytics
