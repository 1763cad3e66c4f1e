from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.db import get_db
from app.models import Assessment
from app.services.analytics_service import load_assessment
from survey_insights.errors import ANONYMITY_PROTECTED, INSUFFICIENT_DATA, NOT_FOUND, PERSISTENCE_FAILURE

ERROR_STATUS = {
    NOT_FOUND: 404,
    INSUFFICIENT_DATA: 422,
    ANONYMITY_PROTECTED: 403,
    PERSISTENCE_FAILURE: 500,
}


def error_response(error: str, message: str = "", **extra) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(error, 400),
        content={"success": False, "error": error, "message": message, **extra},
    )


def get_assessment(assessment_id: int, db: Session = Depends(get_db)) -> Assessment | None:
    return load_assessment(db, assessment_id)


__all__ = ["error_response", "get_assessment", "get_db"]
