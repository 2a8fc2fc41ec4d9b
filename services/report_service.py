from typing import Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from constants.messages import Messages
from core.logger import logger
from models.report import Contribution, QuestionReport
from schemas.submissions import (
    ContributionResult,
    FactContribution,
    QuestionContribution,
    ReportInput,
    ReportResult,
)


class ReportService:
    """Question reports and user contributions (facts and questions)."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit_report(self, report: ReportInput) -> ReportResult:
        try:
            record = QuestionReport(
                question_id=report.question_id,
                question_text=report.question_text,
                reason=report.reason,
                comment=report.comment,
                user_id=report.user_id,
                status="new",
            )
            self.db.add(record)
            await self.db.commit()
            await self.db.refresh(record)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error submitting report", user_id=report.user_id, error=str(e))
            return ReportResult(success=False, message=Messages.get("REPORT_FAILED").format(error=str(e)))

        logger.info("Question reported", report_id=record.id, question_id=report.question_id, user_id=report.user_id)
        return ReportResult(success=True, message=Messages.get("REPORT_SUBMITTED"), report_id=str(record.id))

    async def submit_contribution(self, contribution: Union[FactContribution, QuestionContribution]) -> ContributionResult:
        payload = contribution.model_dump(by_alias=True, exclude={"type", "user_id"})
        try:
            self.db.add(Contribution(
                user_id=contribution.user_id,
                type=contribution.type,
                payload=payload,
                status="pending",
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Error submitting contribution", user_id=contribution.user_id, error=str(e))
            return ContributionResult(success=False, message=Messages.get("CONTRIBUTION_FAILED").format(error=str(e)))

        logger.info("Contribution submitted", user_id=contribution.user_id, type=contribution.type)
        key = "FACT_SUBMITTED" if contribution.type == "fact" else "QUESTION_SUBMITTED"
        return ContributionResult(success=True, message=Messages.get(key))
