"""Report routes: /api/reports."""

from datetime import date

from fastapi import APIRouter, Query, Request

from api.base import success_response


def create_reports_router(services: dict) -> APIRouter:
    router = APIRouter(tags=["reports"])

    report_svc = services["report"]

    @router.get("/reports/income")
    async def income_report(
        request: Request,
        start_date: date | None = Query(None),
        end_date: date | None = Query(None),
    ):
        """Monthly income from Completed invoices; defaults to the current month."""
        report = report_svc.get_income_report(start_date, end_date)
        request_id = getattr(request.state, "request_id", None)
        return success_response(report.model_dump(mode="json"), request_id).model_dump(mode="json")

    return router
