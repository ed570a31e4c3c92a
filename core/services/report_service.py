"""Income report service."""

import logging
from datetime import date

from core.config import AppConfig
from core.models import IncomeReport
from core.reports import build_income_report, normalize_report_range
from core.repository import InvoiceRepository
from utils.timezone import today_in

logger = logging.getLogger(__name__)


class IncomeReportService:
    """Monthly income and invoiced totals for a date range."""

    def __init__(self, repository: InvoiceRepository, config: AppConfig | None = None):
        self.repository = repository
        self.config = config or AppConfig()

    def get_income_report(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        today: date | None = None,
    ) -> IncomeReport:
        """
        Income report for whole months covering [start_date, end_date].

        Omitted bounds default to the current month.

        Raises:
            InvoiceValidationError: end month before start month
        """
        today = today or today_in(self.config.timezone)
        report_range = normalize_report_range(start_date or today, end_date or today)

        invoices = self.repository.list_between(
            report_range.start_date, report_range.end_date
        )
        report = build_income_report(invoices, report_range)

        logger.info(
            "Income report %s..%s: %d months, total %s",
            report.start_date, report.end_date,
            len(report.monthly_data), report.total_income_in_range,
        )
        return report
