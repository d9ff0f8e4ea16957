from typing import Optional, Dict, Any
from datetime import date, datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from hms.domain.appointments.models import AppointmentStatus
from hms.domain.billing.models import Billing, BillingStatus
from hms.domain.lab.models import LabReportStatus
from hms.domain.reports.repository import DateWindow, ReportsRepository
from hms.core.exceptions import ValidationError
from hms.api.v1.admin.schemas import ReportType
from hms.api.v1.appointments.schemas import AppointmentResponse
from hms.api.v1.billing.schemas import BillingResponse
from hms.api.v1.lab_reports.schemas import LabReportResponse
from hms.api.v1.patients.schemas import PatientResponse

ALL_TIME = "All time"

REPORT_TITLES = {
    ReportType.SUMMARY: "Hospital Summary Report",
    ReportType.PATIENTS: "Patients Report",
    ReportType.REVENUE: "Revenue Report",
    ReportType.APPOINTMENTS: "Appointments Report",
    ReportType.LAB_REPORTS: "Lab Reports Summary",
}


def _label(value) -> str:
    return value.value if hasattr(value, "value") else value


def parse_report_type(report_type: str) -> ReportType:
    try:
        return ReportType(report_type)
    except ValueError:
        allowed = ", ".join(t.value for t in ReportType)
        raise ValidationError(
            message=f"Invalid report type. Use: {allowed}",
            errors=[{"field": "report_type", "message": f"Must be one of: {allowed}"}]
        )


class ReportService:
    """Admin dashboard counters and canned report data"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.reports_repo = ReportsRepository(db)

    async def get_dashboard_stats(self) -> Dict[str, int]:
        repo = self.reports_repo
        return {
            "total_patients": await repo.count_patients(),
            "total_doctors": await repo.count_doctors(),
            "total_appointments": await repo.count_appointments(),
            "today_appointments": await repo.count_appointments(appointment_date=date.today()),
            "pending_lab_reports": await repo.count_lab_reports(status=LabReportStatus.PENDING),
            "completed_appointments": await repo.count_appointments(status=AppointmentStatus.COMPLETED),
        }

    async def get_hospital_summary(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """Hospital-wide counts; the date range filters on creation time"""
        repo = self.reports_repo
        window = DateWindow(start_date, end_date)

        return {
            "date_range": self._date_range(start_date, end_date),
            "patients": {
                "total": await repo.count_patients(),
                "new_patients": await repo.count_patients(window),
                "by_gender": [
                    {"gender": _label(gender), "count": count}
                    for gender, count in await repo.patients_by_gender()
                ],
            },
            "doctors": {
                "total": await repo.count_doctors(),
                "by_specialization": [
                    {"specialization": specialization, "count": count}
                    for specialization, count in await repo.doctors_by_specialization()
                ],
            },
            "appointments": {
                "total": await repo.count_appointments(window),
                "completed": await repo.count_appointments(window, status=AppointmentStatus.COMPLETED),
                "by_status": [
                    {"status": _label(status), "count": count}
                    for status, count in await repo.appointments_by_status(window)
                ],
            },
            "lab_reports": {
                "total": await repo.count_lab_reports(window),
                "completed": await repo.count_lab_reports(window, status=LabReportStatus.COMPLETED),
                "by_status": [
                    {"status": _label(status), "count": count}
                    for status, count in await repo.lab_reports_by_status(window)
                ],
            },
            "revenue": {
                "total": await repo.sum_billing(Billing.total_amount, window),
                "paid": await repo.sum_billing(Billing.paid_amount, window, status=BillingStatus.PAID),
                "pending": await repo.sum_billing(Billing.total_amount, window, status=BillingStatus.PENDING),
                "by_status": [
                    {
                        "status": _label(status),
                        "count": count,
                        "total_amount": float(total_amount),
                        "paid_amount": float(paid_amount),
                    }
                    for status, count, total_amount, paid_amount in await repo.billing_by_status(window)
                ],
            },
            "treatments": {
                "total": await repo.count_treatments(window),
            },
            "users": {
                "active": await repo.count_active_users(),
                "by_role": [
                    {"role": _label(role), "count": count}
                    for role, count in await repo.users_by_role()
                ],
            },
        }

    async def get_report_data(
        self,
        report_type: str,
        generated_by: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Assemble the data behind one printable report.

        Rendering is left to the client; this returns the title, the rows
        or statistics for the chosen type, and who generated it when.
        """
        kind = parse_report_type(report_type)
        window = DateWindow(start_date, end_date)
        repo = self.reports_repo

        report: Dict[str, Any] = {"title": REPORT_TITLES[kind], "type": kind}

        if kind == ReportType.SUMMARY:
            total_revenue = await repo.sum_billing(Billing.total_amount, window)
            paid_revenue = await repo.sum_billing(Billing.paid_amount, window, status=BillingStatus.PAID)
            report["summary"] = {
                "total_patients": await repo.count_patients(),
                "total_doctors": await repo.count_doctors(),
                "total_appointments": await repo.count_appointments(window),
                "total_lab_reports": await repo.count_lab_reports(window),
                "total_revenue": total_revenue,
                "paid_revenue": paid_revenue,
                "pending_revenue": round(total_revenue - paid_revenue, 2),
            }

        elif kind == ReportType.PATIENTS:
            report["data"] = [
                PatientResponse.model_validate(p).model_dump(mode="json")
                for p in await repo.list_patients(window)
            ]

        elif kind == ReportType.REVENUE:
            total_revenue = await repo.sum_billing(Billing.total_amount, window)
            total_paid = await repo.sum_billing(Billing.paid_amount, window)
            report["statistics"] = {
                "total_billings": await repo.count_billings(window),
                "total_revenue": total_revenue,
                "total_paid": total_paid,
                "total_pending": round(total_revenue - total_paid, 2),
            }
            report["data"] = [
                BillingResponse.model_validate(b).model_dump(mode="json")
                for b in await repo.list_billings(window)
            ]

        elif kind == ReportType.APPOINTMENTS:
            report["data"] = [
                AppointmentResponse.model_validate(a).model_dump(mode="json")
                for a in await repo.list_appointments(window)
            ]

        elif kind == ReportType.LAB_REPORTS:
            report["data"] = [
                LabReportResponse.model_validate(r).model_dump(mode="json")
                for r in await repo.list_lab_reports(window)
            ]

        report["metadata"] = {
            "generated_at": datetime.utcnow().isoformat(),
            "generated_by": generated_by,
            "date_range": self._date_range(start_date, end_date),
        }

        logger.info(f"Report '{kind.value}' generated by {generated_by}")
        return report

    @staticmethod
    def _date_range(start_date: Optional[date], end_date: Optional[date]) -> Dict[str, str]:
        return {
            "start_date": start_date.isoformat() if start_date else ALL_TIME,
            "end_date": end_date.isoformat() if end_date else ALL_TIME,
        }
