# apps/dashboard/views.py
"""
Dashboard endpoints: the monthly financial report and the live
current-month summary.
"""
from rest_framework.views import APIView
from rest_framework.response import Response

from apps.clients.store import DjangoClientStore
from apps.core.permissions import IsAdminOrAssistant
from .services import ReportService


class DashboardReportView(APIView):
    """
    Financial report for ?month=&year= (defaults to the current UTC month)
    """
    permission_classes = [IsAdminOrAssistant]

    def get(self, request):
        service = ReportService(DjangoClientStore())
        today = service.today()

        month = request.query_params.get('month') or today.month
        year = request.query_params.get('year') or today.year

        report = service.build(month, year)
        return Response(report.as_dict())


class CurrentMonthStatsView(APIView):
    """Live numbers for the current month, whatever the report filter is"""
    permission_classes = [IsAdminOrAssistant]

    def get(self, request):
        service = ReportService(DjangoClientStore())
        return Response(service.build_live_summary())
