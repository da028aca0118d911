from django.urls import path
from .views import DashboardReportView, CurrentMonthStatsView

urlpatterns = [
    path('dashboard/report/', DashboardReportView.as_view(), name='dashboard-report'),
    path('dashboard/current-month/', CurrentMonthStatsView.as_view(), name='dashboard-current-month'),
]
