from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import PlanViewSet, PaymentMethodViewSet, DiscountViewSet, GrossOverrideViewSet

router = DefaultRouter()
router.register(r'plans', PlanViewSet, basename='plans')
router.register(r'payment-methods', PaymentMethodViewSet, basename='payment-methods')
router.register(r'discounts', DiscountViewSet, basename='discounts')
router.register(r'gross-overrides', GrossOverrideViewSet, basename='gross-overrides')

urlpatterns = [
    path('', include(router.urls)),
]
