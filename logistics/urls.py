"""
Logistics App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ClosingViewSet, OrderViewSet

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'closing', ClosingViewSet, basename='closing')

urlpatterns = [
    # Router URLs
    path('', include(router.urls)),
]
