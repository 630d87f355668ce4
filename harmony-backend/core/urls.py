# harmony-backend/core/urls.py
"""
URL configuration for the Stock Harmony backend.

Every API route lives under /api/v1/; each app owns its own urls module.
"""

from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView, TokenVerifyView

from .api import HealthView


urlpatterns = [
    path("", RedirectView.as_view(url="/admin/", permanent=False)),
    path("admin/", admin.site.urls),

    # Auth
    path("api/v1/auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/v1/auth/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/v1/auth/verify/", TokenVerifyView.as_view(), name="token_verify"),

    # API & docs
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/v1/docs/", SpectacularSwaggerView.as_view(url_name="schema")),
    path("api/v1/health/", HealthView.as_view(), name="health"),

    path("api/v1/products/", include("catalog.urls", namespace="catalog")),
    path("api/v1/bills/", include("billing.urls", namespace="billing")),
    path("api/v1/analytics/", include("analytics.urls", namespace="analytics")),
    path("api/v1/purchases/", include("purchasing.urls", namespace="purchasing")),
    path("api/v1/customers/", include("customers.urls", namespace="customers")),
]
