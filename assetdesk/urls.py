"""
URL configuration for the assetdesk project.
"""
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from django.contrib.auth import views as auth_views
from . import views

urlpatterns = [
    path("", views.landing, name="landing"),
    path("app/", include('assets.urls')),
    path("core/", include('core.urls')),
    path("users/", include('users.urls')),
    path("maintenance/", include('maintenance.urls')),

    path("accounts/login/", auth_views.LoginView.as_view(template_name='registration/login.html'), name='login'),
    path("accounts/logout/", views.logout_view, name='logout'),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
