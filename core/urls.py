from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # Business Units
    path('companies/', views.company_list, name='company_list'),
    path('companies/create/', views.company_create, name='company_create'),
    path('companies/<int:pk>/', views.company_detail, name='company_detail'),
    path('companies/<int:pk>/update/', views.company_update, name='company_update'),
    path('companies/<int:pk>/delete/', views.company_delete, name='company_delete'),
    path('set-company/<int:company_id>/', views.set_company_context, name='set_company_context'),
    path('clear-company/', views.set_company_context, name='clear_company_context'),

    # Audit Logs
    path('audit/', views.audit_log_list, name='audit_log_list'),
    path('audit/<int:pk>/', views.audit_log_detail, name='audit_log_detail'),
    path('audit/export/', views.audit_log_export, name='audit_log_export'),
    path('audit/stats/', views.audit_log_stats, name='audit_log_stats'),

    # System Settings
    path('settings/', views.system_setting_list, name='system_setting_list'),
    path('settings/create/', views.system_setting_create, name='system_setting_create'),
    path('settings/<int:pk>/update/', views.system_setting_update, name='system_setting_update'),
    path('settings/<int:pk>/delete/', views.system_setting_delete, name='system_setting_delete'),
]
