from django.urls import path
from . import views

app_name = 'assets'

urlpatterns = [
    # Dashboard
    path('', views.dashboard, name='dashboard'),

    # Assets
    path('assets/', views.asset_list, name='asset_list'),
    path('assets/create/', views.asset_create, name='asset_create'),
    path('assets/<int:pk>/', views.asset_detail, name='asset_detail'),
    path('assets/qr/<uuid:qr_code>/', views.asset_detail_by_qr, name='asset_detail_by_qr'),
    path('assets/<int:pk>/update/', views.asset_update, name='asset_update'),
    path('assets/<int:pk>/delete/', views.asset_delete, name='asset_delete'),
    path('assets/<int:pk>/qr-code/', views.asset_qr_code, name='asset_qr_code'),
    path('api/asset-lookup/', views.asset_lookup_api, name='asset_lookup_api'),
    path('assets/import/', views.asset_import, name='asset_import'),
    path('assets/import/preview/', views.asset_import_preview, name='asset_import_preview'),
    path('assets/import/template/', views.asset_import_template, name='asset_import_template'),

    # Scanning and inventory verification
    path('scan/', views.asset_scan, name='asset_scan'),
    path('api/scan/', views.asset_scan_api, name='asset_scan_api'),
    path('verifications/', views.verification_list, name='verification_list'),
    path('verifications/create/', views.verification_create, name='verification_create'),
    path('verifications/<int:pk>/', views.verification_detail, name='verification_detail'),
    path('verifications/<int:pk>/scan/', views.verification_scan, name='verification_scan'),
    path('verifications/<int:pk>/items/<int:item_pk>/', views.verification_item_update, name='verification_item_update'),
    path('verifications/<int:pk>/complete/', views.verification_complete, name='verification_complete'),
    path('verifications/<int:pk>/cancel/', views.verification_cancel, name='verification_cancel'),

    # Categories
    path('categories/', views.category_list, name='category_list'),
    path('categories/create/', views.category_create, name='category_create'),
    path('categories/<int:pk>/update/', views.category_update, name='category_update'),
    path('categories/<int:pk>/delete/', views.category_delete, name='category_delete'),

    # Depreciation
    path('assets/<int:pk>/depreciation/', views.asset_depreciation, name='asset_depreciation'),
    path('assets/<int:pk>/depreciation/calculate/', views.asset_calculate_depreciation, name='asset_calculate_depreciation'),
    path('assets/<int:pk>/depreciation/units/', views.asset_update_units, name='asset_update_units'),
    path('depreciation/', views.depreciation_dashboard, name='depreciation_dashboard'),
    path('depreciation/batch/', views.depreciation_batch, name='depreciation_batch'),

    # Deployments
    path('deployments/', views.deployment_list, name='deployment_list'),
    path('deployments/create/', views.deployment_create, name='deployment_create'),
    path('deployments/bulk-create/', views.deployment_bulk_create, name='deployment_bulk_create'),
    path('deployments/pending/', views.pending_approvals, name='pending_approvals'),
    path('deployments/bulk-approve/', views.deployment_bulk_approve, name='deployment_bulk_approve'),
    path('deployments/<int:pk>/', views.deployment_detail, name='deployment_detail'),
    path('deployments/<int:pk>/approve/', views.deployment_approve, name='deployment_approve'),
    path('deployments/<int:pk>/reject/', views.deployment_reject, name='deployment_reject'),
    path('deployments/<int:pk>/return/', views.deployment_return, name='deployment_return'),
    path('deployments/<int:pk>/cancel/', views.deployment_cancel, name='deployment_cancel'),

    # Transfers
    path('transfers/', views.transfer_list, name='transfer_list'),
    path('transfers/create/', views.transfer_create, name='transfer_create'),
    path('transfers/bulk-create/', views.transfer_bulk_create, name='transfer_bulk_create'),
    path('transfers/<int:pk>/', views.transfer_detail, name='transfer_detail'),
    path('transfers/<int:pk>/approve/', views.transfer_approve, name='transfer_approve'),
    path('transfers/<int:pk>/reject/', views.transfer_reject, name='transfer_reject'),
    path('transfers/<int:pk>/ship/', views.transfer_ship, name='transfer_ship'),
    path('transfers/<int:pk>/complete/', views.transfer_complete, name='transfer_complete'),

    # Retirements
    path('retirements/', views.retirement_list, name='retirement_list'),
    path('retirements/eligible/', views.retirement_eligible, name='retirement_eligible'),
    path('retirements/create/', views.retirement_create, name='retirement_create'),
    path('retirements/<int:pk>/approve/', views.retirement_approve, name='retirement_approve'),
    path('retirements/notifications/', views.end_of_life_notifications, name='end_of_life_notifications'),

    # Disposals
    path('disposals/', views.disposal_list, name='disposal_list'),
    path('disposals/create/', views.disposal_create, name='disposal_create'),
    path('disposals/bulk-create/', views.disposal_bulk_create, name='disposal_bulk_create'),
    path('disposals/summary/', views.disposal_summary, name='disposal_summary'),
    path('disposals/<int:pk>/approve/', views.disposal_approve, name='disposal_approve'),

    # Bulk operations
    path('bulk/update/', views.bulk_update, name='bulk_update'),
    path('bulk/return/', views.bulk_return, name='bulk_return'),
    path('bulk/delete/', views.bulk_delete, name='bulk_delete'),

    # Utilization
    path('utilization/', views.utilization, name='utilization'),

    # Reports
    path('reports/', views.reports_dashboard, name='reports_dashboard'),
    path('reports/<str:report_type>/export/', views.report_export, name='report_export'),
]
