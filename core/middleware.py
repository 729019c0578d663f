"""
Middleware for business unit (multi-tenancy) support
"""
import logging

from django.contrib import messages
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import redirect
from django.urls import reverse
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)

EXEMPT_PREFIXES = ('/accounts/', '/static/', '/media/')


class CompanyMiddleware(MiddlewareMixin):
    """
    Sets the current business unit for the logged-in user so views and
    workflows can scope their queries.
    """

    def process_request(self, request):
        request.current_company = None
        request.current_employee = None
        request.is_super_admin = False
        request.is_company_admin = False

        if request.path == '/' or request.path.startswith(EXEMPT_PREFIXES):
            return None

        if not request.user.is_authenticated:
            return None

        if request.user.is_superuser:
            request.is_super_admin = True
            request.is_company_admin = True
            request.current_employee = getattr(request.user, 'employee', None)
            selected_company_id = request.session.get('selected_company_id')
            if selected_company_id:
                from .models import Company
                try:
                    request.current_company = Company.objects.get(id=selected_company_id, is_deleted=False)
                except Company.DoesNotExist:
                    logger.warning("Dropping stale business unit %s from session of %s",
                                   selected_company_id, request.user)
                    request.session.pop('selected_company_id', None)
            elif request.current_employee is not None:
                request.current_company = request.current_employee.company
            return None

        try:
            employee = request.user.employee
        except ObjectDoesNotExist:
            messages.error(request, 'Your employee record is not set up. Please contact your administrator.')
            if request.path != reverse('assets:dashboard'):
                return redirect('assets:dashboard')
            return None

        request.current_employee = employee
        request.current_company = employee.company
        request.is_company_admin = employee.is_admin
        return None
