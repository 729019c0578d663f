from django import forms
from django.contrib.auth.models import User
from crispy_forms.helper import FormHelper

from .models import Department, Employee, Location, Role
from .permissions import PERMISSION_MODULES


def _horizontal_helper():
    helper = FormHelper()
    helper.form_method = 'post'
    helper.form_class = 'form-horizontal'
    return helper


class EmployeeForm(forms.ModelForm):
    """
    Employee details, with an optional login. Uniqueness of the employee ID
    and email is checked by users.services.
    """
    username = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'class': 'form-control', 'autocomplete': 'off'}),
        help_text='Leave blank for employees who do not sign in'
    )
    password = forms.CharField(
        required=False,
        strip=False,
        widget=forms.PasswordInput(attrs={'class': 'form-control', 'autocomplete': 'new-password'}),
    )

    class Meta:
        model = Employee
        fields = [
            'employee_id', 'first_name', 'last_name', 'email', 'position', 'phone',
            'department', 'location', 'role', 'reporting_manager', 'hire_date',
            'is_company_admin',
        ]
        widgets = {
            'employee_id': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'EMP-001'}),
            'first_name': forms.TextInput(attrs={'class': 'form-control'}),
            'last_name': forms.TextInput(attrs={'class': 'form-control'}),
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'position': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. IT Specialist'}),
            'phone': forms.TextInput(attrs={'class': 'form-control'}),
            'department': forms.Select(attrs={'class': 'form-select'}),
            'location': forms.Select(attrs={'class': 'form-select'}),
            'role': forms.Select(attrs={'class': 'form-select'}),
            'reporting_manager': forms.Select(attrs={'class': 'form-select'}),
            'hire_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'is_company_admin': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()

        self.fields['role'].queryset = Role.objects.filter(is_active=True, is_deleted=False)
        if company:
            self.fields['department'].queryset = Department.objects.filter(
                company=company, is_deleted=False, is_active=True
            )
            self.fields['location'].queryset = Location.objects.filter(
                company=company, is_deleted=False, is_active=True
            )
            managers = Employee.objects.filter(company=company, is_deleted=False, is_active=True)
            if self.instance.pk:
                managers = managers.exclude(pk=self.instance.pk)
            self.fields['reporting_manager'].queryset = managers

        # Existing logins are managed through the password field only
        if self.instance.pk and self.instance.user_id:
            self.fields.pop('username')

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('username') and not cleaned_data.get('password'):
            self.add_error('password', 'A password is required when creating a login')
        return cleaned_data


class RoleForm(forms.ModelForm):
    permissions = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 4,
                                     'placeholder': 'One permission per line, e.g. deployments:approve'}),
    )

    class Meta:
        model = Role
        fields = ['name', 'code', 'description', 'permissions']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'code': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'ASSET_MANAGER'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()
        if self.instance.pk and not self.is_bound:
            self.initial['permissions'] = '\n'.join(self.instance.permissions or [])

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()

    def clean_permissions(self):
        raw = self.cleaned_data.get('permissions') or ''
        permissions = []
        for line in raw.replace(',', '\n').splitlines():
            permission = line.strip()
            if not permission:
                continue
            if ':' not in permission:
                raise forms.ValidationError(f'"{permission}" is not in area:action form')
            if permission not in permissions:
                permissions.append(permission)
        return permissions


class DepartmentForm(forms.ModelForm):
    class Meta:
        model = Department
        fields = ['name', 'code', 'description', 'parent_department', 'head']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Department Name'}),
            'code': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'DEPT-001'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'parent_department': forms.Select(attrs={'class': 'form-select'}),
            'head': forms.Select(attrs={'class': 'form-select'}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()

        departments = Department.objects.filter(is_deleted=False, is_active=True)
        heads = User.objects.filter(is_active=True)
        if company:
            departments = departments.filter(company=company)
            heads = heads.filter(employee__company=company)
        if self.instance.pk:
            departments = departments.exclude(pk=self.instance.pk)
        self.fields['parent_department'].queryset = departments
        self.fields['head'].queryset = heads


class LocationForm(forms.ModelForm):
    class Meta:
        model = Location
        fields = ['name', 'code', 'address_line1', 'city', 'country', 'location_type']
        widgets = {
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Location Name'}),
            'code': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'LOC-001'}),
            'address_line1': forms.TextInput(attrs={'class': 'form-control'}),
            'city': forms.TextInput(attrs={'class': 'form-control'}),
            'country': forms.TextInput(attrs={'class': 'form-control'}),
            'location_type': forms.Select(attrs={'class': 'form-select'}),
        }

    def __init__(self, *args, **kwargs):
        self.company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()

    def clean_code(self):
        code = self.cleaned_data['code'].strip().upper()
        existing = Location.objects.filter(company=self.company, code=code, is_deleted=False)
        if self.instance.pk:
            existing = existing.exclude(pk=self.instance.pk)
        if self.company and existing.exists():
            raise forms.ValidationError('Location with this code already exists in this business unit')
        return code


class ProfileForm(forms.ModelForm):
    """Contact details an employee may change on their own profile"""

    class Meta:
        model = Employee
        fields = ['email', 'position', 'phone']
        widgets = {
            'email': forms.EmailInput(attrs={'class': 'form-control'}),
            'position': forms.TextInput(attrs={'class': 'form-control'}),
            'phone': forms.TextInput(attrs={'class': 'form-control'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()


class RolePermissionsForm(forms.Form):
    """One group of checkboxes per catalogue module"""

    def __init__(self, *args, **kwargs):
        role = kwargs.pop('role', None)
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()
        granted = set(role.permissions or []) if role else set()
        for module in PERMISSION_MODULES:
            choices = module['permissions']
            self.fields[module['key']] = forms.MultipleChoiceField(
                label=module['label'],
                required=False,
                choices=choices,
                initial=[code for code, _ in choices if code in granted],
                widget=forms.CheckboxSelectMultiple,
            )

    def permissions(self):
        selected = []
        for module in PERMISSION_MODULES:
            selected.extend(self.cleaned_data.get(module['key']) or [])
        return selected


class EmployeeRoleForm(forms.Form):
    role = forms.ModelChoiceField(
        queryset=Role.objects.filter(is_active=True, is_deleted=False).order_by('name'),
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = _horizontal_helper()
