from django import forms
from django.contrib.auth.models import User
from crispy_forms.helper import FormHelper

from .models import AuditLog, Company, SystemSetting

INPUT_CLASS = 'form-control'
CHECKBOX_CLASS = 'form-check-input'


class CompanyForm(forms.ModelForm):
    class Meta:
        model = Company
        fields = [
            'name', 'code', 'email', 'phone', 'website',
            'address_line1', 'address_line2', 'city', 'state', 'country', 'postal_code',
            'tax_id',
            'subscription_start_date', 'subscription_end_date',
            'max_users', 'max_assets',
            'is_active', 'notes',
        ]
        widgets = {
            'name': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'Business Unit Name'}),
            'code': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'BU-001'}),
            'email': forms.EmailInput(attrs={'class': INPUT_CLASS, 'placeholder': 'it@business-unit.com'}),
            'phone': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': '+63 2 8123 4567'}),
            'website': forms.URLInput(attrs={'class': INPUT_CLASS}),
            'address_line1': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'Street Address Line 1'}),
            'address_line2': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'Street Address Line 2'}),
            'city': forms.TextInput(attrs={'class': INPUT_CLASS}),
            'state': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'Province'}),
            'country': forms.TextInput(attrs={'class': INPUT_CLASS}),
            'postal_code': forms.TextInput(attrs={'class': INPUT_CLASS}),
            'tax_id': forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'TIN / Business Registration'}),
            'subscription_start_date': forms.DateInput(attrs={'class': INPUT_CLASS, 'type': 'date'}),
            'subscription_end_date': forms.DateInput(attrs={'class': INPUT_CLASS, 'type': 'date'}),
            'max_users': forms.NumberInput(attrs={'class': INPUT_CLASS}),
            'max_assets': forms.NumberInput(attrs={'class': INPUT_CLASS}),
            'notes': forms.Textarea(attrs={'class': INPUT_CLASS, 'rows': 3}),
            'is_active': forms.CheckboxInput(attrs={'class': CHECKBOX_CLASS}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.form_class = 'form-horizontal'

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('subscription_start_date')
        end = cleaned_data.get('subscription_end_date')
        if start and end and end < start:
            raise forms.ValidationError('Subscription end date cannot be before the start date')
        return cleaned_data


class SystemSettingForm(forms.ModelForm):
    """Plain form; key uniqueness is checked by core.services"""

    class Meta:
        model = SystemSetting
        fields = ['key', 'value', 'category', 'description']
        widgets = {
            'key': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. asset_tag_prefix'}),
            'value': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'category': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. general'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.form_class = 'form-horizontal'


class AuditLogFilterForm(forms.Form):
    search = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Search audit logs...'})
    )
    action = forms.ChoiceField(
        required=False,
        choices=[('', 'All Actions')] + AuditLog.ACTION_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    table_name = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Model, e.g. asset'})
    )
    user = forms.ModelChoiceField(
        required=False,
        queryset=User.objects.none(),
        empty_label='All Users',
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    date_from = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    date_to = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        users = User.objects.filter(is_active=True)
        if company:
            users = users.filter(audit_logs__company=company).distinct()
        self.fields['user'].queryset = users.order_by('username')
        self.helper = FormHelper()
        self.helper.form_method = 'get'
        self.helper.form_tag = False

    def filters(self):
        """Keyword arguments for get_audit_logs, empty when the form is invalid"""
        if not self.is_valid():
            return {}
        return {key: value for key, value in self.cleaned_data.items() if value}
