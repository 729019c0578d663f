from django import forms
from django.core.validators import MinValueValidator
from decimal import Decimal
from crispy_forms.helper import FormHelper

from core.models import Company
from users.models import Department, Employee, Location
from .deployments import get_available_assets
from .models import (
    Asset, AssetCategory, AssetDeployment, AssetDisposal, AssetRetirement, AssetTransfer, VerificationItem,
)

CONDITION_CHOICES = [('', 'Keep current')] + Asset.CONDITION_CHOICES


def _post_helper():
    helper = FormHelper()
    helper.form_method = 'post'
    helper.form_class = 'form-horizontal'
    return helper


def _company_assets(company):
    assets = Asset.objects.filter(is_deleted=False)
    if company:
        assets = assets.filter(company=company)
    return assets.order_by('asset_tag')


def _company_employees(company):
    employees = Employee.objects.filter(is_deleted=False, is_active=True)
    if company:
        employees = employees.filter(company=company)
    return employees.order_by('last_name', 'first_name')


class AssetFilterForm(forms.Form):
    """Form for filtering assets"""
    search = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'placeholder': 'Search by item code, name, serial number...', 'class': 'form-control'})
    )
    category = forms.ModelChoiceField(
        queryset=AssetCategory.objects.none(),
        required=False,
        empty_label="All Categories",
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    status = forms.ChoiceField(
        choices=[('', 'All Status')] + Asset.STATUS_CHOICES,
        required=False,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    min_price = forms.DecimalField(
        required=False, min_value=0,
        widget=forms.NumberInput(attrs={'class': 'form-control', 'placeholder': 'Min price'})
    )
    max_price = forms.DecimalField(
        required=False, min_value=0,
        widget=forms.NumberInput(attrs={'class': 'form-control', 'placeholder': 'Max price'})
    )

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.fields['category'].queryset = AssetCategory.objects.filter(
            company=company, is_active=True, is_deleted=False
        )

    def filters(self):
        if not self.is_valid():
            return {}
        data = {key: value for key, value in self.cleaned_data.items() if value not in (None, '')}
        if data.get('category'):
            data['category'] = data['category'].pk
        return data


class AssetForm(forms.ModelForm):
    """Form for creating and updating assets"""

    class Meta:
        model = Asset
        fields = [
            'asset_tag', 'name', 'description', 'category',
            'brand', 'model', 'serial_number',
            'status', 'condition', 'location', 'department', 'assigned_to',
            'purchase_date', 'purchase_price', 'warranty_end_date',
            'depreciation_method', 'useful_life_years', 'salvage_value',
            'depreciation_rate', 'total_expected_units', 'depreciation_start_date',
            'notes',
        ]
        widgets = {
            'asset_tag': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'IT-LPT-0001'}),
            'name': forms.TextInput(attrs={'class': 'form-control'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'category': forms.Select(attrs={'class': 'form-select'}),
            'brand': forms.TextInput(attrs={'class': 'form-control'}),
            'model': forms.TextInput(attrs={'class': 'form-control'}),
            'serial_number': forms.TextInput(attrs={'class': 'form-control'}),
            'status': forms.Select(attrs={'class': 'form-select'}),
            'condition': forms.Select(attrs={'class': 'form-select'}),
            'location': forms.Select(attrs={'class': 'form-select'}),
            'department': forms.Select(attrs={'class': 'form-select'}),
            'assigned_to': forms.Select(attrs={'class': 'form-select'}),
            'purchase_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'purchase_price': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'warranty_end_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'depreciation_method': forms.Select(attrs={'class': 'form-select'}),
            'useful_life_years': forms.NumberInput(attrs={'class': 'form-control'}),
            'salvage_value': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'depreciation_rate': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'total_expected_units': forms.NumberInput(attrs={'class': 'form-control'}),
            'depreciation_start_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()

        self.fields['category'].queryset = AssetCategory.objects.filter(
            company=company, is_deleted=False, is_active=True
        )
        self.fields['location'].queryset = Location.objects.filter(
            company=company, is_deleted=False, is_active=True
        )
        self.fields['department'].queryset = Department.objects.filter(
            company=company, is_deleted=False, is_active=True
        )
        self.fields['assigned_to'].queryset = _company_employees(company)

    def clean(self):
        cleaned_data = super().clean()
        price = cleaned_data.get('purchase_price')
        salvage = cleaned_data.get('salvage_value')
        if price is not None and salvage is not None and salvage > price:
            self.add_error('salvage_value', 'Salvage value cannot exceed the purchase price')

        method = cleaned_data.get('depreciation_method')
        if method == Asset.DECLINING_BALANCE and not cleaned_data.get('depreciation_rate'):
            self.add_error('depreciation_rate', 'Declining balance needs an annual rate')
        if method == Asset.UNITS_OF_PRODUCTION and not cleaned_data.get('total_expected_units'):
            self.add_error('total_expected_units', 'Units of production needs the expected lifetime units')
        return cleaned_data


class AssetCategoryForm(forms.ModelForm):
    """Form for creating and updating asset categories"""

    class Meta:
        model = AssetCategory
        fields = ['code', 'name', 'description', 'parent_category', 'is_active']
        widgets = {
            'code': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'CAT-001'}),
            'name': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Category Name'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'parent_category': forms.Select(attrs={'class': 'form-select'}),
            'is_active': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()

        parents = AssetCategory.objects.filter(company=company, is_deleted=False, is_active=True)
        if self.instance.pk:
            parents = parents.exclude(pk=self.instance.pk)
        self.fields['parent_category'].queryset = parents

    def clean_code(self):
        return self.cleaned_data['code'].strip().upper()


class AssetUnitsForm(forms.Form):
    units = forms.IntegerField(
        min_value=1,
        widget=forms.NumberInput(attrs={'class': 'form-control', 'placeholder': 'Units used this period'})
    )


# --------------------------------------------------------------------------
# Deployments
# --------------------------------------------------------------------------

class DeploymentForm(forms.ModelForm):
    asset = forms.ModelChoiceField(queryset=Asset.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))
    employee = forms.ModelChoiceField(queryset=Employee.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))

    class Meta:
        model = AssetDeployment
        fields = ['asset', 'employee', 'expected_return_date', 'deployment_condition', 'deployment_notes']
        widgets = {
            'expected_return_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'deployment_condition': forms.Select(attrs={'class': 'form-select'}),
            'deployment_notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        self.fields['asset'].queryset = get_available_assets(company)
        self.fields['employee'].queryset = _company_employees(company)


class BulkDeploymentForm(forms.Form):
    employee = forms.ModelChoiceField(queryset=Employee.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))
    assets = forms.ModelMultipleChoiceField(
        queryset=Asset.objects.none(),
        widget=forms.CheckboxSelectMultiple,
    )
    expected_return_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    deployment_notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        # Unavailable assets are reported by the workflow, not hidden by the form
        self.fields['assets'].queryset = _company_assets(company)
        self.fields['employee'].queryset = _company_employees(company)


class DeploymentApprovalForm(forms.Form):
    accounting_notes = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3, 'placeholder': 'Accounting notes...'})
    )


class DeploymentRejectForm(forms.Form):
    reason = forms.CharField(widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))


class AssetReturnForm(forms.Form):
    return_condition = forms.ChoiceField(
        required=False, choices=CONDITION_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    return_notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))


# --------------------------------------------------------------------------
# Transfers
# --------------------------------------------------------------------------

class AssetTransferForm(forms.ModelForm):
    asset = forms.ModelChoiceField(queryset=Asset.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))
    to_company = forms.ModelChoiceField(
        queryset=Company.objects.none(),
        label='Destination business unit',
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    class Meta:
        model = AssetTransfer
        fields = [
            'asset', 'to_company', 'to_location', 'transfer_date', 'reason',
            'transfer_method', 'estimated_arrival', 'transfer_cost', 'insurance_value', 'transfer_notes',
        ]
        widgets = {
            'to_location': forms.Select(attrs={'class': 'form-select'}),
            'transfer_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'reason': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'transfer_method': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'e.g. Courier'}),
            'estimated_arrival': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'transfer_cost': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'insurance_value': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'transfer_notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()

        from .transfers import get_assets_eligible_for_transfer, get_companies_for_transfer
        self.fields['asset'].queryset = get_assets_eligible_for_transfer(company)
        self.fields['to_company'].queryset = get_companies_for_transfer(company)
        self.fields['to_location'].queryset = Location.objects.filter(
            is_deleted=False, is_active=True
        ).exclude(company=company).select_related('company')

    def clean(self):
        cleaned_data = super().clean()
        to_company = cleaned_data.get('to_company')
        to_location = cleaned_data.get('to_location')
        if to_company and to_location and to_location.company_id != to_company.pk:
            self.add_error('to_location', 'Location does not belong to the destination business unit')
        return cleaned_data


class BulkTransferForm(forms.Form):
    assets = forms.ModelMultipleChoiceField(queryset=Asset.objects.none(), widget=forms.CheckboxSelectMultiple)
    to_company = forms.ModelChoiceField(queryset=Company.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))
    reason = forms.CharField(widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))
    transfer_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()

        from .transfers import get_companies_for_transfer
        self.fields['assets'].queryset = _company_assets(company)
        self.fields['to_company'].queryset = get_companies_for_transfer(company)


class TransferDecisionForm(forms.Form):
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))


class TransferShipForm(forms.Form):
    tracking_number = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control'}))


class TransferCompleteForm(forms.Form):
    condition_after = forms.ChoiceField(
        required=False, choices=CONDITION_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    received_notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))


# --------------------------------------------------------------------------
# Retirement & Disposal
# --------------------------------------------------------------------------

class AssetRetirementForm(forms.ModelForm):
    asset = forms.ModelChoiceField(queryset=Asset.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))

    class Meta:
        model = AssetRetirement
        fields = [
            'asset', 'retirement_date', 'reason', 'retirement_method', 'condition',
            'replacement_asset', 'disposal_planned', 'planned_disposal_date', 'notes',
        ]
        widgets = {
            'retirement_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'reason': forms.Select(attrs={'class': 'form-select'}),
            'retirement_method': forms.TextInput(attrs={'class': 'form-control'}),
            'condition': forms.Select(attrs={'class': 'form-select'}),
            'replacement_asset': forms.Select(attrs={'class': 'form-select'}),
            'disposal_planned': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'planned_disposal_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        in_service = _company_assets(company).exclude(status__in=[Asset.RETIRED, Asset.DISPOSED])
        self.fields['asset'].queryset = in_service
        self.fields['replacement_asset'].queryset = in_service

    def clean(self):
        cleaned_data = super().clean()
        if cleaned_data.get('planned_disposal_date') and not cleaned_data.get('disposal_planned'):
            cleaned_data['disposal_planned'] = True
        if cleaned_data.get('replacement_asset') and cleaned_data.get('replacement_asset') == cleaned_data.get('asset'):
            self.add_error('replacement_asset', 'An asset cannot replace itself')
        return cleaned_data


class AssetDisposalForm(forms.ModelForm):
    asset = forms.ModelChoiceField(queryset=Asset.objects.none(), widget=forms.Select(attrs={'class': 'form-select'}))

    class Meta:
        model = AssetDisposal
        fields = [
            'asset', 'disposal_date', 'reason', 'disposal_method', 'disposal_location',
            'disposal_value', 'disposal_cost',
            'recipient_name', 'recipient_contact', 'recipient_address',
            'environmental_compliance', 'data_wiped', 'certificate_number', 'condition', 'notes',
        ]
        widgets = {
            'disposal_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'reason': forms.Select(attrs={'class': 'form-select'}),
            'disposal_method': forms.Select(attrs={'class': 'form-select'}),
            'disposal_location': forms.TextInput(attrs={'class': 'form-control'}),
            'disposal_value': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'disposal_cost': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'recipient_name': forms.TextInput(attrs={'class': 'form-control'}),
            'recipient_contact': forms.TextInput(attrs={'class': 'form-control'}),
            'recipient_address': forms.Textarea(attrs={'class': 'form-control', 'rows': 2}),
            'environmental_compliance': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'data_wiped': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
            'certificate_number': forms.TextInput(attrs={'class': 'form-control'}),
            'condition': forms.Select(attrs={'class': 'form-select'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()

        from .disposals import get_assets_eligible_for_disposal
        self.fields['asset'].queryset = get_assets_eligible_for_disposal(company)
        for name in ('disposal_value', 'disposal_cost'):
            self.fields[name].validators.append(MinValueValidator(Decimal('0.00')))


class BulkDisposalForm(forms.Form):
    assets = forms.ModelMultipleChoiceField(queryset=Asset.objects.none(), widget=forms.CheckboxSelectMultiple)
    reason = forms.ChoiceField(choices=AssetDisposal.REASON_CHOICES, widget=forms.Select(attrs={'class': 'form-select'}))
    disposal_method = forms.ChoiceField(
        required=False, choices=[('', '---------')] + AssetDisposal.METHOD_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    disposal_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    disposal_value = forms.DecimalField(required=False, min_value=0, decimal_places=2,
                                        widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}))
    disposal_cost = forms.DecimalField(required=False, min_value=0, decimal_places=2,
                                       widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 3}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        self.fields['assets'].queryset = _company_assets(company)


class BulkUpdateForm(forms.Form):
    """Fields left blank are not changed"""
    assets = forms.ModelMultipleChoiceField(queryset=Asset.objects.none(), widget=forms.CheckboxSelectMultiple)
    status = forms.ChoiceField(
        required=False, choices=[('', 'No change')] + Asset.STATUS_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    condition = forms.ChoiceField(
        required=False, choices=[('', 'No change')] + Asset.CONDITION_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    category = forms.ModelChoiceField(
        required=False, queryset=AssetCategory.objects.none(), empty_label='No change',
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    location = forms.ModelChoiceField(
        required=False, queryset=Location.objects.none(), empty_label='No change',
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    depreciation_method = forms.ChoiceField(
        required=False, choices=[('', 'No change')] + Asset.DEPRECIATION_METHOD_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    useful_life_years = forms.IntegerField(required=False, min_value=1,
                                           widget=forms.NumberInput(attrs={'class': 'form-control'}))
    salvage_value = forms.DecimalField(required=False, min_value=0, decimal_places=2,
                                       widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}))
    depreciation_rate = forms.DecimalField(required=False, min_value=0, max_value=100, decimal_places=2,
                                           widget=forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}))
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        self.fields['assets'].queryset = _company_assets(company)
        self.fields['category'].queryset = AssetCategory.objects.filter(
            company=company, is_deleted=False, is_active=True
        )
        self.fields['location'].queryset = Location.objects.filter(
            company=company, is_deleted=False, is_active=True
        )

    def updates(self):
        return {key: value for key, value in self.cleaned_data.items()
                if key != 'assets' and value not in (None, '')}


class ReportFilterForm(forms.Form):
    date_from = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    date_to = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))


class AssetImportForm(forms.Form):
    """Upload of a CSV or Excel sheet of new assets"""
    file = forms.FileField(
        help_text='CSV or Excel (.xlsx), at most 10MB',
        widget=forms.ClearableFileInput(attrs={'class': 'form-control', 'accept': '.csv,.xlsx'})
    )
    auto_generate_item_codes = forms.BooleanField(
        required=False, initial=True,
        help_text='Number item codes as <business unit>-<category>-001'
    )
    generate_serial_numbers = forms.BooleanField(required=False)
    serial_prefix = forms.CharField(required=False, max_length=50,
                                    widget=forms.TextInput(attrs={'class': 'form-control'}))
    serial_start = forms.IntegerField(required=False, min_value=0, initial=1,
                                      widget=forms.NumberInput(attrs={'class': 'form-control'}))
    serial_padding = forms.IntegerField(required=False, min_value=1, max_value=10, initial=3,
                                        widget=forms.NumberInput(attrs={'class': 'form-control'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        self.helper.form_tag = False

    def options(self):
        return {key: value for key, value in self.cleaned_data.items() if key != 'file'}


class ScanForm(forms.Form):
    code = forms.CharField(
        max_length=500,
        widget=forms.TextInput(attrs={
            'class': 'form-control', 'autofocus': True, 'autocomplete': 'off',
            'placeholder': 'Scan a label or type an item code',
        })
    )
    location = forms.ModelChoiceField(
        required=False, queryset=Location.objects.none(), empty_label='Where the asset was found',
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.fields['location'].queryset = Location.objects.filter(
            company=company, is_deleted=False, is_active=True
        ).order_by('name')


class InventoryVerificationForm(forms.Form):
    name = forms.CharField(max_length=200, widget=forms.TextInput(attrs={'class': 'form-control'}))
    description = forms.CharField(required=False, widget=forms.Textarea(attrs={'class': 'form-control', 'rows': 2}))
    start_date = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    locations = forms.ModelMultipleChoiceField(
        required=False, queryset=Location.objects.none(), widget=forms.CheckboxSelectMultiple,
        help_text='Leave empty to include every location'
    )
    categories = forms.ModelMultipleChoiceField(
        required=False, queryset=AssetCategory.objects.none(), widget=forms.CheckboxSelectMultiple,
        help_text='Leave empty to include every category'
    )
    assigned_to = forms.ModelChoiceField(
        required=False, queryset=Employee.objects.none(),
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = _post_helper()
        self.fields['locations'].queryset = Location.objects.filter(
            company=company, is_deleted=False, is_active=True
        ).order_by('name')
        self.fields['categories'].queryset = AssetCategory.objects.filter(
            company=company, is_deleted=False, is_active=True
        ).order_by('name')
        self.fields['assigned_to'].queryset = _company_employees(company)


class VerificationItemForm(forms.Form):
    status = forms.ChoiceField(
        choices=[choice for choice in VerificationItem.STATUS_CHOICES if choice[0] != VerificationItem.PENDING],
        widget=forms.Select(attrs={'class': 'form-select form-select-sm'})
    )
    actual_location = forms.ModelChoiceField(
        required=False, queryset=Location.objects.none(),
        widget=forms.Select(attrs={'class': 'form-select form-select-sm'})
    )
    actual_assignee = forms.ModelChoiceField(
        required=False, queryset=Employee.objects.none(),
        widget=forms.Select(attrs={'class': 'form-select form-select-sm'})
    )
    notes = forms.CharField(required=False, widget=forms.TextInput(attrs={'class': 'form-control form-control-sm'}))

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.fields['actual_location'].queryset = Location.objects.filter(
            company=company, is_deleted=False, is_active=True
        ).order_by('name')
        self.fields['actual_assignee'].queryset = _company_employees(company)


class UtilizationFilterForm(forms.Form):
    category = forms.ModelChoiceField(
        queryset=AssetCategory.objects.none(), required=False, empty_label='All Categories',
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    threshold_days = forms.IntegerField(
        required=False, min_value=1, initial=30,
        widget=forms.NumberInput(attrs={'class': 'form-control', 'placeholder': 'Idle after days'})
    )

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.fields['category'].queryset = AssetCategory.objects.filter(
            company=company, is_deleted=False, is_active=True
        ).order_by('name')
