from django import forms
from crispy_forms.helper import FormHelper

from assets.models import Asset
from .models import AssetMaintenance


class AssetMaintenanceForm(forms.ModelForm):
    asset = forms.ModelChoiceField(
        queryset=Asset.objects.none(),
        widget=forms.Select(attrs={'class': 'form-select'})
    )

    class Meta:
        model = AssetMaintenance
        fields = [
            'asset', 'maintenance_type', 'description',
            'scheduled_date', 'start_date', 'completed_date',
            'performed_by', 'cost', 'notes', 'is_completed',
        ]
        widgets = {
            'maintenance_type': forms.Select(attrs={'class': 'form-select'}),
            'description': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'scheduled_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'start_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'completed_date': forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}),
            'performed_by': forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Technician or vendor'}),
            'cost': forms.NumberInput(attrs={'class': 'form-control', 'step': '0.01'}),
            'notes': forms.Textarea(attrs={'class': 'form-control', 'rows': 3}),
            'is_completed': forms.CheckboxInput(attrs={'class': 'form-check-input'}),
        }

    def __init__(self, *args, **kwargs):
        company = kwargs.pop('company', None)
        super().__init__(*args, **kwargs)
        self.helper = FormHelper()
        self.helper.form_method = 'post'
        self.helper.form_class = 'form-horizontal'

        assets = Asset.objects.filter(is_deleted=False).exclude(status=Asset.DISPOSED)
        if company:
            assets = assets.filter(company=company)
        self.fields['asset'].queryset = assets.order_by('asset_tag')

        # The asset of an existing record cannot change
        if self.instance.pk:
            self.fields.pop('asset')

    def clean(self):
        cleaned_data = super().clean()
        start = cleaned_data.get('start_date')
        completed = cleaned_data.get('completed_date')
        if start and completed and completed < start:
            self.add_error('completed_date', 'Completed date cannot be before the start date')
        if completed and not cleaned_data.get('is_completed'):
            cleaned_data['is_completed'] = True
        return cleaned_data


class MaintenanceFilterForm(forms.Form):
    search = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'class': 'form-control', 'placeholder': 'Search maintenance...'})
    )
    maintenance_type = forms.ChoiceField(
        required=False,
        choices=[('', 'All Types')] + AssetMaintenance.TYPE_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    status = forms.ChoiceField(
        required=False,
        choices=[('', 'All Statuses')] + AssetMaintenance.STATUS_CHOICES,
        widget=forms.Select(attrs={'class': 'form-select'})
    )
    date_from = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))
    date_to = forms.DateField(required=False, widget=forms.DateInput(attrs={'class': 'form-control', 'type': 'date'}))

    def filters(self):
        if not self.is_valid():
            return {}
        return {key: value for key, value in self.cleaned_data.items() if value}
