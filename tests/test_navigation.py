"""
Tests for the error navigation helpers
"""

from intake_wizard.forms.navigation import (
    errors_by_step,
    first_error_field,
    locate_first_error,
    step_error_summary,
)
from intake_wizard.wizards.patient import patient_wizard


class TestErrorNavigation:
    """Test locating and summarizing validation errors"""

    def setup_method(self):
        self.steps = list(patient_wizard.steps)
        self.errors = {
            'postalCode': "Postal code is required",
            'weight': "Weight must be a valid number between 1 and 500 kg",
            'payerName': "Payer name is required",
            'height': "Height must be a valid number between 1 and 300 cm",
        }

    def test_first_error_field_uses_declaration_order(self):
        medical = patient_wizard.steps.get('medical')
        assert first_error_field(medical.fields, self.errors) == 'height'
        assert first_error_field(medical.fields, {}) is None

    def test_locate_first_error(self):
        location = locate_first_error(self.steps, self.errors)
        assert location.step_id == 'medical'
        assert location.field_name == 'height'
        assert location.message.startswith("Height")

    def test_locate_without_errors(self):
        assert locate_first_error(self.steps, {}) is None

    def test_errors_by_step(self):
        grouped = errors_by_step(self.steps, self.errors)
        assert list(grouped) == ['medical', 'insurance', 'contact']
        assert list(grouped['medical']) == ['height', 'weight']

    def test_step_error_summary(self):
        medical = patient_wizard.steps.get('medical')
        summary = step_error_summary(medical, self.errors, patient_wizard.schema)
        assert summary == [
            {'field': 'height', 'label': 'Height',
             'message': "Height must be a valid number between 1 and 300 cm"},
            {'field': 'weight', 'label': 'Weight',
             'message': "Weight must be a valid number between 1 and 500 kg"},
        ]
