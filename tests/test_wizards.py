"""
Tests for the bundled wizard definitions
"""

import pytest

from intake_wizard.forms.schema import Attachment
from intake_wizard.forms.validation import ValidationEngine
from intake_wizard.utils.error_handling import WizardNotFound
from intake_wizard.wizards import WIZARDS, get_wizard_definition
from intake_wizard.wizards.common import MAX_UPLOAD_BYTES
from intake_wizard.wizards.institution import _rate_cards_confirmed

from tests.wizard_data import (
    TODAY,
    emt_values,
    employee_values,
    institution_values,
    patient_values,
    round_trip_values,
    trip_values,
    vehicle_values,
)


def validate_all(definition, values):
    merged = definition.default_values()
    merged.update(values)
    engine = ValidationEngine(definition.schema, today=TODAY)
    return engine.validate(definition.steps.active_fields(merged), merged)


class TestRegistry:
    """Test the wizard registry"""

    def test_registered_wizards(self):
        assert list(WIZARDS) == ['patient', 'institution', 'trip', 'employee', 'vehicle']

    def test_draft_keys(self):
        assert get_wizard_definition('patient').draft_key == 'patient_form_draft'
        assert get_wizard_definition('institution').draft_key == 'institution_form_draft'
        assert get_wizard_definition('trip').draft_key == 'trip_form_draft'
        assert get_wizard_definition('employee').draft_key == 'employee_full_registration_draft'
        assert get_wizard_definition('vehicle').draft_key == 'vehicle_form_draft'

    def test_unknown_wizard(self):
        with pytest.raises(WizardNotFound):
            get_wizard_definition('aircraft')

    @pytest.mark.parametrize('key', list(WIZARDS))
    def test_definitions_are_consistent(self, key):
        assert WIZARDS[key].check() == []

    @pytest.mark.parametrize('key,values', [
        ('patient', patient_values()),
        ('institution', institution_values()),
        ('trip', trip_values()),
        ('trip', round_trip_values()),
        ('employee', employee_values()),
        ('employee', emt_values()),
        ('vehicle', vehicle_values()),
    ])
    def test_valid_answers_pass(self, key, values):
        assert validate_all(WIZARDS[key], values) == {}


class TestPatientWizard:
    """Patient specific rules"""

    def setup_method(self):
        self.definition = get_wizard_definition('patient')

    def test_steps(self):
        assert [step.id for step in self.definition.steps] == [
            'personal', 'medical', 'insurance', 'accessibility', 'contact', 'summary',
        ]

    def test_interpreter_language(self):
        errors = validate_all(self.definition, patient_values(interpreterRequired='Yes'))
        assert errors == {'preferredLanguage': "Preferred Language is required when Interpreter Required is Yes"}

    def test_height_bounds(self):
        errors = validate_all(self.definition, patient_values(height=0))
        assert errors == {'height': "Height must be a valid number between 1 and 300 cm"}

    def test_consent_required(self):
        errors = validate_all(self.definition, patient_values(consentOnFile=False))
        assert errors == {'consentOnFile': "Consent on File is required"}


class TestInstitutionWizard:
    """Institution specific rules"""

    def setup_method(self):
        self.definition = get_wizard_definition('institution')

    def test_service_required(self):
        errors = validate_all(self.definition, institution_values(services=[], serviceConfigurations={}))
        assert errors == {'services': "At least one service must be selected"}

    def test_rate_cards_confirmed(self):
        values = institution_values(serviceConfigurations={'BLS': {'rateCardConfirmed': True}})
        errors = validate_all(self.definition, values)
        assert errors == {'serviceConfigurations': "All selected services must have confirmed rate cards"}

    def test_configuration_shape(self):
        values = institution_values(serviceConfigurations={'BLS': {'rateCardConfirmed': 'yes'}})
        errors = validate_all(self.definition, values)
        assert errors == {'serviceConfigurations': "Service configuration for BLS is invalid"}

    def test_governorate_choices(self):
        errors = validate_all(self.definition, institution_values(governorate='Paris'))
        assert list(errors) == ['governorate']

    def test_malformed_services_reported_on_services(self):
        errors = validate_all(self.definition, institution_values(services=5))
        assert errors == {'services': "Services must be a list of options"}

        errors = validate_all(self.definition, institution_values(services=[['ALS']]))
        assert list(errors) == ['services']

    def test_rate_card_rule_ignores_malformed_values(self):
        assert _rate_cards_confirmed({'services': 5}) is True
        assert _rate_cards_confirmed({'services': [['ALS']], 'serviceConfigurations': {}}) is True
        assert _rate_cards_confirmed({'services': ['ALS'], 'serviceConfigurations': 5}) is False


class TestTripWizard:
    """Trip specific rules"""

    def setup_method(self):
        self.definition = get_wizard_definition('trip')

    def test_batch_import_needs_spreadsheet(self):
        errors = validate_all(self.definition, trip_values(creationMethod='Batch Import'))
        assert errors == {'uploadedFile': "Trip import file is required"}

        values = trip_values(creationMethod='Batch Import', uploadedFile=Attachment('trips.pdf', 100))
        errors = validate_all(self.definition, values)
        assert list(errors) == ['uploadedFile']

        values = trip_values(creationMethod='Batch Import', uploadedFile=Attachment('trips.csv', 100))
        assert validate_all(self.definition, values) == {}

    def test_upload_size_limit(self):
        values = trip_values(
            creationMethod='Batch Import',
            uploadedFile=Attachment('trips.xlsx', MAX_UPLOAD_BYTES + 1),
        )
        errors = validate_all(self.definition, values)
        assert errors == {'uploadedFile': "trips.xlsx exceeds the 10 MB upload limit"}

    def test_return_after_outbound(self):
        errors = validate_all(self.definition, round_trip_values(returnPickupTime='08:00'))
        assert errors == {'returnPickupDate': "Return pickup must not be before the outbound pickup"}

    def test_manual_assignment(self):
        errors = validate_all(self.definition, trip_values(assignmentType='Manual Assignment'))
        assert errors == {'vehicleId': "Vehicle and driver are required for manual assignment"}
        values = trip_values(assignmentType='Manual Assignment', vehicleId='AMB-01', driverId='emp-9')
        assert validate_all(self.definition, values) == {}

    def test_pickup_window(self):
        values = trip_values(outboundPickupWindowStart='10:00', outboundPickupWindowEnd='09:00')
        errors = validate_all(self.definition, values)
        assert errors == {'outboundPickupWindowEnd': "Pickup window end must not be before its start"}

    def test_short_address(self):
        errors = validate_all(self.definition, trip_values(outboundPickupAddress='Cairo'))
        assert errors == {'outboundPickupAddress': "Pickup address is required"}


class TestEmployeeWizard:
    """Employee specific rules"""

    def setup_method(self):
        self.definition = get_wizard_definition('employee')

    def test_medical_license_only_for_emt(self):
        assert 'medical_license' not in [s.id for s in self.definition.active_steps(employee_values())]
        assert 'medical_license' in [s.id for s in self.definition.active_steps(emt_values())]

    def test_emt_needs_medical_license(self):
        errors = validate_all(self.definition, employee_values(primaryRole='emt'))
        assert list(errors) == [
            'medicalLicense.licenseNumber', 'medicalLicense.issuingState', 'medicalLicense.expiryDate',
        ]

    def test_expired_license(self):
        errors = validate_all(self.definition, employee_values(**{'driverLicense.expiryDate': '2025-05-31'}))
        assert errors == {'driverLicense.expiryDate': "Driver license has expired"}

    def test_certificate_file_type(self):
        values = employee_values(**{'cpr.file': Attachment('cpr.docx', 100)})
        errors = validate_all(self.definition, values)
        assert list(errors) == ['cpr.file']

    def test_invalid_email(self):
        errors = validate_all(self.definition, employee_values(email='sam@'))
        assert errors == {'email': "Invalid email address"}


class TestVehicleWizard:
    """Vehicle specific rules"""

    def setup_method(self):
        self.definition = get_wizard_definition('vehicle')

    def test_year_upper_bound_follows_today(self):
        assert validate_all(self.definition, vehicle_values(year=TODAY.year + 1)) == {}
        errors = validate_all(self.definition, vehicle_values(year=TODAY.year + 2))
        assert errors == {'year': "Invalid year"}

    def test_documents(self):
        values = vehicle_values(documents=[
            {'fileName': 'Registration 2025', 'fileType': 'Registration', 'expiryDate': '2026-01-01'},
            {'fileName': 'Insurance', 'fileType': 'Unknown'},
        ])
        errors = validate_all(self.definition, values)
        assert errors == {'documents': "Document 2: File Type is required"}

    def test_crew_members_unique(self):
        errors = validate_all(self.definition, vehicle_values(crewMembers=['emp-1', 'emp-1']))
        assert errors == {'crewMembers': "A crew member can only be assigned once"}

    def test_password_length(self):
        errors = validate_all(self.definition, vehicle_values(password='short'))
        assert errors == {'password': "Password must be at least 8 characters"}
