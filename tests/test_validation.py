"""
Tests for the validation engine
"""

from datetime import date, time
from unittest.mock import MagicMock

import pytest
from wtforms import ValidationError

from intake_wizard.forms.schema import Attachment, FieldKind, FieldSchema, FieldSpec, Refinement
from intake_wizard.forms.validation import ValidationEngine, parse_date, parse_number, parse_time
from intake_wizard.utils.error_handling import SchemaError
from intake_wizard.wizards.patient import patient_wizard

from tests.wizard_data import TODAY, patient_values


def no_spaces(value):
    if ' ' in value:
        raise ValidationError("Code must not contain spaces")


class TestParsers:
    """Test value parsers"""

    def test_parse_date(self):
        assert parse_date('2025-06-01') == date(2025, 6, 1)
        assert parse_date(date(2025, 6, 1)) == date(2025, 6, 1)
        assert parse_date('not a date') is None
        assert parse_date('') is None

    def test_parse_time(self):
        assert parse_time('09:30') == time(9, 30)
        assert parse_time('25:00') is None

    def test_parse_number(self):
        assert parse_number('12.5') == 12.5
        assert parse_number(3) == 3.0
        assert parse_number(True) is None
        assert parse_number('abc') is None


class TestFieldRules:
    """Test per-field rules"""

    def setup_method(self):
        self.schema = FieldSchema([
            FieldSpec('name', "Name", required=True, min_length=2, max_length=5),
            FieldSpec('code', "Code", pattern=r'^[A-Z]+$', validators=[no_spaces]),
            FieldSpec('email', "Email", FieldKind.EMAIL),
            FieldSpec('site', "Site", FieldKind.URL),
            FieldSpec('height', "Height", FieldKind.NUMBER, min_value=0, exclusive_min=True, max_value=300),
            FieldSpec('count', "Count", FieldKind.INTEGER, min_value=1),
            FieldSpec('year', "Year", FieldKind.INTEGER, min_value=1900,
                      max_value=lambda today: today.year + 1),
            FieldSpec('born', "Date of birth", FieldKind.DATE, min_age=0, max_age=120),
            FieldSpec('expires', "Expiry", FieldKind.DATE, allow_past=False),
            FieldSpec('at', "At", FieldKind.TIME),
            FieldSpec('color', "Color", FieldKind.CHOICE, choices=('red', 'blue')),
            FieldSpec('tags', "Tags", FieldKind.MULTI_CHOICE, choices=('a', 'b'), min_items=1,
                      required=True, messages={'required': "Pick a tag"}),
            FieldSpec('agree', "Agree", FieldKind.BOOLEAN, required=True),
            FieldSpec('doc', "Document", FieldKind.ATTACHMENT, accept=('.pdf',)),
            FieldSpec('docs', "Documents", FieldKind.ATTACHMENT_LIST, accept=('.pdf',)),
            FieldSpec('config', "Config", FieldKind.MAPPING),
        ])
        self.engine = ValidationEngine(self.schema, today=TODAY)

    def check(self, name, value):
        return self.engine.validate_field(self.schema[name], {name: value})

    def test_required(self):
        assert self.check('name', '') == "Name is required"
        assert self.check('name', None) == "Name is required"
        assert self.check('code', '') is None

    def test_message_override(self):
        assert self.check('tags', []) == "Pick a tag"

    def test_lengths(self):
        assert self.check('name', 'A') == "Name must be at least 2 characters"
        assert self.check('name', 'Abcdef') == "Name must not exceed 5 characters"
        assert self.check('name', 'Ann') is None

    def test_pattern_and_custom_validator(self):
        assert self.check('code', 'abc') == "Code format is invalid"
        assert self.check('code', 'ABC') is None
        schema = FieldSchema([FieldSpec('code', "Code", validators=[no_spaces])])
        engine = ValidationEngine(schema, today=TODAY)
        assert engine.validate(['code'], {'code': 'A B'}) == {'code': "Code must not contain spaces"}

    def test_email(self):
        assert self.check('email', 'not-an-email') == "Please enter a valid email address"
        assert self.check('email', 'nurse@hospital.org') is None

    def test_url(self):
        assert self.check('site', 'hospital.org') == "Please enter a valid URL"
        assert self.check('site', 'https://hospital.org') is None

    def test_number_range(self):
        assert self.check('height', 0) == "Height must be between 0 and 300"
        assert self.check('height', '170') is None
        assert self.check('height', 'tall') == "Height must be a number"

    def test_integer(self):
        assert self.check('count', 1.5) == "Count must be a whole number"
        assert self.check('count', 0) == "Count must be at least 1"
        assert self.check('count', 2) is None

    def test_callable_bounds_use_validation_date(self):
        assert self.check('year', 2026) is None
        assert self.check('year', 2027) == "Year must be between 1900 and 2026"

    def test_age(self):
        assert self.check('born', '1980-01-01') is None
        assert self.check('born', '2030-01-01') == "Please enter a valid date of birth"
        assert self.check('born', '1850-01-01') == "Please enter a valid date of birth"
        assert self.check('born', 'yesterday') == "Date of birth must be a valid date"

    def test_past_dates(self):
        assert self.check('expires', '2025-05-31') == "Expiry must not be in the past"
        assert self.check('expires', TODAY.isoformat()) is None

    def test_time(self):
        assert self.check('at', '14:45') is None
        assert self.check('at', 'noon') == "At must be a valid time"

    def test_choices(self):
        assert self.check('color', 'green') == "Color must be one of: red, blue"
        assert self.check('tags', ['a', 'c']) == "Tags must be one of: a, b"
        assert self.check('tags', ['a']) is None

    def test_required_boolean_must_be_true(self):
        assert self.check('agree', False) == "Agree is required"
        assert self.check('agree', 'yes') == "Agree must be yes or no"
        assert self.check('agree', True) is None

    def test_attachments(self):
        assert self.check('doc', 'file.pdf') == "Document must be an uploaded file"
        assert self.check('doc', Attachment('scan.png')) == \
            "Document must be one of the file types: .pdf"
        assert self.check('doc', Attachment('scan.pdf', 10)) is None
        assert self.check('docs', [Attachment('a.pdf'), Attachment('b.doc')]) == \
            "Documents must be one of the file types: .pdf"

    def test_mapping(self):
        assert self.check('config', ['a']) == "Config is invalid"
        assert self.check('config', {'a': 1}) is None

    def test_unknown_field_raises(self):
        with pytest.raises(SchemaError):
            self.engine.validate(['missing'], {})

    def test_errors_follow_field_order(self):
        errors = self.engine.validate(['tags', 'name'], {})
        assert list(errors) == ['tags', 'name']


class TestRefinements:
    """Test cross-field refinements and their visibility"""

    def setup_method(self):
        self.schema = FieldSchema(
            [
                FieldSpec('start', "Start", FieldKind.DATE),
                FieldSpec('end', "End", FieldKind.DATE, allow_past=False),
            ],
            refinements=[
                Refinement(
                    trigger=['start'],
                    check=lambda v: parse_date(v.get('end')) is None or
                    parse_date(v.get('start')) is None or
                    parse_date(v['end']) >= parse_date(v['start']),
                    message="End must be after start",
                    attach_to='end',
                ),
            ],
        )
        self.values = {'start': '2025-07-10', 'end': '2025-07-01'}

    def test_reported_when_target_visible(self):
        engine = ValidationEngine(self.schema, today=TODAY)
        assert engine.validate(['start', 'end'], self.values) == {'end': "End must be after start"}

    def test_hidden_target_not_reported_by_default(self):
        engine = ValidationEngine(self.schema, today=TODAY)
        assert engine.validate(['start'], self.values) == {}

    def test_hidden_target_reported_when_enabled(self):
        engine = ValidationEngine(self.schema, today=TODAY, report_hidden_errors=True)
        assert engine.validate(['start'], self.values) == {'end': "End must be after start"}

    def test_field_error_takes_precedence(self):
        engine = ValidationEngine(self.schema, today=TODAY)
        values = {'start': '2025-07-10', 'end': '2025-01-01'}
        assert engine.validate(['start', 'end'], values) == {'end': "End must not be in the past"}

    def test_skipped_when_trigger_field_fails(self):
        check = MagicMock(return_value=False)
        schema = FieldSchema(
            [FieldSpec('start', "Start", FieldKind.DATE), FieldSpec('end', "End", FieldKind.DATE)],
            refinements=[Refinement(trigger=['start'], check=check, message="Bad range", attach_to='end')],
        )
        engine = ValidationEngine(schema, today=TODAY)
        errors = engine.validate(['start', 'end'], {'start': 5, 'end': '2025-07-01'})
        assert list(errors) == ['start']
        check.assert_not_called()

    def test_deterministic(self):
        engine = ValidationEngine(self.schema, today=TODAY)
        first = engine.validate(['start', 'end'], self.values)
        assert engine.validate(['start', 'end'], self.values) == first
        assert engine.is_valid(['start', 'end'], {'start': '2025-07-01', 'end': '2025-07-10'})


class TestPatientRules:
    """Validation scenarios on the patient wizard"""

    def setup_method(self):
        self.engine = ValidationEngine(patient_wizard.schema, today=TODAY)
        self.insurance = patient_wizard.steps.get('insurance').fields

    def test_empty_first_name(self):
        errors = self.engine.validate(['firstName', 'lastName'], {'firstName': '', 'lastName': 'Doe'})
        assert errors == {'firstName': "First name is required"}

    def test_name_pattern(self):
        errors = self.engine.validate(['firstName'], {'firstName': 'J4ne'})
        assert errors['firstName'] == \
            "First name can only contain letters, spaces, hyphens, and apostrophes"

    def test_prior_authorization_needs_number(self):
        values = patient_values(priorAuthorization='Yes', authorizationNumber='')
        errors = self.engine.validate(self.insurance, values)
        assert list(errors) == ['authorizationNumber']
        assert errors['authorizationNumber'] == \
            "Authorization number and dates are required when Prior Authorization is Yes"

    def test_prior_authorization_complete(self):
        values = patient_values(
            priorAuthorization='Yes',
            authorizationNumber='AUTH-889',
            authorizationStartDate='2025-06-01',
            authorizationEndDate='2025-12-31',
        )
        assert self.engine.validate(self.insurance, values) == {}

    def test_authorization_dates_ordered(self):
        values = patient_values(
            priorAuthorization='Yes',
            authorizationNumber='AUTH-889',
            authorizationStartDate='2025-12-31',
            authorizationEndDate='2025-06-01',
        )
        errors = self.engine.validate(self.insurance, values)
        assert errors == {'authorizationEndDate': "Authorization end date must be after start date"}

    def test_authorization_rule_hidden_outside_its_step(self):
        values = patient_values(priorAuthorization='Yes', authorizationNumber='')
        assert self.engine.validate(['priorAuthorization'], values) == {}
