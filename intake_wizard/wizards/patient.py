"""
Patient onboarding wizard
"""

from enum import Enum

from ..forms.schema import (
    FieldKind,
    FieldSchema,
    FieldSpec,
    Refinement,
    StepDefinition,
    WizardDefinition,
    is_blank,
)
from ..forms.validation import parse_date
from .common import NAME_PATTERN, PHONE_PATTERN, YES_NO


class PatientField(str, Enum):
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    DATE_OF_BIRTH = "dateOfBirth"
    GENDER = "gender"
    MEDICAL_RECORD_NUMBER = "medicalRecordNumber"

    MOBILITY_STATUS = "mobilityStatus"
    BASELINE_O2_LEVEL = "baselineO2Level"
    HEIGHT = "height"
    WEIGHT = "weight"
    CLINICAL_FLAGS = "clinicalFlags"

    PAYER_NAME = "payerName"
    PAYER_MEMBER_ID = "payerMemberId"
    PAYER_PLAN = "payerPlan"
    PRIOR_AUTHORIZATION = "priorAuthorization"
    AUTHORIZATION_NUMBER = "authorizationNumber"
    AUTHORIZATION_START_DATE = "authorizationStartDate"
    AUTHORIZATION_END_DATE = "authorizationEndDate"

    ACCESSIBILITY_CONSTRAINTS = "accessibilityConstraints"
    EQUIPMENT_NEEDED = "equipmentNeeded"
    INTERPRETER_REQUIRED = "interpreterRequired"
    PREFERRED_LANGUAGE = "preferredLanguage"
    ESCORT_REQUIRED = "escortRequired"
    COMMUNICATION_IMPAIRMENTS = "communicationImpairments"
    BEHAVIORAL_CONSIDERATIONS = "behavioralConsiderations"

    EMERGENCY_CONTACT_NAME = "emergencyContactName"
    EMERGENCY_CONTACT_PHONE = "emergencyContactPhone"
    CARE_TEAM_CONTACT = "careTeamContact"
    ADDRESS_LINE1 = "addressLine1"
    ADDRESS_LINE2 = "addressLine2"
    CITY = "city"
    STATE = "state"
    POSTAL_CODE = "postalCode"
    CONSENT_ON_FILE = "consentOnFile"
    PHOTO_ID_ON_FILE = "photoIdOnFile"

    ADDITIONAL_NOTES = "additionalNotes"


F = PatientField

GENDERS = ('Male', 'Female', 'Other', 'Prefer not to say')
MOBILITY_STATUSES = ('Ambulatory', 'Wheelchair', 'Stretcher', 'Other')
CLINICAL_FLAGS = ('Isolation', 'Seizure Risk', 'Fall Risk', 'DNR')
ACCESSIBILITY_CONSTRAINTS = (
    'Visual Impairment', 'Hearing Impairment', 'Mobility Impairment', 'Cognitive Impairment', 'Other',
)
EQUIPMENT = ('Oxygen Tank', 'Wheelchair', 'Stretcher', 'Ventilator', 'IV Pump', 'Other')


def _person_name(name, label):
    return FieldSpec(
        name, label, required=True, min_length=2, max_length=50, pattern=NAME_PATTERN,
        messages={'pattern': f"{label} can only contain letters, spaces, hyphens, and apostrophes"},
    )


def _authorization_complete(values):
    if values.get(F.PRIOR_AUTHORIZATION.value) != 'Yes':
        return True
    return not any(is_blank(values.get(name.value)) for name in (
        F.AUTHORIZATION_NUMBER, F.AUTHORIZATION_START_DATE, F.AUTHORIZATION_END_DATE,
    ))


def _authorization_dates_ordered(values):
    if values.get(F.PRIOR_AUTHORIZATION.value) != 'Yes':
        return True
    start = parse_date(values.get(F.AUTHORIZATION_START_DATE.value))
    end = parse_date(values.get(F.AUTHORIZATION_END_DATE.value))
    if start is None or end is None:
        return True
    return end >= start


def _interpreter_language_given(values):
    if values.get(F.INTERPRETER_REQUIRED.value) != 'Yes':
        return True
    return not is_blank(values.get(F.PREFERRED_LANGUAGE.value))


schema = FieldSchema(
    fields=[
        _person_name(F.FIRST_NAME, "First name"),
        _person_name(F.LAST_NAME, "Last name"),
        FieldSpec(F.DATE_OF_BIRTH, "Date of birth", FieldKind.DATE, required=True,
                  min_age=0, max_age=120),
        FieldSpec(F.GENDER, "Gender", FieldKind.CHOICE, required=True, choices=GENDERS),
        FieldSpec(F.MEDICAL_RECORD_NUMBER, "Medical Record Number", required=True, max_length=50,
                  pattern=r'^[A-Z0-9-]+$',
                  messages={'pattern': "Medical Record Number can only contain uppercase letters, numbers, and hyphens"}),

        FieldSpec(F.MOBILITY_STATUS, "Mobility status", FieldKind.CHOICE, required=True,
                  choices=MOBILITY_STATUSES),
        FieldSpec(F.BASELINE_O2_LEVEL, "Baseline O2 Level", FieldKind.NUMBER, required=True,
                  min_value=0, max_value=100),
        FieldSpec(F.HEIGHT, "Height", FieldKind.NUMBER, required=True,
                  min_value=0, exclusive_min=True, max_value=300,
                  messages={'range': "Height must be a valid number between 1 and 300 cm"}),
        FieldSpec(F.WEIGHT, "Weight", FieldKind.NUMBER, required=True,
                  min_value=0, exclusive_min=True, max_value=500,
                  messages={'range': "Weight must be a valid number between 1 and 500 kg"}),
        FieldSpec(F.CLINICAL_FLAGS, "Clinical flags", FieldKind.MULTI_CHOICE, choices=CLINICAL_FLAGS),

        FieldSpec(F.PAYER_NAME, "Payer name", required=True, min_length=2, max_length=100),
        FieldSpec(F.PAYER_MEMBER_ID, "Payer Member ID", required=True, max_length=50),
        FieldSpec(F.PAYER_PLAN, "Payer Plan", required=True, max_length=100),
        FieldSpec(F.PRIOR_AUTHORIZATION, "Prior Authorization", FieldKind.CHOICE, required=True,
                  choices=YES_NO),
        FieldSpec(F.AUTHORIZATION_NUMBER, "Authorization number", max_length=50),
        FieldSpec(F.AUTHORIZATION_START_DATE, "Authorization start date", FieldKind.DATE),
        FieldSpec(F.AUTHORIZATION_END_DATE, "Authorization end date", FieldKind.DATE),

        FieldSpec(F.ACCESSIBILITY_CONSTRAINTS, "Accessibility constraints", FieldKind.MULTI_CHOICE,
                  choices=ACCESSIBILITY_CONSTRAINTS),
        FieldSpec(F.EQUIPMENT_NEEDED, "Equipment needed", FieldKind.MULTI_CHOICE, choices=EQUIPMENT),
        FieldSpec(F.INTERPRETER_REQUIRED, "Interpreter Required", FieldKind.CHOICE, required=True,
                  choices=YES_NO),
        FieldSpec(F.PREFERRED_LANGUAGE, "Preferred Language", max_length=100),
        FieldSpec(F.ESCORT_REQUIRED, "Escort Required", FieldKind.CHOICE, required=True, choices=YES_NO),
        FieldSpec(F.COMMUNICATION_IMPAIRMENTS, "Communication Impairments", FieldKind.TEXT, max_length=500),
        FieldSpec(F.BEHAVIORAL_CONSIDERATIONS, "Behavioral Considerations", FieldKind.TEXT, max_length=500),

        FieldSpec(F.EMERGENCY_CONTACT_NAME, "Emergency contact name", required=True,
                  min_length=2, max_length=100),
        FieldSpec(F.EMERGENCY_CONTACT_PHONE, "Emergency contact phone", required=True,
                  pattern=PHONE_PATTERN, messages={'pattern': "Please enter a valid phone number"}),
        FieldSpec(F.CARE_TEAM_CONTACT, "Care Team Contact", max_length=200),
        FieldSpec(F.ADDRESS_LINE1, "Address Line 1", required=True, min_length=5, max_length=200),
        FieldSpec(F.ADDRESS_LINE2, "Address Line 2", max_length=200),
        FieldSpec(F.CITY, "City", required=True, min_length=2, max_length=100),
        FieldSpec(F.STATE, "State", required=True, min_length=2, max_length=100),
        FieldSpec(F.POSTAL_CODE, "Postal code", required=True, min_length=3, max_length=20),
        FieldSpec(F.CONSENT_ON_FILE, "Consent on File", FieldKind.BOOLEAN, required=True),
        FieldSpec(F.PHOTO_ID_ON_FILE, "Photo ID on File", FieldKind.BOOLEAN, required=True),

        FieldSpec(F.ADDITIONAL_NOTES, "Additional notes", FieldKind.TEXT, max_length=2000),
    ],
    refinements=[
        Refinement(
            trigger=[F.PRIOR_AUTHORIZATION, F.AUTHORIZATION_START_DATE, F.AUTHORIZATION_END_DATE],
            check=_authorization_complete,
            message="Authorization number and dates are required when Prior Authorization is Yes",
            attach_to=F.AUTHORIZATION_NUMBER,
            name="authorization_complete",
        ),
        Refinement(
            trigger=[F.PRIOR_AUTHORIZATION, F.AUTHORIZATION_START_DATE],
            check=_authorization_dates_ordered,
            message="Authorization end date must be after start date",
            attach_to=F.AUTHORIZATION_END_DATE,
            name="authorization_dates_ordered",
        ),
        Refinement(
            trigger=[F.INTERPRETER_REQUIRED],
            check=_interpreter_language_given,
            message="Preferred Language is required when Interpreter Required is Yes",
            attach_to=F.PREFERRED_LANGUAGE,
            name="interpreter_language",
        ),
    ],
)

steps = [
    StepDefinition('personal', 1, "Personal Information", [
        F.FIRST_NAME, F.LAST_NAME, F.DATE_OF_BIRTH, F.GENDER, F.MEDICAL_RECORD_NUMBER,
    ], icon='fa-user'),
    StepDefinition('medical', 2, "Medical Details", [
        F.MOBILITY_STATUS, F.BASELINE_O2_LEVEL, F.HEIGHT, F.WEIGHT, F.CLINICAL_FLAGS,
    ], icon='fa-heartbeat'),
    StepDefinition('insurance', 3, "Insurance Information", [
        F.PAYER_NAME, F.PAYER_MEMBER_ID, F.PAYER_PLAN, F.PRIOR_AUTHORIZATION,
        F.AUTHORIZATION_NUMBER, F.AUTHORIZATION_START_DATE, F.AUTHORIZATION_END_DATE,
    ], icon='fa-id-card'),
    StepDefinition('accessibility', 4, "Accessibility & Equipment", [
        F.ACCESSIBILITY_CONSTRAINTS, F.EQUIPMENT_NEEDED, F.INTERPRETER_REQUIRED,
        F.PREFERRED_LANGUAGE, F.ESCORT_REQUIRED, F.COMMUNICATION_IMPAIRMENTS,
        F.BEHAVIORAL_CONSIDERATIONS,
    ], icon='fa-wheelchair'),
    StepDefinition('contact', 5, "Contact & Address", [
        F.EMERGENCY_CONTACT_NAME, F.EMERGENCY_CONTACT_PHONE, F.CARE_TEAM_CONTACT,
        F.ADDRESS_LINE1, F.ADDRESS_LINE2, F.CITY, F.STATE, F.POSTAL_CODE,
        F.CONSENT_ON_FILE, F.PHOTO_ID_ON_FILE,
    ], icon='fa-address-book'),
    StepDefinition('summary', 6, "Summary & Notes", [F.ADDITIONAL_NOTES], icon='fa-check'),
]

patient_wizard = WizardDefinition(
    key='patient',
    title="Add Patient",
    schema=schema,
    steps=steps,
    draft_key='patient_form_draft',
    description="Register a patient with medical, insurance and accessibility details",
)
