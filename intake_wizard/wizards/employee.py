"""
Employee full registration wizard

The medical license step is only part of the run when the primary role is
EMT. Grouped answers use dotted field names (``driverLicense.number``) and
are nested again in the submission payload.
"""

from enum import Enum

from ..forms.schema import FieldKind, FieldSchema, FieldSpec, StepDefinition, WizardDefinition
from .common import DOCUMENT_TYPES, PHONE_PATTERN, max_upload_size


class EmployeeField(str, Enum):
    PRIMARY_ROLE = "primaryRole"

    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"
    PHONE = "phone"
    HOMEBASE = "homebase"
    SHIFT_AVAILABILITY_NOTES = "shiftAvailabilityNotes"

    DRIVER_LICENSE_NUMBER = "driverLicense.number"
    DRIVER_LICENSE_STATE = "driverLicense.state"
    DRIVER_LICENSE_EXPIRY = "driverLicense.expiryDate"
    EVOC_NUMBER = "evocCertification.certificationNumber"
    EVOC_EXPIRY = "evocCertification.expiryDate"
    EVOC_FILE = "evocCertification.file"

    MEDICAL_LICENSE_NUMBER = "medicalLicense.licenseNumber"
    MEDICAL_LICENSE_STATE = "medicalLicense.issuingState"
    MEDICAL_LICENSE_EXPIRY = "medicalLicense.expiryDate"
    MEDICAL_LICENSE_FILE = "medicalLicense.licenseFile"

    CPR_EXPIRY = "cpr.expiryDate"
    CPR_FILE = "cpr.file"
    ACLS_EXPIRY = "acls.expiryDate"
    ACLS_FILE = "acls.file"
    PALS_EXPIRY = "pals.expiryDate"
    PALS_FILE = "pals.file"
    HIPAA_EXPIRY = "hipaa.expiryDate"
    HIPAA_FILE = "hipaa.file"
    PATIENT_HANDLING_EXPIRY = "patientHandling.expiryDate"
    PATIENT_HANDLING_FILE = "patientHandling.file"
    WHEELCHAIR_SECUREMENT_EXPIRY = "wheelchairSecurement.expiryDate"
    WHEELCHAIR_SECUREMENT_FILE = "wheelchairSecurement.file"

    BACKGROUND_CHECK_DATE = "backgroundCheck.date"
    BACKGROUND_CHECK_REPORT = "backgroundCheck.report"
    DRUG_SCREENING_DATE = "drugScreening.date"
    DRUG_SCREENING_REPORT = "drugScreening.report"
    IMMUNIZATION_ON_FILE = "immunization.onFile"
    IMMUNIZATION_DOCUMENTS = "immunization.documents"

    HR_STATUS = "hrStatus"
    EMPLOYMENT_TYPE = "employmentType"
    HIRE_DATE = "hireDate"
    ADMINISTRATIVE_NOTES = "administrativeNotes"
    ADDITIONAL_INFORMATION = "additionalInformation"


F = EmployeeField

ROLES = ('driver', 'emt', 'paramedic', 'rn', 'dispatcher', 'supervisor')
HR_STATUSES = ('active', 'pending', 'on-leave', 'suspended')
EMPLOYMENT_TYPES = ('full-time', 'part-time', 'contract', 'temporary')

CERTIFICATIONS = (
    ('cpr', "CPR"),
    ('acls', "ACLS"),
    ('pals', "PALS"),
    ('hipaa', "HIPAA"),
    ('patientHandling', "Patient Handling"),
    ('wheelchairSecurement', "Wheelchair Securement"),
)


def _text(name, label, **kwargs):
    return FieldSpec(name, label, required=True, max_length=kwargs.pop('max_length', 100), **kwargs)


def _expiry(name, label):
    return FieldSpec(name, label, FieldKind.DATE, required=True, allow_past=False,
                     messages={'past': f"{label.replace(' expiry date', '')} has expired"})


def _document(name, label):
    return FieldSpec(name, label, FieldKind.ATTACHMENT, accept=DOCUMENT_TYPES,
                     validators=[max_upload_size])


schema = FieldSchema(
    fields=[
        FieldSpec(F.PRIMARY_ROLE, "Primary role", FieldKind.CHOICE, required=True, choices=ROLES),

        _text(F.FIRST_NAME, "First name"),
        _text(F.LAST_NAME, "Last name"),
        FieldSpec(F.EMAIL, "Email", FieldKind.EMAIL, required=True,
                  messages={'email': "Invalid email address"}),
        FieldSpec(F.PHONE, "Phone number", required=True, pattern=PHONE_PATTERN,
                  messages={'pattern': "Please enter a valid phone number"}),
        _text(F.HOMEBASE, "Homebase/Work location"),
        FieldSpec(F.SHIFT_AVAILABILITY_NOTES, "Shift availability notes", FieldKind.TEXT, max_length=1000),

        _text(F.DRIVER_LICENSE_NUMBER, "License number", max_length=50),
        _text(F.DRIVER_LICENSE_STATE, "State", max_length=50),
        _expiry(F.DRIVER_LICENSE_EXPIRY, "Driver license expiry date"),
        _text(F.EVOC_NUMBER, "Certification number", max_length=50),
        _expiry(F.EVOC_EXPIRY, "EVOC expiry date"),
        _document(F.EVOC_FILE, "EVOC certificate"),

        _text(F.MEDICAL_LICENSE_NUMBER, "Medical license number", max_length=50),
        _text(F.MEDICAL_LICENSE_STATE, "Issuing state", max_length=50),
        _expiry(F.MEDICAL_LICENSE_EXPIRY, "Medical license expiry date"),
        _document(F.MEDICAL_LICENSE_FILE, "Medical license file"),
    ] + [
        spec
        for prefix, label in CERTIFICATIONS
        for spec in (
            _expiry(f"{prefix}.expiryDate", f"{label} expiry date"),
            _document(f"{prefix}.file", f"{label} certificate"),
        )
    ] + [
        FieldSpec(F.BACKGROUND_CHECK_DATE, "Background check date", FieldKind.DATE, required=True),
        _document(F.BACKGROUND_CHECK_REPORT, "Background check report"),
        FieldSpec(F.DRUG_SCREENING_DATE, "Drug screening date", FieldKind.DATE, required=True),
        _document(F.DRUG_SCREENING_REPORT, "Drug screening report"),
        FieldSpec(F.IMMUNIZATION_ON_FILE, "Immunization records on file", FieldKind.BOOLEAN),
        FieldSpec(F.IMMUNIZATION_DOCUMENTS, "Immunization documents", FieldKind.ATTACHMENT_LIST,
                  accept=DOCUMENT_TYPES, validators=[max_upload_size]),

        FieldSpec(F.HR_STATUS, "HR status", FieldKind.CHOICE, required=True, choices=HR_STATUSES),
        FieldSpec(F.EMPLOYMENT_TYPE, "Employment type", FieldKind.CHOICE, required=True,
                  choices=EMPLOYMENT_TYPES),
        FieldSpec(F.HIRE_DATE, "Hire date", FieldKind.DATE, required=True),
        FieldSpec(F.ADMINISTRATIVE_NOTES, "Administrative notes", FieldKind.TEXT, max_length=2000),
        FieldSpec(F.ADDITIONAL_INFORMATION, "Additional information", FieldKind.TEXT, max_length=2000),
    ],
)

steps = [
    StepDefinition('role', 1, "Role", [F.PRIMARY_ROLE], icon='fa-id-badge'),
    StepDefinition('personal', 2, "Personal Info", [
        F.FIRST_NAME, F.LAST_NAME, F.EMAIL, F.PHONE, F.HOMEBASE, F.SHIFT_AVAILABILITY_NOTES,
    ], icon='fa-user'),
    StepDefinition('driver_evoc', 3, "Driver & EVOC", [
        F.DRIVER_LICENSE_NUMBER, F.DRIVER_LICENSE_STATE, F.DRIVER_LICENSE_EXPIRY,
        F.EVOC_NUMBER, F.EVOC_EXPIRY, F.EVOC_FILE,
    ], icon='fa-car'),
    StepDefinition('medical_license', 4, "Medical License", [
        F.MEDICAL_LICENSE_NUMBER, F.MEDICAL_LICENSE_STATE, F.MEDICAL_LICENSE_EXPIRY,
        F.MEDICAL_LICENSE_FILE,
    ], include_when={F.PRIMARY_ROLE: 'emt'}, icon='fa-notes-medical',
        description="Required for EMTs"),
    StepDefinition('certifications', 5, "Certifications", [
        name for prefix, _ in CERTIFICATIONS for name in (f"{prefix}.expiryDate", f"{prefix}.file")
    ], icon='fa-certificate'),
    StepDefinition('compliance', 6, "Compliance", [
        F.BACKGROUND_CHECK_DATE, F.BACKGROUND_CHECK_REPORT, F.DRUG_SCREENING_DATE,
        F.DRUG_SCREENING_REPORT, F.IMMUNIZATION_ON_FILE, F.IMMUNIZATION_DOCUMENTS,
    ], icon='fa-clipboard-check'),
    StepDefinition('hr_notes', 7, "HR & Notes", [
        F.HR_STATUS, F.EMPLOYMENT_TYPE, F.HIRE_DATE, F.ADMINISTRATIVE_NOTES, F.ADDITIONAL_INFORMATION,
    ], icon='fa-briefcase'),
    StepDefinition('summary', 8, "Summary", [], icon='fa-check',
                   description="Review all answers before submitting"),
]

employee_wizard = WizardDefinition(
    key='employee',
    title="Full Employee Registration",
    schema=schema,
    steps=steps,
    draft_key='employee_full_registration_draft',
    description="Register an employee with licenses, certifications and compliance records",
)
