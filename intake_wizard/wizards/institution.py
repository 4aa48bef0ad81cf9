"""
Institution onboarding wizard
"""

from enum import Enum

from wtforms import ValidationError

from ..forms.schema import FieldKind, FieldSchema, FieldSpec, Refinement, StepDefinition, WizardDefinition
from .common import PHONE_PATTERN


class InstitutionField(str, Enum):
    INSTITUTION_NAME = "institutionName"
    INSTITUTION_TYPE = "institutionType"
    COMMERCIAL_REGISTRATION = "commercialRegistration"
    TAX_NUMBER = "taxNumber"
    ESTABLISHMENT_DATE = "establishmentDate"
    GOVERNORATE = "governorate"
    CITY = "city"
    FULL_ADDRESS = "fullAddress"
    PHONE_NUMBER = "phoneNumber"
    EMAIL = "email"
    WEBSITE = "website"
    GENERAL_MANAGER_NAME = "generalManagerName"
    GENERAL_MANAGER_PHONE = "generalManagerPhone"
    GENERAL_MANAGER_EMAIL = "generalManagerEmail"
    CONTACT_PERSON_NAME = "contactPersonName"
    CONTACT_PERSON_PHONE = "contactPersonPhone"
    CONTACT_PERSON_EMAIL = "contactPersonEmail"
    FAX = "fax"
    LATITUDE = "latitude"
    LONGITUDE = "longitude"

    SERVICES = "services"
    SERVICE_CONFIGURATIONS = "serviceConfigurations"


F = InstitutionField

INSTITUTION_TYPES = ('Hospital', 'Care Home', 'Government', 'Clinic', 'Medical Center', 'Other')
SERVICES = ('Ambulatory', 'Wheelchair', 'Stretcher', 'BLS', 'ALS', 'ICU')
GOVERNORATES = (
    'Cairo', 'Giza', 'Alexandria', 'Qalyubia', 'Dakahlia', 'Sharqia', 'Monufia', 'Gharbia',
    'Kafr El Sheikh', 'Beheira', 'Ismailia', 'Port Said', 'Suez', 'North Sinai', 'South Sinai',
    'Damietta', 'Aswan', 'Luxor', 'Red Sea', 'New Valley', 'Matruh', 'Qena', 'Sohag', 'Assiut',
    'Beni Suef', 'Faiyum', 'Minya',
)

PHONE_MESSAGES = {'pattern': "Please enter a valid phone number"}


def service_configuration_shape(value):
    """Each configured service maps to ``{"rateCardConfirmed": bool}``"""
    for service, configuration in value.items():
        if service not in SERVICES:
            raise ValidationError(f"Unknown service '{service}' in service configurations")
        if not isinstance(configuration, dict) or \
                not isinstance(configuration.get('rateCardConfirmed'), bool):
            raise ValidationError(f"Service configuration for {service} is invalid")


def _rate_cards_confirmed(values):
    services = values.get(F.SERVICES.value)
    if not isinstance(services, (list, tuple)):
        return True
    configurations = values.get(F.SERVICE_CONFIGURATIONS.value)
    if not isinstance(configurations, dict):
        configurations = {}
    for service in services:
        if not isinstance(service, str):
            continue
        configuration = configurations.get(service)
        if not isinstance(configuration, dict) or configuration.get('rateCardConfirmed') is not True:
            return False
    return True


schema = FieldSchema(
    fields=[
        FieldSpec(F.INSTITUTION_NAME, "Institution name", required=True, min_length=2, max_length=200),
        FieldSpec(F.INSTITUTION_TYPE, "Institution type", FieldKind.CHOICE, required=True,
                  choices=INSTITUTION_TYPES),
        FieldSpec(F.COMMERCIAL_REGISTRATION, "Commercial Registration / National ID", required=True,
                  max_length=50),
        FieldSpec(F.TAX_NUMBER, "Tax Number", max_length=50),
        FieldSpec(F.ESTABLISHMENT_DATE, "Establishment date", FieldKind.DATE),
        FieldSpec(F.GOVERNORATE, "Governorate", FieldKind.CHOICE, required=True, choices=GOVERNORATES),
        FieldSpec(F.CITY, "City", required=True, min_length=2, max_length=100),
        FieldSpec(F.FULL_ADDRESS, "Full address", FieldKind.TEXT, required=True,
                  min_length=10, max_length=500),
        FieldSpec(F.PHONE_NUMBER, "Phone number", required=True, pattern=PHONE_PATTERN,
                  messages=PHONE_MESSAGES),
        FieldSpec(F.EMAIL, "Email", FieldKind.EMAIL, required=True),
        FieldSpec(F.WEBSITE, "Website", FieldKind.URL,
                  messages={'url': "Please enter a valid website URL"}),
        FieldSpec(F.GENERAL_MANAGER_NAME, "General Manager name", required=True,
                  min_length=2, max_length=100),
        FieldSpec(F.GENERAL_MANAGER_PHONE, "General Manager phone", required=True,
                  pattern=PHONE_PATTERN, messages=PHONE_MESSAGES),
        FieldSpec(F.GENERAL_MANAGER_EMAIL, "General Manager email", FieldKind.EMAIL),
        FieldSpec(F.CONTACT_PERSON_NAME, "Contact Person name", max_length=100),
        FieldSpec(F.CONTACT_PERSON_PHONE, "Contact Person phone", pattern=PHONE_PATTERN,
                  messages=PHONE_MESSAGES),
        FieldSpec(F.CONTACT_PERSON_EMAIL, "Contact Person email", FieldKind.EMAIL),
        FieldSpec(F.FAX, "Fax", pattern=PHONE_PATTERN,
                  messages={'pattern': "Please enter a valid fax number"}),
        FieldSpec(F.LATITUDE, "Latitude", FieldKind.NUMBER, min_value=-90, max_value=90),
        FieldSpec(F.LONGITUDE, "Longitude", FieldKind.NUMBER, min_value=-180, max_value=180),

        FieldSpec(F.SERVICES, "Services", FieldKind.MULTI_CHOICE, required=True, choices=SERVICES,
                  min_items=1,
                  messages={'required': "At least one service must be selected",
                            'min_items': "At least one service must be selected"}),
        FieldSpec(F.SERVICE_CONFIGURATIONS, "Service configurations", FieldKind.MAPPING,
                  validators=[service_configuration_shape]),
    ],
    refinements=[
        Refinement(
            trigger=[F.SERVICES],
            check=_rate_cards_confirmed,
            message="All selected services must have confirmed rate cards",
            attach_to=F.SERVICE_CONFIGURATIONS,
            name="rate_cards_confirmed",
        ),
    ],
)

steps = [
    StepDefinition('basic', 1, "Basic Information", [
        F.INSTITUTION_NAME, F.INSTITUTION_TYPE, F.COMMERCIAL_REGISTRATION, F.TAX_NUMBER,
        F.ESTABLISHMENT_DATE, F.GOVERNORATE, F.CITY, F.FULL_ADDRESS,
        F.PHONE_NUMBER, F.EMAIL, F.WEBSITE,
        F.GENERAL_MANAGER_NAME, F.GENERAL_MANAGER_PHONE, F.GENERAL_MANAGER_EMAIL,
        F.CONTACT_PERSON_NAME, F.CONTACT_PERSON_PHONE, F.CONTACT_PERSON_EMAIL, F.FAX,
        F.LATITUDE, F.LONGITUDE,
    ], icon='fa-hospital'),
    StepDefinition('contract', 2, "Contract Details", [
        F.SERVICES, F.SERVICE_CONFIGURATIONS,
    ], icon='fa-file-contract'),
]

institution_wizard = WizardDefinition(
    key='institution',
    title="Add Institution",
    schema=schema,
    steps=steps,
    draft_key='institution_form_draft',
    description="Register a client institution and its contracted services",
)
