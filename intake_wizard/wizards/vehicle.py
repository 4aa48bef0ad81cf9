"""
Fleet vehicle registration wizard
"""

from enum import Enum

from wtforms import ValidationError

from ..forms.schema import Attachment, FieldKind, FieldSchema, FieldSpec, StepDefinition, WizardDefinition, is_blank
from ..forms.validation import parse_date


class VehicleField(str, Enum):
    VEHICLE_ID = "vehicleId"
    VEHICLE_CLASS = "vehicleClass"
    MAKE = "make"
    MODEL = "model"
    YEAR = "year"
    VIN = "vin"
    PLATE_NUMBER = "plateNumber"
    BASE_LOCATION = "baseLocation"
    SEATING_CAPACITY = "seatingCapacity"
    BARIATRIC_CAPACITY = "bariatricCapacity"
    ACTIVE_STATUS = "activeStatus"
    INSURANCE_EXPIRY_DATE = "insuranceExpiryDate"
    REGISTRATION_EXPIRY_DATE = "registrationExpiryDate"
    HAS_LIFT_OR_RAMP = "hasLiftOrRamp"
    ADA_COMPLIANT = "adaCompliant"
    NOTES = "notes"

    DOCUMENTS = "documents"

    STRETCHER = "stretcher"
    AED = "aed"
    SUCTION_UNIT = "suctionUnit"
    OXYGEN_SYSTEM = "oxygenSystem"
    FIRST_AID_KIT = "firstAidKit"
    IMMOBILIZATION_EQUIPMENT = "immobilizationEquipment"
    OTHER_EQUIPMENT = "otherEquipment"

    CREW_MEMBERS = "crewMembers"

    USERNAME = "username"
    PASSWORD = "password"


F = VehicleField

VEHICLE_CLASSES = ('Type II Ambulance', 'Type I Ambulance', 'BLS', 'WAV')
BASE_LOCATIONS = ('Station Alpha', 'Station Beta', 'Station Gamma')
DOCUMENT_FILE_TYPES = ('Registration', 'Insurance', 'Inspection', 'Permit', 'Other')
VIN_PATTERN = r'^[A-HJ-NPR-Z0-9]{17}$'


def vehicle_documents(value):
    """Each document needs a name and a known type"""
    for index, document in enumerate(value, start=1):
        if not isinstance(document, dict):
            raise ValidationError(f"Document {index} is invalid")
        if is_blank(document.get('fileName')):
            raise ValidationError(f"Document {index}: File Name is required")
        if document.get('fileType') not in DOCUMENT_FILE_TYPES:
            raise ValidationError(f"Document {index}: File Type is required")
        if not is_blank(document.get('expiryDate')) and parse_date(document['expiryDate']) is None:
            raise ValidationError(f"Document {index}: expiry date must be a valid date")
        if document.get('file') is not None and not isinstance(document['file'], Attachment):
            raise ValidationError(f"Document {index}: file must be an uploaded file")


def crew_member_ids(value):
    if any(not isinstance(member, str) or is_blank(member) for member in value):
        raise ValidationError("Crew members must be employee identifiers")
    if len(set(value)) != len(value):
        raise ValidationError("A crew member can only be assigned once")


def _equipment(name, label):
    return FieldSpec(name, label, FieldKind.BOOLEAN, default=False)


schema = FieldSchema(
    fields=[
        FieldSpec(F.VEHICLE_ID, "Vehicle ID", required=True, max_length=50),
        FieldSpec(F.VEHICLE_CLASS, "Vehicle Class", FieldKind.CHOICE, required=True,
                  choices=VEHICLE_CLASSES),
        FieldSpec(F.MAKE, "Make", required=True, max_length=50),
        FieldSpec(F.MODEL, "Model", required=True, max_length=50),
        FieldSpec(F.YEAR, "Year", FieldKind.INTEGER, required=True, min_value=1900,
                  max_value=lambda today: today.year + 1, messages={'range': "Invalid year"}),
        FieldSpec(F.VIN, "VIN", pattern=VIN_PATTERN,
                  messages={'pattern': "VIN must be 17 characters without I, O or Q"}),
        FieldSpec(F.PLATE_NUMBER, "Plate Number", required=True, max_length=20),
        FieldSpec(F.BASE_LOCATION, "Base Location", FieldKind.CHOICE, required=True,
                  choices=BASE_LOCATIONS),
        FieldSpec(F.SEATING_CAPACITY, "Seating capacity", FieldKind.INTEGER, min_value=0, max_value=20),
        FieldSpec(F.BARIATRIC_CAPACITY, "Bariatric capacity", FieldKind.INTEGER, min_value=0, max_value=5),
        FieldSpec(F.ACTIVE_STATUS, "Active", FieldKind.BOOLEAN, default=True),
        FieldSpec(F.INSURANCE_EXPIRY_DATE, "Insurance expiry date", FieldKind.DATE),
        FieldSpec(F.REGISTRATION_EXPIRY_DATE, "Registration expiry date", FieldKind.DATE),
        FieldSpec(F.HAS_LIFT_OR_RAMP, "Has lift or ramp", FieldKind.BOOLEAN, default=False),
        FieldSpec(F.ADA_COMPLIANT, "ADA compliant", FieldKind.BOOLEAN, default=False),
        FieldSpec(F.NOTES, "Notes", FieldKind.TEXT, max_length=2000),

        FieldSpec(F.DOCUMENTS, "Documents", FieldKind.LIST, validators=[vehicle_documents]),

        _equipment(F.STRETCHER, "Stretcher"),
        _equipment(F.AED, "AED"),
        _equipment(F.SUCTION_UNIT, "Suction unit"),
        _equipment(F.OXYGEN_SYSTEM, "Oxygen system"),
        _equipment(F.FIRST_AID_KIT, "First aid kit"),
        _equipment(F.IMMOBILIZATION_EQUIPMENT, "Immobilization equipment"),
        FieldSpec(F.OTHER_EQUIPMENT, "Other equipment", FieldKind.TEXT, max_length=500),

        FieldSpec(F.CREW_MEMBERS, "Crew members", FieldKind.LIST, validators=[crew_member_ids]),

        FieldSpec(F.USERNAME, "Username", required=True, max_length=50),
        FieldSpec(F.PASSWORD, "Password", required=True, min_length=8, max_length=128),
    ],
)

steps = [
    StepDefinition('basic', 1, "Basic Information", [
        F.VEHICLE_ID, F.VEHICLE_CLASS, F.MAKE, F.MODEL, F.YEAR, F.VIN, F.PLATE_NUMBER,
        F.BASE_LOCATION, F.SEATING_CAPACITY, F.BARIATRIC_CAPACITY, F.ACTIVE_STATUS,
        F.INSURANCE_EXPIRY_DATE, F.REGISTRATION_EXPIRY_DATE, F.HAS_LIFT_OR_RAMP,
        F.ADA_COMPLIANT, F.NOTES,
    ], icon='fa-ambulance'),
    StepDefinition('documents', 2, "Vehicle Documents", [F.DOCUMENTS], icon='fa-file-upload'),
    StepDefinition('equipment', 3, "Medical Equipment", [
        F.STRETCHER, F.AED, F.SUCTION_UNIT, F.OXYGEN_SYSTEM, F.FIRST_AID_KIT,
        F.IMMOBILIZATION_EQUIPMENT, F.OTHER_EQUIPMENT,
    ], icon='fa-medkit'),
    StepDefinition('crew', 4, "Assign Crew Members", [F.CREW_MEMBERS], icon='fa-users'),
    StepDefinition('credentials', 5, "Vehicle Credentials", [F.USERNAME, F.PASSWORD], icon='fa-key'),
]

vehicle_wizard = WizardDefinition(
    key='vehicle',
    title="Add Vehicle",
    schema=schema,
    steps=steps,
    draft_key='vehicle_form_draft',
    description="Register a fleet vehicle with documents, equipment and crew",
)
