"""
Trip creation wizard

A trip has an outbound leg and, for round trips, a return leg. Each leg has a
pickup and a drop-off location; the return locations and schedule become
required only when the trip mode is "Round Trip".
"""

from datetime import datetime
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
from ..forms.validation import parse_date, parse_time
from .common import SPREADSHEET_TYPES, max_upload_size


class TripField(str, Enum):
    CREATION_METHOD = "creationMethod"
    UPLOADED_FILE = "uploadedFile"
    UPLOADED_FILE_NAME = "uploadedFileName"

    TRIP_MODE = "tripMode"
    TRIP_TIMING = "tripTiming"
    OUTBOUND_PICKUP_DATE = "outboundPickupDate"
    OUTBOUND_PICKUP_TIME = "outboundPickupTime"
    RETURN_PICKUP_DATE = "returnPickupDate"
    RETURN_PICKUP_TIME = "returnPickupTime"

    ORGANIZATION = "organization"
    PATIENT = "patient"
    SERVICE_LEVEL = "serviceLevel"
    LEVEL_OF_CARE = "levelOfCare"
    CREW_CONFIGURATION = "crewConfiguration"
    PRIORITY = "priority"
    EQUIPMENT_PACK = "equipmentPack"

    OUTBOUND_PICKUP_ADDRESS = "outboundPickupAddress"
    OUTBOUND_DROPOFF_ADDRESS = "outboundDropoffAddress"
    RETURN_PICKUP_ADDRESS = "returnPickupAddress"
    RETURN_DROPOFF_ADDRESS = "returnDropoffAddress"
    ESTIMATED_DISTANCE = "estimatedDistance"
    ESTIMATED_DURATION = "estimatedDuration"

    ASSIGNMENT_TYPE = "assignmentType"
    VEHICLE_ID = "vehicleId"
    DRIVER_ID = "driverId"
    PRIMARY_MEDICAL_CREW_ID = "primaryMedicalCrewId"

    BASE_FARE = "baseFare"
    PER_MILE_RATE = "perMileRate"
    STAIR_CARRY_FEE = "stairCarryFee"
    BARIATRIC_SURCHARGE = "bariatricSurcharge"
    WAIT_TIME_CHARGE = "waitTimeCharge"
    AFTER_HOURS_MULTIPLIER = "afterHoursMultiplier"
    HOLIDAY_RATE = "holidayRate"
    CANCELLATION_FEE = "cancellationFee"
    MANUAL_OVERRIDE = "manualOverride"
    ESTIMATED_COST = "estimatedCost"


F = TripField

ROUND_TRIP = 'Round Trip'
ROUND_TRIP_ONLY = {F.TRIP_MODE: ROUND_TRIP}

CREATION_METHODS = ('Single Trip', 'Batch Import')
TRIP_MODES = ('One Way', ROUND_TRIP)
TRIP_TIMINGS = ('Immediate', 'Scheduled')
SERVICE_LEVELS = ('BLS', 'ALS', 'CCT', 'Wheelchair Van')
CREW_CONFIGURATIONS = ('Driver Only', 'Driver + Paramedic', 'Driver + 2 Paramedics')
PRIORITIES = ('Routine', 'Urgent', 'Emergency')
EQUIPMENT_PACK = ('Oxygen Tank', 'Cardiac Monitor', 'IV Pump', 'Wheelchair', 'PPE Kit', 'Stretcher')
ASSIGNMENT_TYPES = ('Automatic Assignment', 'Manual Assignment')

LEGS = (
    ('outboundPickup', "Pickup"),
    ('outboundDropoff', "Drop-off"),
    ('returnPickup', "Return pickup"),
    ('returnDropoff', "Return drop-off"),
)
LEG_DETAILS = ('Latitude', 'Longitude', 'FacilityName', 'WindowStart', 'WindowEnd', 'Instructions')


def leg_fields(prefix):
    return [f"{prefix}Address"] + [f"{prefix}{detail}" for detail in LEG_DETAILS]


def _leg_specs(prefix, label):
    conditional = prefix.startswith('return')
    return [
        FieldSpec(f"{prefix}Address", f"{label} address", FieldKind.TEXT,
                  required=not conditional,
                  required_when=ROUND_TRIP_ONLY if conditional else None,
                  min_length=10, max_length=500,
                  messages={'min_length': f"{label} address is required"}),
        FieldSpec(f"{prefix}Latitude", f"{label} latitude", FieldKind.NUMBER,
                  min_value=-90, max_value=90),
        FieldSpec(f"{prefix}Longitude", f"{label} longitude", FieldKind.NUMBER,
                  min_value=-180, max_value=180),
        FieldSpec(f"{prefix}FacilityName", f"{label} facility name", max_length=200),
        FieldSpec(f"{prefix}WindowStart", f"{label} window start", FieldKind.TIME),
        FieldSpec(f"{prefix}WindowEnd", f"{label} window end", FieldKind.TIME),
        FieldSpec(f"{prefix}Instructions", f"{label} instructions", FieldKind.TEXT, max_length=500),
    ]


def _fee(name, label, default=None):
    return FieldSpec(name, label, FieldKind.NUMBER, min_value=0, default=default,
                     messages={'range': f"{label} must be positive"})


def _window_ordered(prefix):
    def check(values):
        start = parse_time(values.get(f"{prefix}WindowStart"))
        end = parse_time(values.get(f"{prefix}WindowEnd"))
        if start is None or end is None:
            return True
        return end >= start
    return check


def _pickup_moment(values, date_field, time_field):
    day = parse_date(values.get(date_field.value))
    moment = parse_time(values.get(time_field.value))
    if day is None or moment is None:
        return None
    return datetime.combine(day, moment)


def _return_after_outbound(values):
    if values.get(F.TRIP_MODE.value) != ROUND_TRIP:
        return True
    outbound = _pickup_moment(values, F.OUTBOUND_PICKUP_DATE, F.OUTBOUND_PICKUP_TIME)
    inbound = _pickup_moment(values, F.RETURN_PICKUP_DATE, F.RETURN_PICKUP_TIME)
    if outbound is None or inbound is None:
        return True
    return inbound >= outbound


def _manual_assignment_complete(values):
    if values.get(F.ASSIGNMENT_TYPE.value) != 'Manual Assignment':
        return True
    return not is_blank(values.get(F.VEHICLE_ID.value)) and not is_blank(values.get(F.DRIVER_ID.value))


return_schedule_message = {'required': "Return schedule is required for round trips"}

schema = FieldSchema(
    fields=[
        FieldSpec(F.CREATION_METHOD, "Trip creation method", FieldKind.CHOICE, required=True,
                  choices=CREATION_METHODS),
        FieldSpec(F.UPLOADED_FILE, "Trip import file", FieldKind.ATTACHMENT,
                  required_when={F.CREATION_METHOD: 'Batch Import'},
                  accept=SPREADSHEET_TYPES, validators=[max_upload_size]),
        FieldSpec(F.UPLOADED_FILE_NAME, "Uploaded file name", max_length=255),

        FieldSpec(F.TRIP_MODE, "Trip mode", FieldKind.CHOICE, required=True, choices=TRIP_MODES),
        FieldSpec(F.TRIP_TIMING, "Trip timing", FieldKind.CHOICE, required=True, choices=TRIP_TIMINGS),
        FieldSpec(F.OUTBOUND_PICKUP_DATE, "Pickup date", FieldKind.DATE, required=True),
        FieldSpec(F.OUTBOUND_PICKUP_TIME, "Pickup time", FieldKind.TIME, required=True),
        FieldSpec(F.RETURN_PICKUP_DATE, "Return pickup date", FieldKind.DATE,
                  required_when=ROUND_TRIP_ONLY, messages=return_schedule_message),
        FieldSpec(F.RETURN_PICKUP_TIME, "Return pickup time", FieldKind.TIME,
                  required_when=ROUND_TRIP_ONLY, messages=return_schedule_message),

        FieldSpec(F.ORGANIZATION, "Organization", required=True),
        FieldSpec(F.PATIENT, "Patient", required=True),
        FieldSpec(F.SERVICE_LEVEL, "Service level", FieldKind.CHOICE, required=True,
                  choices=SERVICE_LEVELS),
        FieldSpec(F.LEVEL_OF_CARE, "Level of care", required=True),
        FieldSpec(F.CREW_CONFIGURATION, "Crew configuration", FieldKind.CHOICE, required=True,
                  choices=CREW_CONFIGURATIONS),
        FieldSpec(F.PRIORITY, "Priority", FieldKind.CHOICE, required=True, choices=PRIORITIES),
        FieldSpec(F.EQUIPMENT_PACK, "Equipment pack", FieldKind.MULTI_CHOICE, choices=EQUIPMENT_PACK),
    ] + [spec for prefix, label in LEGS for spec in _leg_specs(prefix, label)] + [
        FieldSpec(F.ESTIMATED_DISTANCE, "Estimated distance", FieldKind.NUMBER, min_value=0),
        FieldSpec(F.ESTIMATED_DURATION, "Estimated duration", FieldKind.NUMBER, min_value=0),

        FieldSpec(F.ASSIGNMENT_TYPE, "Assignment type", FieldKind.CHOICE, required=True,
                  choices=ASSIGNMENT_TYPES),
        FieldSpec(F.VEHICLE_ID, "Vehicle"),
        FieldSpec(F.DRIVER_ID, "Driver"),
        FieldSpec(F.PRIMARY_MEDICAL_CREW_ID, "Primary medical crew"),

        _fee(F.BASE_FARE, "Base fare"),
        _fee(F.PER_MILE_RATE, "Per mile rate"),
        _fee(F.STAIR_CARRY_FEE, "Stair carry fee", default=0),
        _fee(F.BARIATRIC_SURCHARGE, "Bariatric surcharge", default=0),
        _fee(F.WAIT_TIME_CHARGE, "Wait time charge", default=0),
        _fee(F.AFTER_HOURS_MULTIPLIER, "After hours multiplier", default=0),
        _fee(F.HOLIDAY_RATE, "Holiday rate", default=0),
        _fee(F.CANCELLATION_FEE, "Cancellation fee", default=0),
        _fee(F.MANUAL_OVERRIDE, "Manual override"),
        _fee(F.ESTIMATED_COST, "Estimated cost"),
    ],
    refinements=[
        Refinement(
            trigger=[F.TRIP_MODE, F.RETURN_PICKUP_TIME, F.OUTBOUND_PICKUP_DATE, F.OUTBOUND_PICKUP_TIME],
            check=_return_after_outbound,
            message="Return pickup must not be before the outbound pickup",
            attach_to=F.RETURN_PICKUP_DATE,
            name="return_after_outbound",
        ),
        Refinement(
            trigger=[F.ASSIGNMENT_TYPE, F.DRIVER_ID],
            check=_manual_assignment_complete,
            message="Vehicle and driver are required for manual assignment",
            attach_to=F.VEHICLE_ID,
            name="manual_assignment",
        ),
    ] + [
        Refinement(
            trigger=[f"{prefix}WindowStart"],
            check=_window_ordered(prefix),
            message=f"{label} window end must not be before its start",
            attach_to=f"{prefix}WindowEnd",
            name=f"{prefix}_window",
        )
        for prefix, label in LEGS
    ],
)

steps = [
    StepDefinition('creation_method', 1, "Trip Creation Method", [
        F.CREATION_METHOD, F.UPLOADED_FILE, F.UPLOADED_FILE_NAME,
    ], icon='fa-plus'),
    StepDefinition('mode_timing', 2, "Trip Mode & Timing", [
        F.TRIP_MODE, F.TRIP_TIMING, F.OUTBOUND_PICKUP_DATE, F.OUTBOUND_PICKUP_TIME,
        F.RETURN_PICKUP_DATE, F.RETURN_PICKUP_TIME,
    ], icon='fa-clock'),
    StepDefinition('patient_service', 3, "Patient & Service", [
        F.ORGANIZATION, F.PATIENT, F.SERVICE_LEVEL, F.LEVEL_OF_CARE,
        F.CREW_CONFIGURATION, F.PRIORITY, F.EQUIPMENT_PACK,
    ], icon='fa-user-injured'),
    StepDefinition('locations', 4, "Trip Locations", [
        name for prefix, _ in LEGS for name in leg_fields(prefix)
    ] + [F.ESTIMATED_DISTANCE, F.ESTIMATED_DURATION], icon='fa-map-marker'),
    StepDefinition('vehicle_crew', 5, "Vehicle & Crew", [
        F.ASSIGNMENT_TYPE, F.VEHICLE_ID, F.DRIVER_ID, F.PRIMARY_MEDICAL_CREW_ID,
    ], icon='fa-ambulance'),
    StepDefinition('pricing', 6, "Pricing & Cost Summary", [
        F.BASE_FARE, F.PER_MILE_RATE, F.STAIR_CARRY_FEE, F.BARIATRIC_SURCHARGE,
        F.WAIT_TIME_CHARGE, F.AFTER_HOURS_MULTIPLIER, F.HOLIDAY_RATE, F.CANCELLATION_FEE,
        F.MANUAL_OVERRIDE, F.ESTIMATED_COST,
    ], icon='fa-dollar-sign'),
]

trip_wizard = WizardDefinition(
    key='trip',
    title="Add Trip",
    schema=schema,
    steps=steps,
    draft_key='trip_form_draft',
    description="Schedule a one-way or round trip with crew assignment and pricing",
)
