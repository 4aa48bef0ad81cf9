"""
Registry of the concrete intake wizards
"""

from typing import Dict

from ..forms.schema import WizardDefinition
from ..utils.error_handling import WizardNotFound
from .employee import employee_wizard
from .institution import institution_wizard
from .patient import patient_wizard
from .trip import trip_wizard
from .vehicle import vehicle_wizard

WIZARDS: Dict[str, WizardDefinition] = {
    wizard.key: wizard
    for wizard in (patient_wizard, institution_wizard, trip_wizard, employee_wizard, vehicle_wizard)
}


def get_wizard_definition(key: str) -> WizardDefinition:
    try:
        return WIZARDS[key]
    except KeyError:
        raise WizardNotFound(key) from None
