__author__ = "Intake Wizard contributors"
__version__ = "1.0.0"

from .base import IntakeWizard  # noqa: F401
from .forms.schema import (  # noqa: F401
    Attachment,
    FieldKind,
    FieldSpec,
    FieldSchema,
    Refinement,
    StepDefinition,
    StepTable,
    WizardDefinition,
)
from .forms.validation import ValidationEngine  # noqa: F401
from .forms.wizard import (  # noqa: F401
    SubmissionCoordinator,
    SubmissionResult,
    SubmissionStatus,
    WizardController,
    WizardState,
)
from .forms.persistence import (  # noqa: F401
    DatabaseDraftStore,
    DraftStore,
    MemoryDraftStore,
    SessionDraftStore,
)
from .utils.error_handling import (  # noqa: F401
    SchemaError,
    SubmissionError,
    WizardBusyError,
    WizardNotFound,
)
from .wizards import WIZARDS, get_wizard_definition  # noqa: F401

__all__ = [
    "IntakeWizard",
    "FieldKind",
    "FieldSpec",
    "FieldSchema",
    "Refinement",
    "StepDefinition",
    "StepTable",
    "WizardDefinition",
    "ValidationEngine",
    "SubmissionCoordinator",
    "SubmissionResult",
    "SubmissionStatus",
    "WizardController",
    "WizardState",
    "Attachment",
    "DatabaseDraftStore",
    "DraftStore",
    "MemoryDraftStore",
    "SessionDraftStore",
    "SchemaError",
    "SubmissionError",
    "WizardBusyError",
    "WizardNotFound",
    "WIZARDS",
    "get_wizard_definition",
]
