"""
Error taxonomy and handling for intake wizards

Field and refinement errors travel as data (error maps); only submission
failures cross the controller boundary as an explicit failure signal. The
exceptions below cover programming errors (bad step tables, unknown fields or
wizards) and re-entrant submission.
"""

import logging
import traceback
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class SchemaError(Exception):
    """Raised when a field schema or step table is inconsistent"""


class WizardNotFound(KeyError):
    """Raised when a wizard key is not registered"""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self):
        return f"Unknown wizard '{self.key}'"


class WizardBusyError(RuntimeError):
    """Raised when an action is attempted while a submission is in flight"""


class SubmissionError(Exception):
    """
    Failure reported by the finalize operation

    The original exception is kept on ``original`` and chained as
    ``__cause__`` by the coordinator.
    """

    def __init__(self, message: str, original: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original = original


class WizardErrorType(Enum):
    """Types of wizard errors"""
    FIELD_VALIDATION = "field_validation"
    REFINEMENT = "refinement"
    SUBMISSION = "submission"
    DRAFT_CORRUPTION = "draft_corruption"
    CONFIGURATION = "configuration"
    BUSY = "busy"


class WizardErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class WizardError:
    """Structured error record surfaced to callers and the JSON API"""
    error_id: Optional[str]
    error_type: WizardErrorType
    severity: WizardErrorSeverity
    message: str
    detail: Optional[str] = None
    field_id: Optional[str] = None
    step_id: Optional[str] = None
    wizard_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    stack_trace: Optional[str] = None
    user_friendly_message: Optional[str] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow()
        if self.error_id is None:
            self.error_id = str(uuid.uuid4())

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary"""
        return {
            'error_id': self.error_id,
            'error_type': self.error_type.value,
            'severity': self.severity.value,
            'message': self.message,
            'detail': self.detail,
            'field_id': self.field_id,
            'step_id': self.step_id,
            'wizard_id': self.wizard_id,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'user_friendly_message': self.user_friendly_message,
        }


USER_FRIENDLY_MESSAGES = {
    WizardErrorType.FIELD_VALIDATION: 'Please review the highlighted field and try again.',
    WizardErrorType.REFINEMENT: 'Some answers do not fit together. Please review the highlighted field.',
    WizardErrorType.SUBMISSION: 'The form could not be submitted. Your answers were kept, please try again.',
    WizardErrorType.DRAFT_CORRUPTION: 'A saved draft could not be restored and was ignored.',
    WizardErrorType.CONFIGURATION: "There's a configuration issue with this form. Please contact support.",
    WizardErrorType.BUSY: 'A submission is already in progress. Please wait for it to finish.',
}


class WizardErrorHandler:
    """Converts exceptions and error maps into logged ``WizardError`` records"""

    def __init__(self, wizard_id: Optional[str] = None):
        self.wizard_id = wizard_id
        self.errors: List[WizardError] = []

    def handle_error(self,
                     error: Union[Exception, WizardError, str],
                     error_type: Optional[WizardErrorType] = None,
                     severity: Optional[WizardErrorSeverity] = None,
                     **kwargs) -> WizardError:
        """Handle an error and return structured error information"""
        if isinstance(error, WizardError):
            wizard_error = error
        elif isinstance(error, Exception):
            wizard_error = self._exception_to_wizard_error(error, error_type, severity, **kwargs)
        else:
            wizard_error = WizardError(
                error_id=None,
                error_type=error_type or WizardErrorType.FIELD_VALIDATION,
                severity=severity or WizardErrorSeverity.LOW,
                message=str(error),
                **kwargs
            )

        if wizard_error.wizard_id is None:
            wizard_error.wizard_id = self.wizard_id
        if not wizard_error.user_friendly_message:
            wizard_error.user_friendly_message = USER_FRIENDLY_MESSAGES.get(
                wizard_error.error_type, wizard_error.message
            )

        self._log_error(wizard_error)
        self.errors.append(wizard_error)
        return wizard_error

    def from_validation_errors(self,
                               errors: Dict[str, str],
                               step_id: Optional[str] = None,
                               refinement_fields: Optional[List[str]] = None) -> List[WizardError]:
        """Build one record per field of an error map, without logging"""
        refinement_fields = refinement_fields or []
        records = []
        for field_name, message in errors.items():
            error_type = (
                WizardErrorType.REFINEMENT if field_name in refinement_fields
                else WizardErrorType.FIELD_VALIDATION
            )
            records.append(WizardError(
                error_id=None,
                error_type=error_type,
                severity=WizardErrorSeverity.LOW,
                message=message,
                field_id=field_name,
                step_id=step_id,
                wizard_id=self.wizard_id,
                user_friendly_message=message,
            ))
        return records

    def _exception_to_wizard_error(self,
                                   exception: Exception,
                                   error_type: Optional[WizardErrorType] = None,
                                   severity: Optional[WizardErrorSeverity] = None,
                                   **kwargs) -> WizardError:
        """Convert a Python exception to a WizardError"""
        if not error_type:
            if isinstance(exception, SubmissionError):
                error_type = WizardErrorType.SUBMISSION
            elif isinstance(exception, WizardBusyError):
                error_type = WizardErrorType.BUSY
            elif isinstance(exception, (SchemaError, WizardNotFound)):
                error_type = WizardErrorType.CONFIGURATION
            else:
                error_type = WizardErrorType.SUBMISSION

        if not severity:
            if error_type == WizardErrorType.CONFIGURATION:
                severity = WizardErrorSeverity.HIGH
            elif error_type == WizardErrorType.SUBMISSION:
                severity = WizardErrorSeverity.MEDIUM
            else:
                severity = WizardErrorSeverity.LOW

        original = getattr(exception, 'original', None) or exception
        return WizardError(
            error_id=None,
            error_type=error_type,
            severity=severity,
            message=str(exception),
            detail=f"{original.__class__.__name__}: {original}",
            stack_trace=''.join(traceback.format_exception(
                type(original), original, original.__traceback__
            )),
            **kwargs
        )

    def _log_error(self, error: WizardError):
        """Log error with appropriate level"""
        log_data = {
            'error_id': error.error_id,
            'error_type': error.error_type.value,
            'wizard_id': error.wizard_id,
            'step_id': error.step_id,
            'field_id': error.field_id,
        }

        if error.severity == WizardErrorSeverity.CRITICAL:
            logger.critical(f"CRITICAL wizard error: {error.message}", extra=log_data)
        elif error.severity == WizardErrorSeverity.HIGH:
            logger.error(f"High severity wizard error: {error.message}", extra=log_data)
        elif error.severity == WizardErrorSeverity.MEDIUM:
            logger.warning(f"Medium severity wizard error: {error.message}", extra=log_data)
        else:
            logger.info(f"Low severity wizard error: {error.message}", extra=log_data)
