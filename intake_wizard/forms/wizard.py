"""
Intake Wizard Controller

Drives a user through the active steps of a ``WizardDefinition``:

- step-scoped validation before advancing, with focus on the first error
- conditional steps skipped on the way forward and back
- optional jumps that validate every step passed over
- explicit draft saving, loading once at construction
- a submission coordinator that guards the finalize call with a busy flag

Validation problems are returned as data; only a failing finalize operation
is reported as an error object, and re-entrant submission raises.
"""

import asyncio
import inspect
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from dateutil.parser import isoparse

from ..config import WizardConfig, WizardValidationMode
from ..utils.error_handling import SchemaError, SubmissionError, WizardBusyError
from .navigation import first_error_field, locate_first_error
from .persistence import DraftStore, MemoryDraftStore, decode_value, encode_value
from .schema import StepDefinition, WizardDefinition, field_name
from .validation import ValidationEngine

logger = logging.getLogger(__name__)

FORWARD = 'forward'
BACKWARD = 'backward'

FinalizeCallable = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class SubmissionStatus(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class WizardState:
    """Mutable state of one wizard run"""
    current_step: str
    values: Dict[str, Any]
    submission_status: SubmissionStatus = SubmissionStatus.IDLE
    last_validation_errors: Dict[str, str] = field(default_factory=dict)
    focus_field: Optional[str] = None
    completed_steps: List[str] = field(default_factory=list)
    direction: Optional[str] = None
    last_error: Optional[Dict[str, Any]] = None
    submission_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def touch(self):
        self.updated_at = datetime.utcnow()

    def mark_completed(self, step_id: str):
        if step_id not in self.completed_steps:
            self.completed_steps.append(step_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary"""
        return {
            'current_step': self.current_step,
            'values': encode_value(self.values),
            'submission_status': self.submission_status.value,
            'last_validation_errors': dict(self.last_validation_errors),
            'focus_field': self.focus_field,
            'completed_steps': list(self.completed_steps),
            'direction': self.direction,
            'last_error': self.last_error,
            'submission_id': self.submission_id,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WizardState':
        """Create instance from dictionary"""
        status = data.get('submission_status', SubmissionStatus.IDLE.value)
        if status == SubmissionStatus.SUBMITTING.value:
            # a request died mid-submission; the outcome is unknown
            status = SubmissionStatus.FAILED.value
        return cls(
            current_step=data['current_step'],
            values=decode_value(data.get('values', {})),
            submission_status=SubmissionStatus(status),
            last_validation_errors=dict(data.get('last_validation_errors', {})),
            focus_field=data.get('focus_field'),
            completed_steps=list(data.get('completed_steps', [])),
            direction=data.get('direction'),
            last_error=data.get('last_error'),
            submission_id=data.get('submission_id'),
            created_at=isoparse(data['created_at']) if data.get('created_at') else datetime.utcnow(),
            updated_at=isoparse(data['updated_at']) if data.get('updated_at') else datetime.utcnow(),
        )


@dataclass
class SubmissionResult:
    ok: bool
    status: SubmissionStatus
    payload: Optional[Dict[str, Any]] = None
    error: Optional[SubmissionError] = None
    validation_errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ok': self.ok,
            'status': self.status.value,
            'error': self.error.message if self.error else None,
            'validation_errors': dict(self.validation_errors),
        }


class SubmissionCoordinator:
    """
    Wraps the caller-supplied finalize operation

    A full validation over every active step runs first. While finalize is
    outstanding the coordinator is busy and the controller refuses
    navigation and further submissions. No timeout is applied; callers that
    need one wrap ``finalize`` themselves.
    """

    def __init__(self, controller: 'WizardController', finalize: Optional[FinalizeCallable] = None):
        self.controller = controller
        self.finalize = finalize
        self.busy = False

    async def submit(self, values: Optional[Mapping[str, Any]] = None) -> SubmissionResult:
        controller = self.controller
        state = controller.state
        wizard_key = controller.definition.key

        if self.busy:
            raise WizardBusyError(f"Wizard {wizard_key} is already submitting")
        if self.finalize is None:
            raise RuntimeError(f"No finalize operation configured for wizard {wizard_key}")

        if values is not None:
            updates = {field_name(name): value for name, value in values.items()}
            for name in updates:
                if name not in controller.definition.schema:
                    raise SchemaError(f"Unknown field '{name}' for wizard '{wizard_key}'")
            merged = controller.definition.default_values()
            merged.update(updates)
            state.values = merged
        errors = controller.validate_all()
        if errors:
            controller.show_errors(errors)
            logger.info(f"Submission of wizard {wizard_key} blocked by {len(errors)} validation errors")
            return SubmissionResult(
                ok=False, status=state.submission_status, validation_errors=errors
            )

        payload = controller.definition.build_submission(state.values)
        self.busy = True
        state.submission_status = SubmissionStatus.SUBMITTING
        state.last_error = None
        state.touch()
        logger.info(f"Submitting wizard {wizard_key}")

        try:
            result = self.finalize(payload)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            state.submission_status = SubmissionStatus.FAILED
            state.last_error = {'message': 'Submission was cancelled', 'type': 'CancelledError'}
            raise
        except Exception as e:
            state.submission_status = SubmissionStatus.FAILED
            error = SubmissionError(str(e) or e.__class__.__name__, original=e)
            error.__cause__ = e
            state.last_error = {'message': error.message, 'type': e.__class__.__name__}
            state.touch()
            logger.error(f"Submission of wizard {wizard_key} failed: {e}", exc_info=True)
            return SubmissionResult(ok=False, status=state.submission_status, payload=payload, error=error)
        finally:
            self.busy = False

        state.submission_status = SubmissionStatus.SUCCEEDED
        state.submission_id = str(uuid.uuid4())
        state.mark_completed(state.current_step)
        state.touch()
        controller.draft_store.clear(controller.draft_key)
        logger.info(f"Wizard {wizard_key} submitted as {state.submission_id}")
        return SubmissionResult(ok=True, status=state.submission_status, payload=payload)


class WizardController:
    """
    Multi-step wizard over a ``WizardDefinition``

    The draft for the wizard type is loaded once, here, unless an existing
    ``state`` is handed in (a run resumed from a Flask session). Loaded values
    override the schema defaults field by field; unknown keys are dropped.
    """

    def __init__(self,
                 definition: WizardDefinition,
                 draft_store: Optional[DraftStore] = None,
                 finalize: Optional[FinalizeCallable] = None,
                 config: Optional[WizardConfig] = None,
                 today: Optional[date] = None,
                 state: Optional[WizardState] = None):
        self.definition = definition
        self.config = config or WizardConfig()
        self.draft_store = draft_store if draft_store is not None else MemoryDraftStore()
        self.draft_key = definition.draft_key
        self.engine = ValidationEngine(
            definition.schema,
            today=today,
            report_hidden_errors=self.config.behavior.report_hidden_refinement_errors,
        )
        self.coordinator = SubmissionCoordinator(self, finalize)

        if state is None:
            state = self._new_state(self._initial_values())
        elif state.current_step not in definition.steps:
            raise SchemaError(
                f"Step '{state.current_step}' does not exist in wizard '{definition.key}'"
            )
        self.state = state

    def _initial_values(self) -> Dict[str, Any]:
        values = self.definition.default_values()
        if not self.config.behavior.resume_drafts:
            return values

        draft = self.draft_store.load(self.draft_key)
        if draft is None:
            return values

        dropped = [key for key in draft if key not in self.definition.schema]
        for key, value in draft.items():
            if key in self.definition.schema:
                values[key] = value
        if dropped:
            logger.debug(f"Dropped unknown draft keys for {self.definition.key}: {dropped}")
        logger.info(f"Resumed wizard {self.definition.key} from draft with {len(draft) - len(dropped)} fields")
        return values

    def _new_state(self, values: Dict[str, Any]) -> WizardState:
        active = self.definition.active_steps(values)
        first = active[0] if active else self.definition.steps.first
        return WizardState(current_step=first.id, values=values)

    # State accessors

    @property
    def key(self) -> str:
        return self.definition.key

    @property
    def values(self) -> Dict[str, Any]:
        return self.state.values

    @property
    def errors(self) -> Dict[str, str]:
        return self.state.last_validation_errors

    @property
    def status(self) -> SubmissionStatus:
        return self.state.submission_status

    @property
    def busy(self) -> bool:
        return self.coordinator.busy

    @property
    def current_step(self) -> StepDefinition:
        return self.definition.steps.get(self.state.current_step)

    @property
    def current_ordinal(self) -> int:
        return self.current_step.ordinal

    def active_steps(self) -> List[StepDefinition]:
        return self.definition.active_steps(self.state.values)

    def is_step_active(self, step: StepDefinition) -> bool:
        return step.is_included(self.state.values)

    def _neighbour(self, direction: str) -> Optional[StepDefinition]:
        ordinal = self.current_ordinal
        active = self.active_steps()
        if direction == FORWARD:
            return next((step for step in active if step.ordinal > ordinal), None)
        return next((step for step in reversed(active) if step.ordinal < ordinal), None)

    @property
    def is_first_step(self) -> bool:
        return self._neighbour(BACKWARD) is None

    @property
    def is_last_step(self) -> bool:
        return self._neighbour(FORWARD) is None

    def _move_to(self, step: StepDefinition, direction: Optional[str]):
        previous = self.state.current_step
        self.state.current_step = step.id
        self.state.direction = direction
        self.state.touch()
        logger.debug(f"Wizard {self.key} moved {direction or 'to'} step '{step.id}' from '{previous}'")

    # Editing

    def set_value(self, name: Any, value: Any):
        """
        Setter of the field rendering contract

        Raises:
            SchemaError: If the field is not part of the schema
            WizardBusyError: If edits are locked during a submission
        """
        self.set_values({name: value})

    def set_values(self, values: Mapping[str, Any]):
        """
        Apply several edits as one change

        All names are checked before any value is written. The travel
        direction of the last move is read once, so a step that goes inactive
        part way through the batch is left the same way it was entered.
        """
        updates = {}
        for name, value in values.items():
            name = field_name(name)
            if name not in self.definition.schema:
                raise SchemaError(f"Unknown field '{name}' for wizard '{self.key}'")
            updates[name] = value
        if not updates:
            return
        if self.busy and self.config.behavior.lock_edits_while_submitting:
            raise WizardBusyError(f"Wizard {self.key} is submitting; edits are locked")

        step = self.current_step
        was_active = self.is_step_active(step)
        direction = self.state.direction

        self.state.values.update(updates)
        self.state.direction = None
        self.state.touch()

        if was_active and not self.is_step_active(step) and direction:
            target = self._neighbour(direction) or self._neighbour(
                BACKWARD if direction == FORWARD else FORWARD
            )
            if target is not None:
                logger.debug(f"Step '{step.id}' became inactive after editing {list(updates)}")
                self.state.last_validation_errors = {}
                self.state.focus_field = None
                self._move_to(target, direction)
                return

        for name in updates:
            self._revalidate_after_edit(name)

    def _revalidate_after_edit(self, name: str):
        mode = self.config.behavior.validation_mode
        if mode == WizardValidationMode.ON_STEP_CHANGE:
            return

        errors = dict(self.state.last_validation_errors)
        watched = set(errors)
        if mode == WizardValidationMode.IMMEDIATE:
            watched.add(name)
        if not watched:
            return

        step = self.current_step
        fields = step.fields if name in step.fields else [name]
        fresh = self.engine.validate(fields, self.state.values)
        for watched_field in watched.intersection(fields):
            if watched_field in fresh:
                errors[watched_field] = fresh[watched_field]
            else:
                errors.pop(watched_field, None)
        self.state.last_validation_errors = errors

    def field_state(self, name: Any) -> Dict[str, Any]:
        """Value, error and requirement of one field for the rendering layer"""
        name = field_name(name)
        spec = self.definition.schema[name]
        owner = self.definition.steps.owner_of(name)
        return {
            'name': name,
            'label': spec.label,
            'value': self.state.values.get(name),
            'error': self.state.last_validation_errors.get(name),
            'required': spec.is_required(self.state.values),
            'visible': owner is not None and owner.id == self.state.current_step,
        }

    # Validation

    def validate_step(self, step: StepDefinition) -> Dict[str, str]:
        return self.engine.validate(step.fields, self.state.values)

    def validate_field(self, name: Any) -> Optional[str]:
        name = field_name(name)
        return self.engine.validate([name], self.state.values).get(name)

    def validate_current_step(self) -> bool:
        """
        Validate the fields of the current step

        On failure the first erroring field in step order becomes the focus
        field. A step that is no longer active owns nothing that will be
        submitted and always passes.
        """
        step = self.current_step
        errors = self.validate_step(step) if self.is_step_active(step) else {}
        self.state.last_validation_errors = errors
        if errors:
            if self.config.behavior.scroll_to_first_error:
                self.state.focus_field = first_error_field(step.fields, errors)
            logger.debug(f"Step '{step.id}' of wizard {self.key} failed validation: {list(errors)}")
            return False
        self.state.focus_field = None
        return True

    def validate_all(self) -> Dict[str, str]:
        """Validate every field of every active step"""
        return self.engine.validate(
            self.definition.steps.active_fields(self.state.values), self.state.values
        )

    def show_errors(self, errors: Dict[str, str]):
        """Surface errors and move to the first step carrying one"""
        self.state.last_validation_errors = dict(errors)
        location = locate_first_error(self.active_steps(), errors)
        if location is None:
            return
        if location.step_id != self.state.current_step:
            self._move_to(self.definition.steps.get(location.step_id), None)
        if self.config.behavior.scroll_to_first_error:
            self.state.focus_field = location.field_name

    # Navigation

    def next(self) -> bool:
        """
        Validate the current step and advance to the next active step

        Returns:
            False if busy, invalid, or already on the last active step
        """
        if self.busy:
            logger.debug(f"Wizard {self.key} is submitting; next refused")
            return False
        if not self.validate_current_step():
            return False

        target = self._neighbour(FORWARD)
        if target is None:
            logger.debug(f"Wizard {self.key} is on its last active step; submit instead")
            return False

        self.state.mark_completed(self.state.current_step)
        self._move_to(target, FORWARD)
        return True

    def back(self) -> bool:
        """Move to the previous active step without validating"""
        if self.busy or not self.config.behavior.allow_backward_navigation:
            return False
        target = self._neighbour(BACKWARD)
        if target is None:
            return False

        self.state.last_validation_errors = {}
        self.state.focus_field = None
        self._move_to(target, BACKWARD)
        return True

    def can_navigate_to_step(self, step_id: str) -> bool:
        step = self.definition.steps.get(step_id)
        return (
            step is not None
            and not self.busy
            and self.config.behavior.allow_step_navigation
            and self.is_step_active(step)
        )

    def jump_to(self, step_id: str) -> bool:
        """
        Jump directly to an active step

        Moving forward validates the current step and every active step in
        between; any failure leaves the wizard where it is with the errors
        shown. Moving backward never validates.
        """
        if not self.can_navigate_to_step(step_id):
            logger.debug(f"Wizard {self.key} cannot jump to '{step_id}'")
            return False

        target = self.definition.steps.get(step_id)
        current = self.current_step
        if target.id == current.id:
            return True

        if target.ordinal < current.ordinal:
            self.state.last_validation_errors = {}
            self.state.focus_field = None
            self._move_to(target, BACKWARD)
            return True

        passed = [
            step for step in self.active_steps()
            if current.ordinal <= step.ordinal < target.ordinal
        ]
        for step in passed:
            errors = self.validate_step(step)
            if errors:
                self.state.last_validation_errors = errors
                if self.config.behavior.scroll_to_first_error:
                    self.state.focus_field = first_error_field(step.fields, errors)
                logger.debug(f"Jump to '{step_id}' blocked by step '{step.id}'")
                return False

        for step in passed:
            self.state.mark_completed(step.id)
        self.state.last_validation_errors = {}
        self.state.focus_field = None
        self._move_to(target, FORWARD)
        return True

    # Drafts and lifecycle

    def save_draft(self) -> bool:
        """Persist the full value snapshot; only called on explicit request"""
        return self.draft_store.save(self.draft_key, self.state.values)

    def cancel(self, discard_draft: bool = False) -> bool:
        """Abandon the run, optionally deleting the saved draft"""
        if self.busy:
            return False
        if discard_draft:
            self.draft_store.clear(self.draft_key)
        logger.info(f"Wizard {self.key} cancelled (draft {'discarded' if discard_draft else 'kept'})")
        self.state = self._new_state(self.definition.default_values())
        return True

    def start_another(self) -> bool:
        """Start a fresh run after a successful submission"""
        if self.busy or self.state.submission_status != SubmissionStatus.SUCCEEDED:
            return False
        self.state = self._new_state(self.definition.default_values())
        return True

    async def submit(self, values: Optional[Mapping[str, Any]] = None) -> SubmissionResult:
        """
        Validate everything and run the finalize operation

        Raises:
            WizardBusyError: If a submission is already in flight
            SchemaError: If ``values`` names a field outside the schema
        """
        return await self.coordinator.submit(values)

    # Progress

    def step_status(self, step_id: str) -> str:
        step = self.definition.steps.get(step_id)
        if step is None:
            raise SchemaError(f"Unknown step '{step_id}' for wizard '{self.key}'")
        if not self.is_step_active(step):
            return 'skipped'
        if step.id == self.state.current_step and self.status != SubmissionStatus.SUCCEEDED:
            return 'current'
        if step.id in self.state.completed_steps:
            return 'completed'
        return 'pending'

    def progress_percentage(self) -> float:
        if self.status == SubmissionStatus.SUCCEEDED:
            return 100.0
        active = self.active_steps()
        if not active:
            return 100.0
        completed = sum(1 for step in active if step.id in self.state.completed_steps)
        return (completed / len(active)) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the view-facing state of the wizard"""
        return {
            'wizard': self.key,
            'title': self.definition.title,
            'current_step': self.state.current_step,
            'current_ordinal': self.current_ordinal,
            'steps': [
                dict(step.to_dict(), status=self.step_status(step.id))
                for step in self.definition.steps
            ],
            'active_steps': [step.id for step in self.active_steps()],
            'values': encode_value(self.state.values),
            'errors': dict(self.state.last_validation_errors),
            'focus_field': self.state.focus_field,
            'submission_status': self.status.value,
            'submission_id': self.state.submission_id,
            'busy': self.busy,
            'progress': self.progress_percentage(),
            'is_first_step': self.is_first_step,
            'is_last_step': self.is_last_step,
            'last_error': self.state.last_error,
        }
