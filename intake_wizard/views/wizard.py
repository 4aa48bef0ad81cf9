"""
JSON API for running intake wizards over HTTP

The live state of each wizard run is kept in the Flask session between
requests; drafts go to the configured draft store and are only written when
the client posts to the draft endpoint.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request, session
from marshmallow import Schema, ValidationError, fields

from ..forms.navigation import errors_by_step, step_error_summary
from ..forms.persistence import FormValue
from ..forms.schema import Attachment, FieldKind
from ..forms.wizard import WizardController, WizardState
from ..utils.error_handling import (
    SchemaError,
    WizardBusyError,
    WizardErrorHandler,
    WizardErrorSeverity,
    WizardErrorType,
    WizardNotFound,
)

logger = logging.getLogger(__name__)

intake_bp = Blueprint('intake', __name__, url_prefix='/intake')


class ValuesRequestSchema(Schema):
    values = fields.Dict(keys=fields.String(), values=FormValue(allow_none=True), required=True)


class SubmitRequestSchema(Schema):
    values = fields.Dict(keys=fields.String(), values=FormValue(allow_none=True), load_default=None)


class CancelRequestSchema(Schema):
    discard_draft = fields.Boolean(load_default=False)


values_request_schema = ValuesRequestSchema()
submit_request_schema = SubmitRequestSchema()
cancel_request_schema = CancelRequestSchema()


def get_intake():
    return current_app.extensions['intake_wizard']


def _state_key(wizard: str) -> str:
    return f"{get_intake().config.persistence.state_prefix}{wizard}"


def load_controller(wizard: str) -> WizardController:
    """Rebuild the controller of the current run from the session"""
    intake = get_intake()
    intake.get_definition(wizard)

    stored = session.get(_state_key(wizard))
    if stored:
        try:
            return intake.create_controller(wizard, state=WizardState.from_dict(stored))
        except (KeyError, TypeError, ValueError, SchemaError) as e:
            logger.warning(f"Discarding unreadable session state for wizard {wizard}: {e}")
            session.pop(_state_key(wizard), None)
    return intake.create_controller(wizard)


def store_controller(controller: WizardController):
    session[_state_key(controller.key)] = controller.state.to_dict()
    session.modified = True


def _json_body() -> Dict[str, Any]:
    if not request.data:
        return {}
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _multipart_values(controller: WizardController) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name in request.form:
        items = request.form.getlist(name)
        values[name] = items if len(items) > 1 else items[0]
    for name in request.files:
        attachments = [
            Attachment.from_file_storage(storage) for storage in request.files.getlist(name)
        ]
        spec = controller.definition.schema[name]
        values[name] = attachments if spec.kind == FieldKind.ATTACHMENT_LIST else attachments[0]
    return values


def _refinement_fields(controller: WizardController, errors: Dict[str, str]):
    return [
        refinement.attach_to
        for refinement in controller.definition.schema.refinements
        if errors.get(refinement.attach_to) == refinement.message
    ]


def _error_details(controller: WizardController, errors: Dict[str, str]):
    handler = WizardErrorHandler(controller.key)
    refinement_fields = _refinement_fields(controller, errors)
    details = []
    for step_id, step_errors in errors_by_step(controller.definition.steps, errors).items():
        details.extend(
            error.to_dict()
            for error in handler.from_validation_errors(step_errors, step_id, refinement_fields)
        )
    return details


def state_response(controller: WizardController, success: bool = True, **extra):
    body = {'success': success, 'wizard': controller.to_dict()}
    body.update(extra)
    return jsonify(body)


@intake_bp.errorhandler(WizardNotFound)
def wizard_not_found(error):
    return jsonify({'success': False, 'error': str(error)}), 404


@intake_bp.errorhandler(ValidationError)
def invalid_request(error):
    return jsonify({'success': False, 'error': 'Invalid request', 'messages': error.messages}), 400


@intake_bp.errorhandler(SchemaError)
def invalid_field(error):
    return jsonify({'success': False, 'error': str(error)}), 400


@intake_bp.errorhandler(WizardBusyError)
def wizard_busy(error):
    handler = WizardErrorHandler()
    record = handler.handle_error(error, WizardErrorType.BUSY, WizardErrorSeverity.LOW)
    return jsonify({'success': False, 'error': record.to_dict()}), 409


@intake_bp.route('/')
def list_wizards():
    """Registered wizards and their titles"""
    intake = get_intake()
    return jsonify({
        'success': True,
        'wizards': [
            {'key': definition.key, 'title': definition.title, 'description': definition.description}
            for definition in intake.wizards.values()
        ],
    })


@intake_bp.route('/<string:wizard>/')
def wizard_state(wizard: str):
    controller = load_controller(wizard)
    store_controller(controller)
    return state_response(controller)


@intake_bp.route('/<string:wizard>/fields')
def wizard_fields(wizard: str):
    definition = get_intake().get_definition(wizard)
    return jsonify({'success': True, 'definition': definition.to_dict()})


@intake_bp.route('/<string:wizard>/values', methods=['POST'])
def set_values(wizard: str):
    """Apply field values; accepts JSON ``{"values": {...}}`` or multipart uploads"""
    controller = load_controller(wizard)
    if request.mimetype == 'multipart/form-data':
        values = _multipart_values(controller)
    else:
        values = values_request_schema.load(_json_body())['values']
    controller.set_values(values)
    store_controller(controller)
    return state_response(controller)


@intake_bp.route('/<string:wizard>/validate', methods=['POST'])
def validate_step(wizard: str):
    controller = load_controller(wizard)
    is_valid = controller.validate_current_step()
    store_controller(controller)
    errors = controller.errors
    return state_response(
        controller,
        is_valid=is_valid,
        summary=step_error_summary(controller.current_step, errors, controller.definition.schema),
        error_details=_error_details(controller, errors),
    )


@intake_bp.route('/<string:wizard>/next', methods=['POST'])
def next_step(wizard: str):
    controller = load_controller(wizard)
    moved = controller.next()
    store_controller(controller)
    return state_response(controller, success=moved)


@intake_bp.route('/<string:wizard>/back', methods=['POST'])
def previous_step(wizard: str):
    controller = load_controller(wizard)
    moved = controller.back()
    store_controller(controller)
    return state_response(controller, success=moved)


@intake_bp.route('/<string:wizard>/jump/<string:step_id>', methods=['POST'])
def jump_to_step(wizard: str, step_id: str):
    controller = load_controller(wizard)
    moved = controller.jump_to(step_id)
    store_controller(controller)
    return state_response(controller, success=moved)


@intake_bp.route('/<string:wizard>/draft', methods=['POST'])
def save_draft(wizard: str):
    controller = load_controller(wizard)
    saved = controller.save_draft()
    store_controller(controller)
    if not saved:
        return state_response(controller, success=False, error='Failed to save draft')
    return state_response(controller, message='Draft saved successfully')


@intake_bp.route('/<string:wizard>/submit', methods=['POST'])
def submit(wizard: str):
    controller = load_controller(wizard)
    values: Optional[Dict[str, Any]] = submit_request_schema.load(_json_body())['values']
    if values is not None:
        values = dict(controller.values, **values)

    result = asyncio.run(controller.submit(values))
    store_controller(controller)

    extra: Dict[str, Any] = {'result': result.to_dict()}
    if result.validation_errors:
        extra['error_details'] = _error_details(controller, result.validation_errors)
    if result.error is not None:
        handler = WizardErrorHandler(controller.key)
        extra['error'] = handler.handle_error(
            result.error, step_id=controller.state.current_step
        ).to_dict()
    return state_response(controller, success=result.ok, **extra)


@intake_bp.route('/<string:wizard>/cancel', methods=['POST'])
def cancel(wizard: str):
    controller = load_controller(wizard)
    options = cancel_request_schema.load(_json_body())
    cancelled = controller.cancel(discard_draft=options['discard_draft'])
    store_controller(controller)
    return state_response(controller, success=cancelled)


@intake_bp.route('/<string:wizard>/restart', methods=['POST'])
def start_another(wizard: str):
    """Begin a new run once the previous one was submitted"""
    controller = load_controller(wizard)
    restarted = controller.start_another()
    store_controller(controller)
    return state_response(controller, success=restarted)
