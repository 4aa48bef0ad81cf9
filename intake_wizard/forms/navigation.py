"""
Helpers for steering the user to validation errors
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .schema import FieldSchema, StepDefinition


@dataclass
class ErrorLocation:
    step_id: str
    field_name: str
    message: str


def first_error_field(fields: Sequence[str], errors: Mapping[str, str]) -> Optional[str]:
    """First field, in declaration order, that carries an error"""
    for name in fields:
        if name in errors:
            return name
    return None


def locate_first_error(steps: Sequence[StepDefinition],
                       errors: Mapping[str, str]) -> Optional[ErrorLocation]:
    """Find the earliest step and field with an error across ``steps``"""
    for step in steps:
        name = first_error_field(step.fields, errors)
        if name is not None:
            return ErrorLocation(step_id=step.id, field_name=name, message=errors[name])
    return None


def errors_by_step(steps: Sequence[StepDefinition],
                   errors: Mapping[str, str]) -> Dict[str, Dict[str, str]]:
    """Group an error map by owning step, dropping steps without errors"""
    grouped = {}
    for step in steps:
        step_errors = {name: errors[name] for name in step.fields if name in errors}
        if step_errors:
            grouped[step.id] = step_errors
    return grouped


def step_error_summary(step: StepDefinition,
                       errors: Mapping[str, str],
                       schema: FieldSchema) -> List[Dict[str, Any]]:
    """
    Summarize the errors of one step for display

    Returns a list of ``{field, label, message}`` entries in the step's field
    order, suitable for an error summary panel above the step.
    """
    return [
        {'field': name, 'label': schema[name].label, 'message': errors[name]}
        for name in step.fields
        if name in errors
    ]
