"""
Validation engine for intake wizards

``ValidationEngine.validate`` checks the per-field rules of a set of fields
plus every cross-field refinement that touches the set, and returns a
``{field: message}`` mapping. It never raises for invalid user input and keeps
no state between calls.
"""

import logging
import re
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta
from email_validator import EmailNotValidError, validate_email
from wtforms import ValidationError

from .schema import Attachment, FieldKind, FieldSchema, FieldSpec, field_name, is_blank
from ..utils.error_handling import SchemaError

logger = logging.getLogger(__name__)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO date string or date/datetime object, None when invalid"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def parse_time(value: Any) -> Optional[time]:
    """Parse ``HH:MM[:SS]`` strings or time objects, None when invalid"""
    if isinstance(value, time):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return time.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def parse_number(value: Any) -> Optional[float]:
    """Accept ints, floats and numeric strings; booleans are not numbers"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return str(value)


class ValidationEngine:
    """
    Evaluates field rules and refinements against a value snapshot

    ``today`` pins the reference date for age and expiry checks so repeated
    calls stay deterministic. Refinement errors attached to a field outside
    the validated set are dropped unless ``report_hidden_errors`` is set.
    """

    def __init__(self,
                 schema: FieldSchema,
                 today: Optional[date] = None,
                 report_hidden_errors: bool = False):
        self.schema = schema
        self.today = today or date.today()
        self.report_hidden_errors = report_hidden_errors

    def validate(self, fields: Iterable[Any], values: Mapping[str, Any]) -> Dict[str, str]:
        """
        Validate ``fields`` against ``values``

        Args:
            fields: Field names owned by the step under test
            values: Full form value mapping

        Returns:
            Mapping of field name to the first error message; empty on success
        """
        names = [field_name(name) for name in fields]
        for name in names:
            if name not in self.schema:
                raise SchemaError(f"Unknown field '{name}'")

        errors: Dict[str, str] = {}
        for name in names:
            message = self.validate_field(self.schema[name], values)
            if message:
                errors[name] = message

        field_set = set(names)
        for refinement in self.schema.refinements_for(field_set):
            target = refinement.attach_to
            if target in errors:
                continue
            # rules only see trigger values that passed their own field rules
            if any(name in errors for name in refinement.trigger):
                continue
            if refinement.check(values):
                continue
            if target in field_set or self.report_hidden_errors:
                errors[target] = refinement.message
            else:
                logger.debug(
                    f"Refinement '{refinement.name}' failed on hidden field '{target}'"
                )

        return self._ordered(errors, names)

    def is_valid(self, fields: Iterable[Any], values: Mapping[str, Any]) -> bool:
        return not self.validate(fields, values)

    @staticmethod
    def _ordered(errors: Dict[str, str], names: List[str]) -> Dict[str, str]:
        position = {name: index for index, name in enumerate(names)}
        return dict(sorted(errors.items(), key=lambda item: position.get(item[0], len(names))))

    def validate_field(self, spec: FieldSpec, values: Mapping[str, Any]) -> Optional[str]:
        """Return the first failing rule's message for a single field"""
        value = values.get(spec.name)
        label = spec.label

        if is_blank(value):
            if spec.is_required(values):
                return spec.message('required', f"{label} is required")
            return None

        if spec.kind == FieldKind.BOOLEAN:
            if not isinstance(value, bool):
                return spec.message('type', f"{label} must be yes or no")
            if value is not True and spec.is_required(values):
                return spec.message('required', f"{label} is required")
            return self._run_validators(spec, value)

        checker = getattr(self, f"_check_{spec.kind.value}")
        message = checker(spec, value)
        if message:
            return message
        return self._run_validators(spec, value)

    def _run_validators(self, spec: FieldSpec, value: Any) -> Optional[str]:
        for validator in spec.validators:
            try:
                validator(value)
            except ValidationError as e:
                return str(e)
        return None

    def _check_lengths(self, spec: FieldSpec, value: str) -> Optional[str]:
        if spec.min_length is not None and len(value) < spec.min_length:
            return spec.message(
                'min_length', f"{spec.label} must be at least {spec.min_length} characters"
            )
        if spec.max_length is not None and len(value) > spec.max_length:
            return spec.message(
                'max_length', f"{spec.label} must not exceed {spec.max_length} characters"
            )
        return None

    def _check_string(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return spec.message('type', f"{spec.label} must be text")
        message = self._check_lengths(spec, value)
        if message:
            return message
        if spec.pattern and not re.fullmatch(spec.pattern, value):
            return spec.message('pattern', f"{spec.label} format is invalid")
        if spec.choices and value not in spec.choices:
            return self._choice_message(spec)
        return None

    _check_text = _check_string

    def _check_email(self, spec: FieldSpec, value: Any) -> Optional[str]:
        message = self._check_string(spec, value)
        if message:
            return message
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return spec.message('email', "Please enter a valid email address")
        return None

    def _check_url(self, spec: FieldSpec, value: Any) -> Optional[str]:
        message = self._check_string(spec, value)
        if message:
            return message
        parsed = urlparse(value)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            return spec.message('url', "Please enter a valid URL")
        return None

    def _bound(self, bound: Any) -> Any:
        return bound(self.today) if callable(bound) else bound

    def _check_number(self, spec: FieldSpec, value: Any) -> Optional[str]:
        number = parse_number(value)
        if number is None:
            return spec.message('type', f"{spec.label} must be a number")
        return self._check_range(spec, number)

    def _check_integer(self, spec: FieldSpec, value: Any) -> Optional[str]:
        number = parse_number(value)
        if number is None or not number.is_integer():
            return spec.message('type', f"{spec.label} must be a whole number")
        return self._check_range(spec, number)

    def _check_range(self, spec: FieldSpec, number: float) -> Optional[str]:
        low = self._bound(spec.min_value)
        high = self._bound(spec.max_value)
        too_low = low is not None and (number <= low if spec.exclusive_min else number < low)
        too_high = high is not None and number > high
        if not (too_low or too_high):
            return None
        if low is not None and high is not None:
            default = f"{spec.label} must be between {_format_number(low)} and {_format_number(high)}"
        elif low is not None:
            relation = 'greater than' if spec.exclusive_min else 'at least'
            default = f"{spec.label} must be {relation} {_format_number(low)}"
        else:
            default = f"{spec.label} must be at most {_format_number(high)}"
        return spec.message('range', default)

    def _check_date(self, spec: FieldSpec, value: Any) -> Optional[str]:
        parsed = parse_date(value)
        if parsed is None:
            return spec.message('type', f"{spec.label} must be a valid date")

        if spec.min_age is not None or spec.max_age is not None:
            age = relativedelta(self.today, parsed).years
            if parsed > self.today:
                age = -1
            if (spec.min_age is not None and age < spec.min_age) or \
                    (spec.max_age is not None and age > spec.max_age):
                return spec.message('age', f"Please enter a valid {spec.label.lower()}")

        if not spec.allow_past and parsed < self.today:
            return spec.message('past', f"{spec.label} must not be in the past")
        return None

    def _check_time(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if parse_time(value) is None:
            return spec.message('type', f"{spec.label} must be a valid time")
        return None

    def _choice_message(self, spec: FieldSpec) -> str:
        options = ', '.join(str(choice) for choice in spec.choices)
        return spec.message('choice', f"{spec.label} must be one of: {options}")

    def _check_choice(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if value not in spec.choices:
            return self._choice_message(spec)
        return None

    def _check_multi_choice(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, (list, tuple)):
            return spec.message('type', f"{spec.label} must be a list of options")
        if any(item not in spec.choices for item in value):
            return self._choice_message(spec)
        return self._check_items(spec, value)

    def _check_items(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if spec.min_items is not None and len(value) < spec.min_items:
            return spec.message(
                'min_items', f"{spec.label} needs at least {spec.min_items} entries"
            )
        return None

    def _check_mapping(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, dict):
            return spec.message('type', f"{spec.label} is invalid")
        return None

    def _check_list(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, (list, tuple)):
            return spec.message('type', f"{spec.label} must be a list")
        return self._check_items(spec, value)

    def _check_attachment_type(self, spec: FieldSpec, attachment: Attachment) -> Optional[str]:
        if spec.accept and attachment.extension not in spec.accept:
            allowed = ', '.join(spec.accept)
            return spec.message('accept', f"{spec.label} must be one of the file types: {allowed}")
        return None

    def _check_attachment(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, Attachment):
            return spec.message('type', f"{spec.label} must be an uploaded file")
        return self._check_attachment_type(spec, value)

    def _check_attachment_list(self, spec: FieldSpec, value: Any) -> Optional[str]:
        if not isinstance(value, (list, tuple)) or \
                not all(isinstance(item, Attachment) for item in value):
            return spec.message('type', f"{spec.label} must be a list of uploaded files")
        for attachment in value:
            message = self._check_attachment_type(spec, attachment)
            if message:
                return message
        return self._check_items(spec, value)
