"""
Field schema and step definition table for intake wizards

A wizard is declared as data: a ``FieldSchema`` listing every logical field
with its type and constraints, a list of cross-field ``Refinement`` rules, and
a ``StepTable`` of ``StepDefinition`` entries that each own a subset of the
fields. Steps may carry an inclusion predicate so the active sequence is a
pure function of the entered values.

Field identifiers are usually declared as a ``str`` Enum per wizard; every
constructor here accepts either enum members or plain strings.
"""

import copy
import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..utils.error_handling import SchemaError

logger = logging.getLogger(__name__)

FieldName = Union[str, Enum]
FormValues = Dict[str, Any]


def field_name(name: FieldName) -> str:
    """Normalize an enum member or string to the plain field identifier"""
    if isinstance(name, Enum):
        return str(name.value)
    return str(name)


def humanize(name: str) -> str:
    """Turn ``driverLicense.expiryDate`` into ``Driver license expiry date``"""
    words = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', name.replace('.', ' ')).split()
    text = ' '.join(word.lower() for word in words)
    return text[:1].upper() + text[1:]


def is_blank(value: Any) -> bool:
    """True for values a user has not filled in"""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def conditions_met(conditions: Optional[Mapping[str, Any]], values: Mapping[str, Any]) -> bool:
    """
    Check a declarative ``{field: expected}`` condition mapping

    Every listed field must equal its expected value. An expected value given
    as a tuple, list, set or frozenset matches any of its members.
    """
    for condition_field, expected in (conditions or {}).items():
        actual = values.get(field_name(condition_field))
        if isinstance(expected, (tuple, list, set, frozenset)):
            if actual not in expected:
                return False
        elif actual != expected:
            return False
    return True


@dataclass
class Attachment:
    """
    Reference to an uploaded file

    Only ``filename``, ``size`` and ``content_type`` survive a draft round
    trip; the raw ``content`` is transient.
    """
    filename: str
    size: int = 0
    content_type: Optional[str] = None
    content: Optional[bytes] = field(default=None, repr=False, compare=False)

    @property
    def extension(self) -> str:
        if '.' not in self.filename:
            return ''
        return '.' + self.filename.rsplit('.', 1)[1].lower()

    @classmethod
    def from_file_storage(cls, storage) -> 'Attachment':
        """Build from a werkzeug ``FileStorage`` upload"""
        content = storage.read()
        return cls(
            filename=storage.filename or '',
            size=len(content),
            content_type=storage.mimetype or None,
            content=content,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'filename': self.filename,
            'size': self.size,
            'contentType': self.content_type,
        }


class FieldKind(Enum):
    """Data types a field can hold"""
    STRING = "string"
    TEXT = "text"
    EMAIL = "email"
    URL = "url"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    CHOICE = "choice"
    MULTI_CHOICE = "multi_choice"
    MAPPING = "mapping"
    LIST = "list"
    ATTACHMENT = "attachment"
    ATTACHMENT_LIST = "attachment_list"


_EMPTY_VALUES = {
    FieldKind.STRING: '',
    FieldKind.TEXT: '',
    FieldKind.EMAIL: '',
    FieldKind.URL: '',
    FieldKind.DATE: '',
    FieldKind.TIME: '',
    FieldKind.BOOLEAN: False,
    FieldKind.MULTI_CHOICE: [],
    FieldKind.MAPPING: {},
    FieldKind.LIST: [],
    FieldKind.ATTACHMENT_LIST: [],
}


@dataclass
class FieldSpec:
    """
    Declaration of a single logical field

    ``required_when`` makes the field required only while a
    ``{field: value}`` condition holds. ``min_value``/``max_value`` may be
    callables receiving the validation date, for bounds such as "next year".
    ``validators`` are callables taking the value and raising
    ``wtforms.ValidationError``. ``messages`` overrides the default message
    of a rule, keyed by rule name (``required``, ``min_length``,
    ``max_length``, ``pattern``, ``choice``, ``range``, ``min_items``,
    ``age``, ``past``, ``type``, ``email``, ``url``, ``accept``).
    """
    name: FieldName
    label: Optional[str] = None
    kind: FieldKind = FieldKind.STRING
    required: bool = False
    required_when: Optional[Dict[FieldName, Any]] = None
    default: Any = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Any = None
    max_value: Any = None
    exclusive_min: bool = False
    pattern: Optional[str] = None
    choices: Optional[Sequence[Any]] = None
    min_items: Optional[int] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    allow_past: bool = True
    accept: Optional[Sequence[str]] = None
    validators: List[Callable[[Any], None]] = field(default_factory=list)
    messages: Dict[str, str] = field(default_factory=dict)
    description: Optional[str] = None

    def __post_init__(self):
        self.name = field_name(self.name)
        if self.label is None:
            self.label = humanize(self.name)
        if self.required_when:
            self.required_when = {
                field_name(key): value for key, value in self.required_when.items()
            }
        if self.kind in (FieldKind.CHOICE, FieldKind.MULTI_CHOICE) and not self.choices:
            raise SchemaError(f"Field '{self.name}' of kind {self.kind.value} needs choices")

    def is_required(self, values: Mapping[str, Any]) -> bool:
        if self.required:
            return True
        if self.required_when:
            return conditions_met(self.required_when, values)
        return False

    def empty_value(self) -> Any:
        """Default value for a fresh wizard run"""
        if self.default is not None:
            return copy.deepcopy(self.default)
        return copy.deepcopy(_EMPTY_VALUES.get(self.kind))

    def message(self, rule: str, default: str) -> str:
        return self.messages.get(rule, default)

    def to_dict(self) -> Dict[str, Any]:
        """Field descriptor handed to the rendering layer"""
        return {
            'name': self.name,
            'label': self.label,
            'kind': self.kind.value,
            'required': self.required,
            'required_when': self.required_when,
            'choices': list(self.choices) if self.choices else None,
            'min_length': self.min_length,
            'max_length': self.max_length,
            'accept': list(self.accept) if self.accept else None,
            'description': self.description,
        }


@dataclass
class Refinement:
    """
    Cross-field rule

    ``check`` receives the full value mapping and returns True when the rule
    holds. A failing rule is reported once, against ``attach_to``.
    """
    trigger: Sequence[FieldName]
    check: Callable[[Mapping[str, Any]], bool]
    message: str
    attach_to: FieldName
    name: Optional[str] = None

    def __post_init__(self):
        self.trigger = [field_name(name) for name in self.trigger]
        self.attach_to = field_name(self.attach_to)
        if self.name is None:
            self.name = f"{self.attach_to}_refinement"

    @property
    def fields(self) -> List[str]:
        names = list(self.trigger)
        if self.attach_to not in names:
            names.append(self.attach_to)
        return names

    def applies_to(self, field_set: Iterable[str]) -> bool:
        return any(name in field_set for name in self.fields)


class FieldSchema:
    """Ordered registry of ``FieldSpec`` plus the cross-field refinements"""

    def __init__(self, fields: Iterable[FieldSpec], refinements: Optional[Iterable[Refinement]] = None):
        self._fields: 'OrderedDict[str, FieldSpec]' = OrderedDict()
        for spec in fields:
            if spec.name in self._fields:
                raise SchemaError(f"Field '{spec.name}' is declared twice")
            self._fields[spec.name] = spec
        self.refinements: List[Refinement] = list(refinements or [])

        for spec in self._fields.values():
            for condition_field in (spec.required_when or {}):
                if condition_field not in self._fields:
                    raise SchemaError(
                        f"Field '{spec.name}' depends on unknown field '{condition_field}'"
                    )
        for refinement in self.refinements:
            for name in refinement.fields:
                if name not in self._fields:
                    raise SchemaError(
                        f"Refinement '{refinement.name}' references unknown field '{name}'"
                    )

    def __contains__(self, name: FieldName) -> bool:
        return field_name(name) in self._fields

    def __getitem__(self, name: FieldName) -> FieldSpec:
        key = field_name(name)
        try:
            return self._fields[key]
        except KeyError:
            raise SchemaError(f"Unknown field '{key}'") from None

    def __iter__(self):
        return iter(self._fields.values())

    def __len__(self):
        return len(self._fields)

    def names(self) -> List[str]:
        return list(self._fields.keys())

    def defaults(self) -> FormValues:
        return {name: spec.empty_value() for name, spec in self._fields.items()}

    def refinements_for(self, field_set: Iterable[str]) -> List[Refinement]:
        field_set = set(field_set)
        return [r for r in self.refinements if r.applies_to(field_set)]

    def to_dict(self) -> List[Dict[str, Any]]:
        return [spec.to_dict() for spec in self._fields.values()]


class StepDefinition:
    """
    A single step of a wizard

    Each step owns a subset of the schema's fields and may be conditionally
    included, either through ``include_if`` (a predicate over the form
    values) or ``include_when`` (a declarative ``{field: value}`` mapping).
    """

    def __init__(self,
                 id: str,
                 ordinal: int,
                 title: str,
                 fields: Optional[Sequence[FieldName]] = None,
                 include_if: Optional[Callable[[Mapping[str, Any]], bool]] = None,
                 include_when: Optional[Dict[FieldName, Any]] = None,
                 description: Optional[str] = None,
                 icon: Optional[str] = None):
        self.id = id
        self.ordinal = ordinal
        self.title = title
        self.fields = [field_name(name) for name in (fields or [])]
        self.include_if = include_if
        self.include_when = {
            field_name(key): value for key, value in (include_when or {}).items()
        }
        self.description = description
        self.icon = icon or 'fa-edit'

    @property
    def is_conditional(self) -> bool:
        return self.include_if is not None or bool(self.include_when)

    def is_included(self, values: Mapping[str, Any]) -> bool:
        if self.include_when and not conditions_met(self.include_when, values):
            return False
        if self.include_if is not None:
            return bool(self.include_if(values))
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert step to dictionary for serialization"""
        return {
            'id': self.id,
            'ordinal': self.ordinal,
            'title': self.title,
            'fields': list(self.fields),
            'conditional': self.is_conditional,
            'include_when': self.include_when or None,
            'description': self.description,
            'icon': self.icon,
        }

    def __repr__(self):
        return f"<StepDefinition {self.ordinal}:{self.id}>"


class StepTable:
    """
    Ordered, schema-checked list of steps

    Ordinals must be unique and contiguous from 1, step ids unique, and every
    owned field declared in the schema and owned by exactly one step.
    """

    def __init__(self, steps: Iterable[StepDefinition], schema: FieldSchema):
        self.schema = schema
        self.steps: List[StepDefinition] = sorted(steps, key=lambda step: step.ordinal)
        self._by_id: Dict[str, StepDefinition] = {}
        self._owner: Dict[str, StepDefinition] = {}
        self._check()

    def _check(self):
        if not self.steps:
            raise SchemaError("A wizard needs at least one step")

        ordinals = [step.ordinal for step in self.steps]
        if ordinals != list(range(1, len(self.steps) + 1)):
            raise SchemaError(
                f"Step ordinals must be unique and contiguous from 1, got {ordinals}"
            )

        for step in self.steps:
            if step.id in self._by_id:
                raise SchemaError(f"Step id '{step.id}' is used twice")
            self._by_id[step.id] = step
            for name in step.fields:
                if name not in self.schema:
                    raise SchemaError(f"Step '{step.id}' owns unknown field '{name}'")
                if name in self._owner:
                    raise SchemaError(
                        f"Field '{name}' is owned by both '{self._owner[name].id}' and '{step.id}'"
                    )
                self._owner[name] = step
            for condition_field in step.include_when:
                if condition_field not in self.schema:
                    raise SchemaError(
                        f"Step '{step.id}' depends on unknown field '{condition_field}'"
                    )

    def __iter__(self):
        return iter(self.steps)

    def __len__(self):
        return len(self.steps)

    def __contains__(self, step_id: str) -> bool:
        return step_id in self._by_id

    def get(self, step_id: str) -> Optional[StepDefinition]:
        return self._by_id.get(step_id)

    @property
    def first(self) -> StepDefinition:
        return self.steps[0]

    def owner_of(self, name: FieldName) -> Optional[StepDefinition]:
        return self._owner.get(field_name(name))

    def active_steps(self, values: Mapping[str, Any]) -> List[StepDefinition]:
        """Steps whose inclusion predicate holds, in ordinal order"""
        return [step for step in self.steps if step.is_included(values)]

    def active_fields(self, values: Mapping[str, Any]) -> List[str]:
        names = []
        for step in self.active_steps(values):
            names.extend(step.fields)
        return names

    def orphan_fields(self) -> List[str]:
        """Schema fields that no step owns"""
        return [name for name in self.schema.names() if name not in self._owner]


def nest_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Expand dotted keys (``driverLicense.number``) into nested mappings"""
    nested: Dict[str, Any] = {}
    for key, value in values.items():
        parts = key.split('.')
        target = nested
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value
    return nested


class WizardDefinition:
    """Everything needed to run one kind of intake wizard"""

    def __init__(self,
                 key: str,
                 title: str,
                 schema: FieldSchema,
                 steps: Iterable[StepDefinition],
                 draft_key: Optional[str] = None,
                 description: Optional[str] = None):
        self.key = key
        self.title = title
        self.schema = schema
        self.steps = StepTable(steps, schema)
        self.draft_key = draft_key or f"{key}_form_draft"
        self.description = description

    def default_values(self) -> FormValues:
        return self.schema.defaults()

    def active_steps(self, values: Mapping[str, Any]) -> List[StepDefinition]:
        return self.steps.active_steps(values)

    def build_submission(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Build the finalize payload

        Only fields owned by active steps are included; fields of skipped
        steps and orphaned fields are left out. Dotted names are re-nested.
        """
        active = self.steps.active_fields(values)
        return nest_values({name: values.get(name) for name in active})

    def check(self) -> List[str]:
        """Non-fatal consistency warnings for the definition"""
        warnings = []
        for name in self.steps.orphan_fields():
            warnings.append(f"Field '{name}' is not owned by any step")
        for refinement in self.schema.refinements:
            if self.steps.owner_of(refinement.attach_to) is None:
                warnings.append(
                    f"Refinement '{refinement.name}' attaches to orphaned field '{refinement.attach_to}'"
                )
        return warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'title': self.title,
            'description': self.description,
            'draft_key': self.draft_key,
            'steps': [step.to_dict() for step in self.steps],
            'fields': self.schema.to_dict(),
        }

    def __repr__(self):
        return f"<WizardDefinition {self.key}>"
