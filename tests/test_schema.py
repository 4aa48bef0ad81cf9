"""
Tests for field schemas, step tables and wizard definitions
"""

from enum import Enum

import pytest

from intake_wizard.forms.schema import (
    Attachment,
    FieldKind,
    FieldSchema,
    FieldSpec,
    Refinement,
    StepDefinition,
    StepTable,
    WizardDefinition,
    conditions_met,
    field_name,
    humanize,
    is_blank,
    nest_values,
)
from intake_wizard.utils.error_handling import SchemaError


class Color(str, Enum):
    NAME = "name"
    SHADE = "shade"


def make_schema():
    return FieldSchema(
        fields=[
            FieldSpec('name', required=True),
            FieldSpec('plan', "Plan", FieldKind.CHOICE, required=True, choices=('basic', 'premium')),
            FieldSpec('extras.code', "Extras code", required_when={'plan': 'premium'}),
            FieldSpec('agree', "Agree", FieldKind.BOOLEAN, required=True),
        ],
    )


class TestHelpers:
    """Test the small schema helpers"""

    def test_field_name_accepts_enum_members(self):
        assert field_name(Color.NAME) == 'name'
        assert field_name('shade') == 'shade'

    def test_humanize_dotted_camel_case(self):
        assert humanize('driverLicense.expiryDate') == 'Driver license expiry date'
        assert humanize('firstName') == 'First name'

    def test_is_blank(self):
        assert is_blank(None)
        assert is_blank('   ')
        assert is_blank([])
        assert is_blank({})
        assert not is_blank(0)
        assert not is_blank(False)
        assert not is_blank('x')

    def test_conditions_met_with_any_of(self):
        assert conditions_met({'role': ('emt', 'paramedic')}, {'role': 'emt'})
        assert not conditions_met({'role': 'emt'}, {'role': 'driver'})
        assert conditions_met(None, {})

    def test_nest_values(self):
        nested = nest_values({'a.b': 1, 'a.c': 2, 'd': 3})
        assert nested == {'a': {'b': 1, 'c': 2}, 'd': 3}

    def test_attachment_extension_and_dict(self):
        attachment = Attachment('Report.PDF', 120, 'application/pdf', content=b'data')
        assert attachment.extension == '.pdf'
        assert attachment.to_dict() == {
            'filename': 'Report.PDF', 'size': 120, 'contentType': 'application/pdf',
        }
        assert Attachment('noext').extension == ''


class TestFieldSpec:
    """Test FieldSpec declarations"""

    def test_defaults_label_and_name(self):
        spec = FieldSpec(Color.SHADE)
        assert spec.name == 'shade'
        assert spec.label == 'Shade'
        assert spec.kind == FieldKind.STRING

    def test_choice_without_choices_rejected(self):
        with pytest.raises(SchemaError):
            FieldSpec('plan', kind=FieldKind.CHOICE)

    def test_conditional_required(self):
        spec = FieldSpec('code', required_when={Color.NAME: 'x'})
        assert spec.required_when == {'name': 'x'}
        assert spec.is_required({'name': 'x'})
        assert not spec.is_required({'name': 'y'})

    def test_empty_value_is_a_fresh_copy(self):
        spec = FieldSpec('tags', kind=FieldKind.LIST)
        first = spec.empty_value()
        first.append('x')
        assert spec.empty_value() == []

    def test_explicit_default_wins(self):
        assert FieldSpec('active', kind=FieldKind.BOOLEAN, default=True).empty_value() is True

    def test_to_dict(self):
        data = FieldSpec('plan', "Plan", FieldKind.CHOICE, choices=('a', 'b')).to_dict()
        assert data['kind'] == 'choice'
        assert data['choices'] == ['a', 'b']


class TestFieldSchema:
    """Test FieldSchema consistency checks"""

    def test_duplicate_field_rejected(self):
        with pytest.raises(SchemaError):
            FieldSchema([FieldSpec('a'), FieldSpec('a')])

    def test_unknown_condition_field_rejected(self):
        with pytest.raises(SchemaError):
            FieldSchema([FieldSpec('a', required_when={'missing': 1})])

    def test_refinement_with_unknown_field_rejected(self):
        with pytest.raises(SchemaError):
            FieldSchema(
                [FieldSpec('a')],
                refinements=[Refinement(['a'], lambda v: True, "msg", attach_to='missing')],
            )

    def test_lookup(self):
        schema = make_schema()
        assert 'plan' in schema
        assert schema['plan'].label == 'Plan'
        assert len(schema) == 4
        with pytest.raises(SchemaError):
            schema['missing']

    def test_defaults(self):
        defaults = make_schema().defaults()
        assert defaults['name'] == ''
        assert defaults['plan'] is None
        assert defaults['agree'] is False

    def test_refinements_for(self):
        refinement = Refinement(['plan'], lambda v: True, "msg", attach_to='extras.code')
        schema = FieldSchema(make_schema(), refinements=[refinement])
        assert schema.refinements_for(['plan']) == [refinement]
        assert schema.refinements_for(['extras.code']) == [refinement]
        assert schema.refinements_for(['name']) == []
        assert refinement.name == 'extras.code_refinement'


class TestStepTable:
    """Test step table construction and the active sequence"""

    def setup_method(self):
        self.schema = make_schema()

    def steps(self, **extras_kwargs):
        return [
            StepDefinition('account', 1, "Account", ['name', 'plan']),
            StepDefinition('extras', 2, "Extras", ['extras.code'],
                           **(extras_kwargs or {'include_when': {'plan': 'premium'}})),
            StepDefinition('confirm', 3, "Confirm", ['agree']),
        ]

    def test_steps_sorted_by_ordinal(self):
        table = StepTable(list(reversed(self.steps())), self.schema)
        assert [step.id for step in table] == ['account', 'extras', 'confirm']
        assert table.first.id == 'account'

    def test_ordinals_must_be_contiguous(self):
        steps = self.steps()
        steps[2].ordinal = 4
        with pytest.raises(SchemaError):
            StepTable(steps, self.schema)

    def test_duplicate_step_id_rejected(self):
        steps = self.steps()
        steps[2].id = 'account'
        with pytest.raises(SchemaError):
            StepTable(steps, self.schema)

    def test_unknown_field_rejected(self):
        steps = self.steps()
        steps[2].fields.append('missing')
        with pytest.raises(SchemaError):
            StepTable(steps, self.schema)

    def test_field_owned_twice_rejected(self):
        steps = self.steps()
        steps[2].fields.append('name')
        with pytest.raises(SchemaError):
            StepTable(steps, self.schema)

    def test_empty_table_rejected(self):
        with pytest.raises(SchemaError):
            StepTable([], self.schema)

    def test_include_when(self):
        table = StepTable(self.steps(), self.schema)
        assert [s.id for s in table.active_steps({'plan': 'basic'})] == ['account', 'confirm']
        assert [s.id for s in table.active_steps({'plan': 'premium'})] == ['account', 'extras', 'confirm']

    def test_include_if_predicate(self):
        table = StepTable(self.steps(include_if=lambda values: values.get('name') == 'vip'), self.schema)
        assert table.get('extras').is_conditional
        assert len(table.active_steps({'name': 'vip'})) == 3
        assert len(table.active_steps({'name': 'someone'})) == 2

    def test_owner_and_orphans(self):
        steps = self.steps()
        steps[2].fields = []
        table = StepTable(steps, self.schema)
        assert table.owner_of('plan').id == 'account'
        assert table.orphan_fields() == ['agree']

    def test_step_to_dict(self):
        step = StepTable(self.steps(), self.schema).get('extras')
        data = step.to_dict()
        assert data['conditional'] is True
        assert data['include_when'] == {'plan': 'premium'}
        assert data['icon'] == 'fa-edit'


class TestWizardDefinition:
    """Test WizardDefinition helpers"""

    def setup_method(self):
        self.definition = WizardDefinition(
            key='signup',
            title="Sign up",
            schema=make_schema(),
            steps=[
                StepDefinition('account', 1, "Account", ['name', 'plan']),
                StepDefinition('extras', 2, "Extras", ['extras.code'], include_when={'plan': 'premium'}),
                StepDefinition('confirm', 3, "Confirm", []),
            ],
        )

    def test_default_draft_key(self):
        assert self.definition.draft_key == 'signup_form_draft'

    def test_build_submission_uses_active_steps_only(self):
        values = {'name': 'Ann', 'plan': 'basic', 'extras.code': 'X1', 'agree': True}
        assert self.definition.build_submission(values) == {'name': 'Ann', 'plan': 'basic'}

        values['plan'] = 'premium'
        assert self.definition.build_submission(values) == {
            'name': 'Ann', 'plan': 'premium', 'extras': {'code': 'X1'},
        }

    def test_check_reports_orphans(self):
        assert self.definition.check() == ["Field 'agree' is not owned by any step"]

    def test_to_dict(self):
        data = self.definition.to_dict()
        assert data['key'] == 'signup'
        assert [step['id'] for step in data['steps']] == ['account', 'extras', 'confirm']
        assert len(data['fields']) == 4
