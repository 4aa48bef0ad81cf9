"""
Tests for wizard configuration and presets
"""

import pytest

from intake_wizard.config import (
    WIZARD_CONFIG_PRESETS,
    WizardConfig,
    WizardValidationMode,
    create_custom_config,
    get_wizard_config,
)


class TestWizardConfig:
    """Test configuration objects"""

    def test_defaults(self):
        config = WizardConfig()
        assert config.behavior.validation_mode == WizardValidationMode.ON_BLUR
        assert config.behavior.report_hidden_refinement_errors is False
        assert config.behavior.lock_edits_while_submitting is True
        assert config.persistence.storage_backend == 'session'
        assert config.validate_config() == []

    def test_dict_round_trip(self):
        config = get_wizard_config('strict')
        data = config.to_dict()
        assert data['behavior']['validation_mode'] == 'immediate'
        assert WizardConfig.from_dict(data) == config

    def test_with_overrides(self):
        config = WizardConfig().with_overrides({
            'behavior': {'validation_mode': 'on_step_change'},
            'persistence': {'storage_prefix': 'draft_'},
        })
        assert config.behavior.validation_mode == WizardValidationMode.ON_STEP_CHANGE
        assert config.behavior.allow_step_navigation is True
        assert config.persistence.storage_prefix == 'draft_'

    def test_merge_with(self):
        merged = WizardConfig().merge_with(get_wizard_config('testing'))
        assert merged.persistence.storage_backend == 'memory'
        assert merged.behavior == WizardConfig().behavior

    def test_validate_config(self):
        config = create_custom_config(persistence={'storage_backend': 'redis', 'storage_prefix': ''})
        errors = config.validate_config()
        assert "Storage backend must be one of session, memory, database" in errors
        assert "Storage prefix must not be empty" in errors


class TestPresets:
    """Test named presets"""

    def test_known_presets(self):
        assert get_wizard_config('strict').behavior.allow_step_navigation is False
        assert get_wizard_config('relaxed').behavior.validation_mode == WizardValidationMode.ON_STEP_CHANGE
        assert get_wizard_config('database').persistence.storage_backend == 'database'

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            get_wizard_config('turbo')

    def test_presets_are_copies(self):
        config = get_wizard_config('testing')
        config.persistence.storage_backend = 'session'
        assert WIZARD_CONFIG_PRESETS['testing'].persistence.storage_backend == 'memory'
