"""
Intake Wizard Configuration Package
"""

from .wizard import (
    WizardConfig,
    WizardBehaviorConfig,
    WizardPersistenceConfig,
    WizardValidationMode,
    STORAGE_BACKENDS,
    WIZARD_CONFIG_PRESETS,
    get_wizard_config,
    create_custom_config
)

__all__ = [
    'WizardConfig',
    'WizardBehaviorConfig',
    'WizardPersistenceConfig',
    'WizardValidationMode',
    'STORAGE_BACKENDS',
    'WIZARD_CONFIG_PRESETS',
    'get_wizard_config',
    'create_custom_config'
]
