"""
Intake Wizard Configuration

Dataclass configuration for wizard behavior and draft persistence, with named
presets and conversion to and from plain dictionaries so a configuration can
be supplied through Flask's ``app.config``.
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class WizardValidationMode(Enum):
    """When field edits trigger validation"""
    IMMEDIATE = "immediate"  # Validate every edited field
    ON_BLUR = "on_blur"     # Re-validate only fields already showing an error
    ON_STEP_CHANGE = "on_step_change"  # Validate only when changing steps


STORAGE_BACKENDS = ("session", "memory", "database")


@dataclass
class WizardBehaviorConfig:
    """Navigation and validation behavior"""

    # Navigation
    allow_step_navigation: bool = True
    allow_backward_navigation: bool = True

    # Validation
    validation_mode: WizardValidationMode = WizardValidationMode.ON_BLUR
    scroll_to_first_error: bool = True
    report_hidden_refinement_errors: bool = False

    # Submission
    lock_edits_while_submitting: bool = True

    # Drafts
    resume_drafts: bool = True


@dataclass
class WizardPersistenceConfig:
    """Draft and live-state storage"""

    storage_backend: str = "session"  # session, memory, database
    storage_prefix: str = "wizard_draft_"
    state_prefix: str = "intake_state_"


@dataclass
class WizardConfig:
    """Complete wizard configuration"""

    behavior: WizardBehaviorConfig = field(default_factory=WizardBehaviorConfig)
    persistence: WizardPersistenceConfig = field(default_factory=WizardPersistenceConfig)

    def validate_config(self) -> List[str]:
        """
        Validate the configuration and return any issues found

        Returns:
            List of validation error messages
        """
        errors = []

        if self.persistence.storage_backend not in STORAGE_BACKENDS:
            errors.append(
                f"Storage backend must be one of {', '.join(STORAGE_BACKENDS)}"
            )
        if not self.persistence.storage_prefix:
            errors.append("Storage prefix must not be empty")
        if self.persistence.storage_prefix == self.persistence.state_prefix:
            errors.append("Draft and state prefixes must differ")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        data = dataclasses.asdict(self)
        data['behavior']['validation_mode'] = self.behavior.validation_mode.value
        return data

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'WizardConfig':
        """Create configuration from dictionary"""
        behavior_dict = dict(config_dict.get('behavior', {}))
        persistence_dict = dict(config_dict.get('persistence', {}))

        if 'validation_mode' in behavior_dict and isinstance(behavior_dict['validation_mode'], str):
            behavior_dict['validation_mode'] = WizardValidationMode(behavior_dict['validation_mode'])

        return cls(
            behavior=WizardBehaviorConfig(**behavior_dict),
            persistence=WizardPersistenceConfig(**persistence_dict),
        )

    def merge_with(self, other_config: 'WizardConfig') -> 'WizardConfig':
        """
        Merge this configuration with another, with the other taking precedence

        Args:
            other_config: Configuration to merge with

        Returns:
            New merged configuration
        """
        return self.with_overrides(other_config.to_dict())

    def with_overrides(self, overrides: Dict[str, Any]) -> 'WizardConfig':
        """Return a copy with a partial nested dictionary applied on top"""
        return WizardConfig.from_dict(deep_merge(self.to_dict(), overrides))


def deep_merge(dict1: Dict[str, Any], dict2: Dict[str, Any]) -> Dict[str, Any]:
    result = dict1.copy()
    for key, value in dict2.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Pre-defined configuration presets
WIZARD_CONFIG_PRESETS = {
    "strict": WizardConfig(
        behavior=WizardBehaviorConfig(
            validation_mode=WizardValidationMode.IMMEDIATE,
            allow_step_navigation=False,
            report_hidden_refinement_errors=True,
        )
    ),

    "relaxed": WizardConfig(
        behavior=WizardBehaviorConfig(
            validation_mode=WizardValidationMode.ON_STEP_CHANGE,
            lock_edits_while_submitting=False,
        )
    ),

    "database": WizardConfig(
        persistence=WizardPersistenceConfig(
            storage_backend="database",
        )
    ),

    "testing": WizardConfig(
        persistence=WizardPersistenceConfig(
            storage_backend="memory",
        ),
    ),
}


def get_wizard_config(preset_name: str = "default") -> WizardConfig:
    """
    Get a wizard configuration by preset name

    Args:
        preset_name: Name of the preset configuration

    Returns:
        WizardConfig instance
    """
    if preset_name == "default":
        return WizardConfig()

    if preset_name not in WIZARD_CONFIG_PRESETS:
        raise ValueError(f"Unknown preset '{preset_name}'. Available presets: {list(WIZARD_CONFIG_PRESETS.keys())}")

    return WizardConfig.from_dict(WIZARD_CONFIG_PRESETS[preset_name].to_dict())


def create_custom_config(**kwargs) -> WizardConfig:
    """
    Create a custom wizard configuration

    Args:
        **kwargs: Configuration parameters

    Returns:
        WizardConfig instance
    """
    return WizardConfig.from_dict(kwargs)
