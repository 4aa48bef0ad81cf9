"""
Flask extension wiring the intake wizards into an application

Reads its configuration from ``app.config``:

- ``INTAKE_WIZARD_PRESET``: name of a configuration preset (``default``)
- ``INTAKE_WIZARD_STORAGE_BACKEND``: ``session``, ``memory`` or ``database``
- ``INTAKE_WIZARD_STORAGE_PREFIX``: key prefix for session drafts
- ``INTAKE_WIZARD_CONFIG``: nested dictionary applied on top of the preset
"""

import logging
from datetime import date
from typing import Any, Callable, Dict, Optional

from flask import Flask

from .config import get_wizard_config
from .forms.persistence import DraftStore, create_draft_store
from .forms.schema import WizardDefinition
from .forms.wizard import FinalizeCallable, WizardController, WizardState
from .utils.error_handling import WizardNotFound
from .wizards import WIZARDS

logger = logging.getLogger(__name__)


class IntakeWizard:
    """
    Registry of wizard definitions, finalize operations and the draft store

    Usage::

        intake = IntakeWizard(app)
        intake.register_finalizer('patient', create_patient)
    """

    def __init__(self, app: Optional[Flask] = None, today: Optional[date] = None):
        self.app = app
        self.today = today
        self.config = get_wizard_config()
        self.wizards: Dict[str, WizardDefinition] = dict(WIZARDS)
        self.finalizers: Dict[str, FinalizeCallable] = {}
        self.draft_store: Optional[DraftStore] = None
        self.db = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask):
        """
        Initialize the extension with a Flask app

        Raises:
            ValueError: If the configured preset or backend is invalid
        """
        self.app = app
        app.config.setdefault('INTAKE_WIZARD_PRESET', 'default')
        app.config.setdefault('INTAKE_WIZARD_STORAGE_BACKEND', None)
        app.config.setdefault('INTAKE_WIZARD_STORAGE_PREFIX', None)
        app.config.setdefault('INTAKE_WIZARD_CONFIG', {})

        self.config = self._build_config(app)
        issues = self.config.validate_config()
        if issues:
            raise ValueError(f"Invalid intake wizard configuration: {'; '.join(issues)}")

        persistence = self.config.persistence
        if persistence.storage_backend == 'database':
            from .models import db
            if 'sqlalchemy' not in app.extensions:
                db.init_app(app)
            self.db = db
        self.draft_store = create_draft_store(
            persistence.storage_backend, prefix=persistence.storage_prefix, db=self.db
        )

        from .views import intake_bp
        app.register_blueprint(intake_bp)

        app.extensions['intake_wizard'] = self
        logger.info(
            f"Intake wizards initialized with {len(self.wizards)} wizards "
            f"and the {persistence.storage_backend} draft store"
        )

    def _build_config(self, app: Flask):
        config = get_wizard_config(app.config['INTAKE_WIZARD_PRESET'])
        persistence: Dict[str, Any] = {}
        if app.config['INTAKE_WIZARD_STORAGE_BACKEND']:
            persistence['storage_backend'] = app.config['INTAKE_WIZARD_STORAGE_BACKEND']
        if app.config['INTAKE_WIZARD_STORAGE_PREFIX']:
            persistence['storage_prefix'] = app.config['INTAKE_WIZARD_STORAGE_PREFIX']
        if persistence:
            config = config.with_overrides({'persistence': persistence})
        if app.config['INTAKE_WIZARD_CONFIG']:
            config = config.with_overrides(app.config['INTAKE_WIZARD_CONFIG'])
        return config

    def register_wizard(self, definition: WizardDefinition):
        """Add or replace a wizard definition"""
        self.wizards[definition.key] = definition

    def register_finalizer(self, key: str, finalize: Callable[[Dict[str, Any]], Any]):
        """Set the operation that receives a wizard's validated submission"""
        self.get_definition(key)
        self.finalizers[key] = finalize

    def get_definition(self, key: str) -> WizardDefinition:
        try:
            return self.wizards[key]
        except KeyError:
            raise WizardNotFound(key) from None

    def create_controller(self, key: str, state: Optional[WizardState] = None) -> WizardController:
        """
        Build a controller for one request

        Without ``state`` the controller starts a fresh run and resumes the
        saved draft for the wizard type.
        """
        definition = self.get_definition(key)
        finalize = self.finalizers.get(key)
        if finalize is None:
            finalize = self._default_finalizer(key)
        return WizardController(
            definition,
            draft_store=self.draft_store,
            finalize=finalize,
            config=self.config,
            today=self.today,
            state=state,
        )

    @staticmethod
    def _default_finalizer(key: str) -> FinalizeCallable:
        def finalize(payload: Dict[str, Any]):
            logger.info(f"Using default submission processing for wizard {key}")
            logger.warning("A finalize operation should be registered for each wizard with register_finalizer")
        return finalize
