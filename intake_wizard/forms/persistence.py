"""
Draft persistence for intake wizards

Drafts are full snapshots of the form values stored under one key per wizard
type. The stored representation is a JSON envelope produced through
marshmallow schemas; the same values always produce the same string.
Attachments keep only their metadata, and dates are tagged so they come back
as the same type.

A draft that cannot be decoded is logged and treated as absent, so a broken
draft never blocks a wizard from starting.
"""

import json
import logging
from datetime import date, datetime, time
from typing import Any, Dict, Mapping, Optional

from dateutil.parser import isoparse
from flask import session
from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from .schema import Attachment
from ..utils.error_handling import WizardErrorHandler, WizardErrorSeverity, WizardErrorType

logger = logging.getLogger(__name__)

DRAFT_VERSION = 1
ATTACHMENT_MARKER = '__attachment__'
DATE_MARKER = '__date__'
DATETIME_MARKER = '__datetime__'
TIME_MARKER = '__time__'


class AttachmentSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    filename = fields.String(required=True)
    size = fields.Integer(load_default=0)
    content_type = fields.String(data_key='contentType', allow_none=True, load_default=None)

    @post_load
    def make_attachment(self, data, **kwargs):
        return Attachment(**data)


_attachment_schema = AttachmentSchema()


def encode_value(value: Any) -> Any:
    """Convert a form value to its JSON-safe draft form"""
    if isinstance(value, Attachment):
        data = _attachment_schema.dump(value)
        data[ATTACHMENT_MARKER] = True
        return data
    if isinstance(value, datetime):
        return {DATETIME_MARKER: value.isoformat()}
    if isinstance(value, date):
        return {DATE_MARKER: value.isoformat()}
    if isinstance(value, time):
        return {TIME_MARKER: value.isoformat()}
    if isinstance(value, Mapping):
        return {str(key): encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"Cannot store value of type {type(value).__name__} in a draft")


def decode_value(value: Any) -> Any:
    """Inverse of ``encode_value``"""
    if isinstance(value, dict):
        if value.get(ATTACHMENT_MARKER) is True:
            return _attachment_schema.load(value)
        if set(value) == {DATETIME_MARKER}:
            return isoparse(value[DATETIME_MARKER])
        if set(value) == {DATE_MARKER}:
            return isoparse(value[DATE_MARKER]).date()
        if set(value) == {TIME_MARKER}:
            return time.fromisoformat(value[TIME_MARKER])
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


class FormValue(fields.Field):
    """marshmallow field carrying an arbitrary form value"""

    def _serialize(self, value, attr, obj, **kwargs):
        return encode_value(value)

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return decode_value(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Undecodable value: {e}") from e


class DraftSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    version = fields.Integer(required=True, validate=validate.Equal(DRAFT_VERSION))
    values = fields.Dict(keys=fields.String(), values=FormValue(allow_none=True), required=True)


_draft_schema = DraftSchema()


def dumps_draft(values: Mapping[str, Any]) -> str:
    """Serialize form values to the stored draft string"""
    payload = _draft_schema.dump({'version': DRAFT_VERSION, 'values': dict(values)})
    return json.dumps(payload, sort_keys=True, separators=(',', ':'))


def loads_draft(raw: str) -> Dict[str, Any]:
    """
    Parse a stored draft string

    Raises:
        ValidationError: If the payload is not a valid draft envelope
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Draft is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError("Draft envelope must be an object")
    return _draft_schema.load(data)['values']


class DraftStore:
    """
    Key-value draft store

    Subclasses implement ``_read``, ``_write`` and ``_delete`` over raw draft
    strings. Backend failures are logged and reported through the return
    value rather than raised. Corrupt drafts are recorded on ``error_handler``
    as ``DRAFT_CORRUPTION`` errors.
    """

    backend = 'abstract'

    def __init__(self):
        self.error_handler = WizardErrorHandler()

    def save(self, key: str, values: Mapping[str, Any]) -> bool:
        """Store a full snapshot of ``values`` under ``key``"""
        try:
            payload = dumps_draft(values)
            self._write(key, payload)
        except Exception as e:
            logger.error(f"Failed to save draft '{key}' to {self.backend} store: {e}")
            return False
        logger.info(f"Saved draft '{key}' with {len(values)} fields to {self.backend} store")
        return True

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored values, or None when absent or unreadable"""
        try:
            raw = self._read(key)
        except Exception as e:
            logger.error(f"Failed to read draft '{key}' from {self.backend} store: {e}")
            return None
        if raw is None:
            return None
        try:
            values = loads_draft(raw)
        except ValidationError as e:
            self.error_handler.handle_error(
                f"Ignoring corrupt draft '{key}': {e.messages}",
                WizardErrorType.DRAFT_CORRUPTION,
                WizardErrorSeverity.MEDIUM,
                detail=key,
            )
            return None
        logger.debug(f"Loaded draft '{key}' with {len(values)} fields")
        return values

    def clear(self, key: str) -> bool:
        """Delete the draft; clearing a missing draft is a no-op"""
        try:
            self._delete(key)
        except Exception as e:
            logger.error(f"Failed to clear draft '{key}' from {self.backend} store: {e}")
            return False
        logger.debug(f"Cleared draft '{key}'")
        return True

    def exists(self, key: str) -> bool:
        return self.load(key) is not None

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, payload: str):
        raise NotImplementedError

    def _delete(self, key: str):
        raise NotImplementedError


class MemoryDraftStore(DraftStore):
    """Process-local store, mainly for tests and single-process tools"""

    backend = 'memory'

    def __init__(self):
        super().__init__()
        self.drafts: Dict[str, str] = {}

    def _read(self, key):
        return self.drafts.get(key)

    def _write(self, key, payload):
        self.drafts[key] = payload

    def _delete(self, key):
        self.drafts.pop(key, None)


class SessionDraftStore(DraftStore):
    """Store drafts in the Flask session; requires a request context"""

    backend = 'session'

    def __init__(self, prefix: str = 'wizard_draft_'):
        super().__init__()
        self.prefix = prefix

    def _session_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _read(self, key):
        return session.get(self._session_key(key))

    def _write(self, key, payload):
        session[self._session_key(key)] = payload
        session.modified = True

    def _delete(self, key):
        session.pop(self._session_key(key), None)


class DatabaseDraftStore(DraftStore):
    """Store drafts in the ``wizard_drafts`` table through Flask-SQLAlchemy"""

    backend = 'database'

    def __init__(self, db=None):
        super().__init__()
        from ..models import WizardDraft, db as default_db
        self.db = db or default_db
        self.model = WizardDraft

    def _read(self, key):
        draft = self.db.session.query(self.model).filter_by(draft_key=key).one_or_none()
        return draft.payload if draft else None

    def _write(self, key, payload):
        try:
            draft = self.db.session.query(self.model).filter_by(draft_key=key).one_or_none()
            if draft is None:
                draft = self.model(draft_key=key, payload=payload)
                self.db.session.add(draft)
            else:
                draft.payload = payload
                draft.updated_at = datetime.utcnow()
            self.db.session.commit()
        except Exception:
            self.db.session.rollback()
            raise

    def _delete(self, key):
        try:
            self.db.session.query(self.model).filter_by(draft_key=key).delete()
            self.db.session.commit()
        except Exception:
            self.db.session.rollback()
            raise

    def keys(self):
        return [row.draft_key for row in self.db.session.query(self.model).order_by(self.model.draft_key)]


def create_draft_store(backend: str, prefix: str = 'wizard_draft_', db=None) -> DraftStore:
    """Build the draft store named by a persistence configuration"""
    if backend == 'session':
        return SessionDraftStore(prefix=prefix)
    if backend == 'memory':
        return MemoryDraftStore()
    if backend == 'database':
        return DatabaseDraftStore(db=db)
    raise ValueError(f"Unsupported storage backend: {backend}")
