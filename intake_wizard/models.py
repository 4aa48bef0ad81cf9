from datetime import datetime

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


class WizardDraft(db.Model):
    """One saved draft per wizard type"""

    __tablename__ = "wizard_drafts"

    id = db.Column(db.Integer, primary_key=True)
    draft_key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    payload = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<WizardDraft {self.draft_key}>"
