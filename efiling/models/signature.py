"""
Document signatures.

Only the fact of signing is stored here; capturing the signature image or
OTP flow belongs to the UI.  A signature counts for workflow checks while
``is_active`` is true.
"""

from datetime import datetime, timezone

from efiling.models import db


class DocumentSignature(db.Model):
    __tablename__ = "efiling_document_signatures"

    id = db.Column(db.Integer, primary_key=True)
    file_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_files.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("efiling_users.id", ondelete="CASCADE"),
        nullable=False,
    )
    signature_type = db.Column(db.String(30), nullable=False, default="e-signature")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    signed_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        db.Index("ix_signature_file_user", "file_id", "user_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "file_id": self.file_id,
            "user_id": self.user_id,
            "signature_type": self.signature_type,
            "is_active": self.is_active,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
        }
