from datetime import datetime, timezone

from doko import db


def _utcnow():
    return datetime.now(timezone.utc)


class StoredBlob(db.Model):
    """Opaque key/value record; the value is JSON text owned by the caller."""

    __tablename__ = 'stored_blob'
    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def to_dict(self):
        return {
            'key': self.key,
            'size': len(self.value or ''),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
