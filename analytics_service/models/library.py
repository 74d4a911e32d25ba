from datetime import datetime, timezone
from analytics_service.extensions import db


class LibraryEntry(db.Model):
    __tablename__ = 'library_entries'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.String(36), nullable=False)
    novel_id = db.Column(db.Integer, nullable=False)
    create_time = db.Column(db.DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        db.UniqueConstraint('user_id', 'novel_id', name='uq_library_user_novel'),
    )
