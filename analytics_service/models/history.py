from uuid import uuid4
from datetime import datetime, timezone
from analytics_service.extensions import db


def _utcnow():
    return datetime.now(timezone.utc)


class History(db.Model):
    """Latest chapter a user read in a novel.

    ``user_id``, ``novel_id`` and ``chapter_id`` reference other services
    and are not foreign keys; they may dangle.
    """

    __tablename__ = 'history'

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    uuid = db.Column(db.String(36), nullable=False, unique=True, default=lambda: str(uuid4()))
    user_id = db.Column(db.String(36), nullable=False)
    novel_id = db.Column(db.Integer, nullable=False)
    chapter_id = db.Column(db.Integer, nullable=False)
    create_time = db.Column(db.DateTime, nullable=False, default=_utcnow)
    update_time = db.Column(db.DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint('user_id', 'novel_id', name='uq_history_user_novel'),
        db.Index('ix_history_user_updated', 'user_id', update_time.desc()),
        db.Index('ix_history_update_time', 'update_time'),
    )
