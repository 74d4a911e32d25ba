from analytics_service.models.history import History


class HistoryRepository:
    """Narrow CRUD contract over the ``history`` table."""

    def __init__(self, session):
        self.session = session

    def find_by_id(self, history_id):
        return self.session.get(History, history_id)

    def find_by_user_and_novel(self, user_id, novel_id):
        return (
            self.session.query(History)
            .filter_by(user_id=user_id, novel_id=novel_id)
            .first()
        )

    def find_by_user_paginated(self, user_id, offset, size):
        """Most recently read first."""
        return (
            self.session.query(History)
            .filter_by(user_id=user_id)
            .order_by(History.update_time.desc(), History.id.desc())
            .offset(offset)
            .limit(size)
            .all()
        )

    def count_by_user(self, user_id):
        return self.session.query(History).filter_by(user_id=user_id).count()

    def save(self, history):
        self.session.add(history)
        self.session.commit()
        return history

    def delete(self, history):
        self.session.delete(history)
        self.session.commit()

    def delete_by_user(self, user_id):
        deleted = self.session.query(History).filter_by(user_id=user_id).delete()
        self.session.commit()
        return deleted

    def rollback(self):
        self.session.rollback()
