from analytics_service.models.library import LibraryEntry


class LibraryRepository:
    def __init__(self, session):
        self.session = session

    def check_novels_in_library(self, user_id, novel_ids):
        """Map each novel id to whether it is in the user's library."""
        novel_ids = list(novel_ids)
        if not novel_ids:
            return {}
        rows = (
            self.session.query(LibraryEntry.novel_id)
            .filter(LibraryEntry.user_id == user_id, LibraryEntry.novel_id.in_(novel_ids))
            .all()
        )
        present = {novel_id for (novel_id,) in rows}
        return {novel_id: novel_id in present for novel_id in novel_ids}
