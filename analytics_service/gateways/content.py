from analytics_service.schemas import (
    CategoryStatistics,
    CategorySummary,
    ChapterSummary,
    NovelSummary,
    Page,
    decode_list,
    decode_scalar,
)
from analytics_service.gateways.base import ServiceGateway


class ContentGateway(ServiceGateway):
    service_name = 'content-service'
    display_name = 'Content'

    # Novels

    def get_novel_by_id(self, novel_id):
        return self._get(
            'getNovelById', f'/api/v1/novels/{novel_id}', NovelSummary.from_dict,
            detail=f'id {novel_id}',
        )

    def get_novels_batch(self, novel_ids):
        return self._post(
            'getNovelsBatch', '/api/v1/novels/batch/get', decode_list(NovelSummary.from_dict),
            body=list(novel_ids), detail=f'{len(novel_ids)} ids',
        )

    def get_novels(self, page=0, size=50, sort='createTime', order='desc'):
        return self._get(
            'getNovels', '/api/v1/novels/admin/all', Page.decoder(NovelSummary.from_dict),
            params={'page': page, 'size': size, 'sort': sort, 'order': order},
        )

    def get_novel_count(self):
        return self._get('getNovelCount', '/api/v1/novels/count', decode_scalar(int))

    def get_novels_by_author(self, author_id, page=0, size=50):
        return self._get(
            'getNovelsByAuthor', f'/api/v1/novels/author/{author_id}',
            Page.decoder(NovelSummary.from_dict),
            params={'page': page, 'size': size}, detail=f'id {author_id}',
        )

    def get_novels_by_category(self, category_id, page=0, size=50):
        return self._get(
            'getNovelsByCategory', f'/api/v1/novels/category/{category_id}',
            Page.decoder(NovelSummary.from_dict),
            params={'page': page, 'size': size}, detail=f'id {category_id}',
        )

    # Categories

    def get_category_by_id(self, category_id):
        return self._get(
            'getCategoryById', f'/api/v1/categories/{category_id}', CategorySummary.from_dict,
            detail=f'id {category_id}',
        )

    def get_all_categories(self):
        return self._get(
            'getAllCategories', '/api/v1/categories', decode_list(CategorySummary.from_dict),
        )

    def get_category_statistics(self, category_id):
        return self._get(
            'getCategoryStatistics', f'/api/v1/categories/{category_id}/statistics',
            CategoryStatistics.from_dict, detail=f'id {category_id}',
        )

    # Chapters

    def get_chapter_by_uuid(self, chapter_uuid):
        return self._get(
            'getChapterByUuid', f'/api/v1/chapters/{chapter_uuid}', ChapterSummary.from_dict,
            detail=f'id {chapter_uuid}',
        )

    def get_chapters_batch(self, chapter_ids):
        return self._post(
            'getChaptersBatch', '/api/v1/chapters/batch/get', decode_list(ChapterSummary.from_dict),
            body=list(chapter_ids), detail=f'{len(chapter_ids)} ids',
        )
