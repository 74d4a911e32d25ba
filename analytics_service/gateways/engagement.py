from analytics_service.schemas import CommentStatistics, ModerationStatistics, Page, RatingStats, Review
from analytics_service.gateways.base import ServiceGateway


class EngagementGateway(ServiceGateway):
    service_name = 'engagement-service'
    display_name = 'Engagement'

    def get_novel_rating_stats(self, novel_id):
        return self._get(
            'getNovelRatingStats', f'/api/v1/reviews/novel/{novel_id}/rating-stats',
            RatingStats.from_dict, detail=f'id {novel_id}',
        )

    def get_novel_reviews(self, novel_id, page=0, size=10):
        return self._get(
            'getNovelReviews', f'/api/v1/reviews/novel/{novel_id}', Page.decoder(Review.from_dict),
            params={'page': page, 'size': size}, detail=f'id {novel_id}',
        )

    def get_chapter_comment_stats(self, chapter_id):
        return self._get(
            'getChapterCommentStats', f'/api/v1/comments/chapter/{chapter_id}/statistics',
            CommentStatistics.from_dict, detail=f'id {chapter_id}',
        )

    def get_moderation_statistics(self):
        return self._get(
            'getModerationStatistics', '/api/v1/comments/admin/statistics',
            ModerationStatistics.from_dict,
        )
