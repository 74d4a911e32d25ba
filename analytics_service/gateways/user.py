from analytics_service.schemas import Page, UserProfile, decode_list
from analytics_service.gateways.base import ServiceGateway

UNKNOWN_USER = 'Unknown User'


class UserGateway(ServiceGateway):
    service_name = 'user-service'
    display_name = 'User'

    def get_user(self, user_id):
        return self._get(
            'getUser', f'/api/v1/users/{user_id}', UserProfile.from_dict,
            detail=f'id {user_id}',
        )

    def get_users_batch(self, user_ids):
        return self._post(
            'getUsersBatch', '/api/v1/users/batch/get', decode_list(UserProfile.from_dict),
            body=[str(u) for u in user_ids], detail=f'{len(user_ids)} ids',
        )

    def get_all_users_for_ranking(self, page=0, size=100, sort_by='createTime', sort_order='desc'):
        return self._get(
            'getAllUsersForRanking', '/api/v1/admin/users', Page.decoder(UserProfile.from_dict),
            params={'page': page, 'size': size, 'sortBy': sort_by, 'sortOrder': sort_order},
        )

    def validate_user(self, user_id) -> bool:
        """True only when the user service positively confirms the user."""
        return self.get_user(user_id).has_data

    def get_username(self, user_id) -> str:
        profile = self.get_user(user_id).payload_or(None)
        if profile is None or not profile.username:
            return UNKNOWN_USER
        return profile.username
