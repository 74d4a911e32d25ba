from analytics_service.schemas import GamificationStats, decode_list
from analytics_service.gateways.base import ServiceGateway


class GamificationGateway(ServiceGateway):
    service_name = 'gamification-service'
    display_name = 'Gamification'

    def get_all_users_stats(self):
        return self._get(
            'getAllUsersStats', '/api/v1/gamification/stats/all',
            decode_list(GamificationStats.from_dict),
        )

    def get_user_stats(self, user_id):
        return self._get(
            'getUserStats', f'/api/v1/gamification/stats/userId/{user_id}',
            GamificationStats.from_dict, detail=f'id {user_id}',
        )

    def get_batch_users_stats(self, user_ids):
        return self._post(
            'getBatchUsersStats', '/api/v1/gamification/stats/batch',
            decode_list(GamificationStats.from_dict),
            body=[str(u) for u in user_ids], detail=f'{len(user_ids)} ids',
        )
