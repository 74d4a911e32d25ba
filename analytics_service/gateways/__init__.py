from dataclasses import dataclass

from analytics_service.gateways.circuit_breaker import get_breaker
from analytics_service.gateways.content import ContentGateway
from analytics_service.gateways.engagement import EngagementGateway
from analytics_service.gateways.gamification import GamificationGateway
from analytics_service.gateways.transport import HttpTransport
from analytics_service.gateways.user import UserGateway


@dataclass(frozen=True)
class Gateways:
    user: UserGateway
    content: ContentGateway
    engagement: EngagementGateway
    gamification: GamificationGateway


_UPSTREAMS = (
    ('user', UserGateway, 'USER_SERVICE_URL'),
    ('content', ContentGateway, 'CONTENT_SERVICE_URL'),
    ('engagement', EngagementGateway, 'ENGAGEMENT_SERVICE_URL'),
    ('gamification', GamificationGateway, 'GAMIFICATION_SERVICE_URL'),
)


def breaker_settings(config):
    return {
        'failure_rate_threshold': config['BREAKER_FAILURE_RATE_THRESHOLD'],
        'minimum_calls': config['BREAKER_MINIMUM_CALLS'],
        'sliding_window_size': config['BREAKER_SLIDING_WINDOW_SIZE'],
        'wait_duration': config['BREAKER_WAIT_DURATION'],
        'permitted_calls_in_half_open': config['BREAKER_HALF_OPEN_CALLS'],
    }


def build_gateways(config, token_provider=None, transport_factory=None):
    """Build one gateway per upstream, each bound to its shared breaker.

    ``transport_factory(base_url)`` overrides the HTTP transport (tests).
    """
    if transport_factory is None:
        def transport_factory(base_url):
            return HttpTransport(
                base_url,
                timeout=config['GATEWAY_TIMEOUT'],
                token_provider=token_provider,
            )

    settings = breaker_settings(config)
    built = {}
    for attr, gateway_cls, url_key in _UPSTREAMS:
        breaker = get_breaker(gateway_cls.service_name, **settings)
        built[attr] = gateway_cls(transport_factory(config[url_key]), breaker)
    return Gateways(**built)
