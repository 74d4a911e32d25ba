import logging

import requests

logger = logging.getLogger(__name__)


class MalformedResponseError(Exception):
    """The upstream answered, but not with JSON."""


_HEADERS = {
    'Accept': 'application/json',
    'User-Agent': 'reading-analytics-service',
}


class HttpTransport:
    """Thin JSON-over-HTTP client for one upstream.

    ``request`` returns ``(status_code, body)`` where body is the decoded
    JSON (or None for an empty body). Network errors and timeouts surface
    as ``requests.RequestException``; a body that is not JSON surfaces as
    ``MalformedResponseError``. Classifying those is the gateway's job.
    """

    def __init__(self, base_url, timeout=5.0, token_provider=None, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.session.headers.update(_HEADERS)

    def _headers(self):
        token = self.token_provider() if self.token_provider else None
        if token:
            return {'Authorization': f'Bearer {token}'}
        return {}

    def request(self, method, path, params=None, json=None):
        url = f'{self.base_url}{path}'
        response = self.session.request(
            method,
            url,
            params=params,
            json=json,
            headers=self._headers(),
            timeout=self.timeout,
        )
        logger.debug('%s %s -> %d', method, url, response.status_code)
        if not response.content:
            return response.status_code, None
        try:
            return response.status_code, response.json()
        except ValueError as e:
            raise MalformedResponseError(f'non-JSON body from {url}') from e
