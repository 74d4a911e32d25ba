"""Resilient gateway to one upstream domain.

A gateway never raises. Each call is routed by the shared circuit breaker
to one of two strategies:

  LiveStrategy      : one attempt over the transport, outcome reported back
                      to the breaker
  DegradedStrategy  : no transport attempt, a fixed 503 envelope naming the
                      upstream and the operation

Outcome classification for live calls:
  connection error / timeout     -> breaker failure, 503 envelope
  HTTP 5xx                       -> breaker failure, envelope with that status
  non-JSON body / bad payload    -> breaker failure, 502 envelope
  any other exception            -> breaker failure, 502 envelope
  HTTP 2xx/4xx with an envelope  -> breaker success, upstream envelope
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests

from analytics_service.envelope import ApiResponse
from analytics_service.errors import ServiceDegraded
from analytics_service.gateways.transport import MalformedResponseError

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class UpstreamCall:
    operation: str
    method: str
    path: str
    decode: Callable[[Any], Any]
    params: Optional[dict] = None
    body: Any = None
    detail: str = ''


class LiveStrategy:
    def __init__(self, service_name, transport, breaker):
        self.service_name = service_name
        self.transport = transport
        self.breaker = breaker

    def execute(self, call: UpstreamCall, generation: Optional[int] = None) -> ApiResponse:
        try:
            response = self._attempt(call)
        except ServiceDegraded as e:
            return self._fail(call, generation, e.code, e.detail)
        except Exception as e:
            logger.exception('Unexpected error handling %s %s', self.service_name, call.operation)
            return self._fail(call, generation, 502, f'unexpected error ({e})')
        self.breaker.record_success(generation)
        return response

    def _fail(self, call, generation, code, detail):
        self.breaker.record_failure(generation)
        logger.warning('%s %s failed: %s', self.service_name, call.operation, detail)
        return ApiResponse.error(
            code, f'{self.service_name} failed during {call.operation}: {detail}'
        )

    def _degraded(self, call, code, detail):
        return ServiceDegraded(self.service_name, call.operation, code, detail)

    def _attempt(self, call):
        try:
            status, body = self.transport.request(
                call.method, call.path, params=call.params, json=call.body
            )
        except MalformedResponseError as e:
            raise self._degraded(call, 502, str(e)) from e
        except requests.Timeout as e:
            raise self._degraded(call, 503, f'timed out ({e})') from e
        except requests.RequestException as e:
            raise self._degraded(call, 503, f'connection error ({e})') from e
        except Exception as e:
            logger.exception('Unexpected transport error calling %s', self.service_name)
            raise self._degraded(call, 503, f'transport error ({e})') from e

        if status >= 500:
            raise self._degraded(call, status, f'HTTP {status}')
        return self._unwrap(call, status, body)

    def _unwrap(self, call, status, body):
        if body is None and status >= 400:
            return ApiResponse.error(status, f'HTTP {status}')
        if not isinstance(body, dict):
            raise self._degraded(call, 502, 'response is not an envelope')

        code = body.get('code', status)
        success = bool(body.get('success', code == 200))
        message = body.get('message') or ''
        data = body.get('data')
        if not success:
            return ApiResponse(success=False, code=code, message=message, data=None)
        if data is not None:
            try:
                data = call.decode(data)
            except Exception as e:
                raise self._degraded(call, 502, f'undecodable payload ({e})') from e
        return ApiResponse(success=True, code=code, message=message, data=data)


class DegradedStrategy:
    def __init__(self, service_name, display_name):
        self.service_name = service_name
        self.display_name = display_name

    def execute(self, call: UpstreamCall) -> ApiResponse:
        logger.error(
            'Circuit breaker open for %s. Falling back for %s request%s.',
            self.service_name, call.operation, f' with {call.detail}' if call.detail else '',
        )
        return ApiResponse.error(
            503, f'{self.display_name} service temporarily unavailable ({call.operation})'
        )


class ServiceGateway:
    """Base class for the per-domain gateways."""

    service_name = 'upstream-service'
    display_name = 'Upstream'

    def __init__(self, transport, breaker):
        self.breaker = breaker
        self._live = LiveStrategy(self.service_name, transport, breaker)
        self._degraded = DegradedStrategy(self.service_name, self.display_name)

    def _call(self, operation, method, path, decode, params=None, body=None, detail=''):
        call = UpstreamCall(
            operation=operation,
            method=method,
            path=path,
            decode=decode,
            params=params,
            body=body,
            detail=detail,
        )
        generation = self.breaker.acquire()
        if generation is None:
            return self._degraded.execute(call)
        return self._live.execute(call, generation)

    def _get(self, operation, path, decode, params=None, detail=''):
        return self._call(operation, 'GET', path, decode, params=params, detail=detail)

    def _post(self, operation, path, decode, body, detail=''):
        return self._call(operation, 'POST', path, decode, body=body, detail=detail)
