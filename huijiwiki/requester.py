"""
huijiwiki.requester - Send one API call and bring back its result.

Cookies are sent by hand from a CookieStore, transport failures are
retried, and a few harmless error codes are turned into successes.
"""
import copy
import logging
import time
from warnings import warn as _warn
import requests
from . import USER_AGENT, MAX_RETRY, RETRY_DELAY
from .cookies import CookieStore
from .excs import TransportError, ValidationError, WikiWarning, error_code

log = logging.getLogger(__name__)

# error codes whose outcome is what the caller asked for anyway
IDEMPOTENT_RESULTS = {
    'fileexists-no-change': {'upload': {'result': 'no-change'}},
}

class Requester(object):
    """Issues API calls against a single endpoint.

    ``session`` may be any object with requests-style ``get`` and
    ``post`` methods; by default a new ``requests`` session is used.
    """
    #pylint: disable=too-many-arguments
    def __init__(self, api_url, user_agent=None, max_retry=None,
                 retry_delay=None, session=None):
        self.api_url = api_url
        self.user_agent = user_agent if user_agent is not None else USER_AGENT
        self.max_retry = max_retry if max_retry is not None else MAX_RETRY
        self.retry_delay = (retry_delay if retry_delay is not None
                            else RETRY_DELAY)
        self.cookies = CookieStore()
        self.request_count = 0
        self.last_result = None
        self._session = session if session is not None else requests.session()

    def __repr__(self):
        """Represent the requester by its endpoint."""
        return '<Requester for {}>'.format(self.api_url)

    __str__ = __repr__

    @staticmethod
    def method_for(params):
        """Pick GET or POST for an API call.

        Queries, and parses of existing pages, are read-only and go by
        GET. Everything else is POSTed.
        """
        action = params.get('action')
        if action == 'query':
            return 'GET'
        if action == 'parse' and not params.get('text'):
            return 'GET'
        return 'POST'

    def get(self, **params):
        """Alias for Requester.request(_method='GET')"""
        return self.request(_method='GET', **params)

    def post(self, **params):
        """Alias for Requester.request(_method='POST')"""
        return self.request(_method='POST', **params)

    def request(self, _method=None, **params):
        """Make an API call and return the parsed result.

        Parameters set to None are left out. The call is retried
        ``max_retry`` times if the server does not answer with status
        200; after that, TransportError is raised.

        API errors are returned, not raised.
        """
        self.request_count += 1
        params = {key: value for key, value in params.items()
                  if value is not None}
        params['format'] = 'json'
        params['utf8'] = 1
        method = _method or self.method_for(params)

        attempt = 0
        while True:
            last_exc = None
            try:
                response = self._send(method, params)
            except (requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout) as exc:
                status, last_exc = None, exc
            else:
                status = response.status_code
                if status == 200:
                    break
            if attempt >= self.max_retry:
                raise TransportError(status) from last_exc
            attempt += 1
            log.warning('%s %s failed (status %s), retry %d of %d',
                        method, params.get('action'), status,
                        attempt, self.max_retry)
            if self.retry_delay:
                time.sleep(self.retry_delay)

        self.cookies.ingest(['{}={}'.format(name, value)
                             for name, value in response.cookies.items()])
        try:
            data = response.json()
        except ValueError as exc:
            raise ValidationError('Response to {} is not JSON'.format(
                params.get('action'))) from exc
        if not isinstance(data, dict):
            raise ValidationError('Response to {} is not an object'.format(
                params.get('action')))

        data = self._normalize(data)
        self._warn(data)
        self.last_result = data
        return data

    def _send(self, method, params):
        """Send the call once."""
        log.debug('%s %s #%d', method, params.get('action'),
                  self.request_count)
        headers = {
            'User-Agent': self.user_agent,
        }
        cookie = self.cookies.serialize()
        if cookie:
            headers['Cookie'] = cookie

        if method == 'GET':
            return self._session.get(self.api_url, params=params,
                                     headers=headers)
        if params.get('action') == 'upload':
            return self._upload(params, headers)
        return self._session.post(self.api_url, data=params, headers=headers)

    def _upload(self, params, headers):
        """POST an upload as multipart/form-data."""
        data = dict(params)
        files = {}
        if 'file' in data:
            files['file'] = (data.get('filename'), data.pop('file'))
        return self._session.post(self.api_url, data=data, files=files,
                                  headers=headers)

    @staticmethod
    def _normalize(data):
        """Rewrite errors that mean "already done" into successes."""
        code = error_code(data)
        if code in IDEMPOTENT_RESULTS:
            log.debug('treating %s as success', code)
            return copy.deepcopy(IDEMPOTENT_RESULTS[code])
        return data

    @staticmethod
    def _warn(data):
        """Pass API warnings on through the warnings module."""
        for module, value in data.get('warnings', {}).items():
            if isinstance(value, dict):
                value = value.get('*', value.get('warnings'))
            _warn('warning from {} module: {}'.format(module, value),
                  getattr(WikiWarning, module))
