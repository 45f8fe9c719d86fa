"""
huijiwiki.session - Login, the CSRF token, and recovering from stale
tokens.

The token is fetched on first use and kept until the API rejects it
with ``badtoken``. At that point exactly one caller refreshes it; any
other caller that hits ``badtoken`` meanwhile waits and tries again
with whatever token the refresh produced.
"""
import logging
import threading
import time
from enum import Enum
from . import SESSION_COOKIE, REFRESH_WAIT, MAX_TOKEN_ATTEMPTS
from .excs import WikiError, ValidationError, error_result, error_code

log = logging.getLogger(__name__)

# the token MediaWiki hands out to anonymous users
ANONYMOUS_TOKEN = '+\\'

class TokenState(Enum):
    """Where the CSRF token is in its lifecycle."""
    UNSET = 'unset'
    VALID = 'valid'
    REFRESHING = 'refreshing'

class SessionManager(object):
    """Owns the CSRF token and the credentials of one client.

    ``requester`` is the Requester all calls go through.
    ``return_url`` is sent as ``loginreturnurl`` with client logins.
    """
    #pylint: disable=too-many-instance-attributes,too-many-arguments
    def __init__(self, requester, return_url=None, session_cookie=None,
                 refresh_wait=None, max_token_attempts=None):
        self.requester = requester
        self.return_url = return_url or requester.api_url
        self.session_cookie = (session_cookie if session_cookie is not None
                               else SESSION_COOKIE)
        self.refresh_wait = (refresh_wait if refresh_wait is not None
                             else REFRESH_WAIT)
        self.max_token_attempts = (max_token_attempts
                                   if max_token_attempts is not None
                                   else MAX_TOKEN_ATTEMPTS)
        self.username = ''
        self.last_error = ''
        self._token = ''
        self._login_username = ''
        self._login_password = ''
        self._refreshing = False
        self._refresher = None
        self._guard = threading.Lock()

    def __repr__(self):
        """Represent the session by its user and token state."""
        return '<SessionManager {} ({})>'.format(
            self.username or '<Anonymous>', self.state.value)

    __str__ = __repr__

    @property
    def state(self):
        """The TokenState of the CSRF token."""
        if self._refreshing:
            return TokenState.REFRESHING
        if self._token:
            return TokenState.VALID
        return TokenState.UNSET

    @property
    def csrf_token(self):
        """The cached CSRF token; empty if none is held."""
        return self._token

    @property
    def has_credentials(self):
        """Whether credentials are cached for silent re-login."""
        return bool(self._login_username and self._login_password)

    def error(self, msg):
        """Log an error and remember it as the last one."""
        self.last_error = msg
        log.error(msg)

    def login(self, username, password):
        """Log in; return True on success.

        Usernames containing ``@`` are bot passwords, which only work
        with the old ``action=login``; anything else uses
        ``action=clientlogin``.
        """
        username = username.strip()
        password = password.strip()
        if '@' in username:
            return self._bot_login(username, password)
        return self._client_login(username, password)

    def _read_token(self, data, name):
        """Take the ``name`` token out of a meta=tokens answer.

        An API error is logged and gives an empty string. Raises
        ValidationError if the answer has no such token.
        """
        code = error_code(data)
        if code is not None:
            self.error('Could not get a {} token: {}'.format(
                name, data['error'].get('info') or code))
            return ''
        try:
            return data['query']['tokens'][name + 'token']
        except (KeyError, TypeError) as exc:
            raise ValidationError(
                'Response has no {} token'.format(name)) from exc

    def _login_token(self):
        """Fetch a login token."""
        data = self.requester.request(action='query', meta='tokens',
                                      type='login')
        return self._read_token(data, 'login')

    def _client_login(self, username, password):
        """Log in with action=clientlogin."""
        primed = False
        while True:
            token = self._login_token()
            if not token:
                return False
            if primed or self.requester.cookies.has(self.session_cookie):
                break
            # the wiki only sets its session cookie once a login has been
            # attempted, and a login token is worthless without it
            log.debug('no %s cookie yet, priming session', self.session_cookie)
            self.requester.request(action='clientlogin', username=username,
                                   password=password,
                                   logintoken=ANONYMOUS_TOKEN,
                                   loginreturnurl=self.return_url)
            primed = True

        data = self.requester.request(action='clientlogin',
                                      username=username,
                                      password=password,
                                      logintoken=token,
                                      loginreturnurl=self.return_url,
                                      rememberMe=1)
        result = data.get('clientlogin', {})
        if result.get('status') == 'PASS':
            self._logged_in(result.get('username', username),
                            username, password)
            return True
        self.error('Login failed: {}'.format(
            result.get('message', data.get('error', {}).get('info', ''))))
        return False

    def _bot_login(self, username, password):
        """Log in with action=login, as bot passwords require."""
        data = self.requester.request(action='login', lgname=username,
                                      lgpassword=password)
        result = data.get('login', {})
        if result.get('result') == 'NeedToken':
            data = self.requester.request(action='login', lgname=username,
                                          lgpassword=password,
                                          lgtoken=result.get('token'))
            result = data.get('login', {})
        if result.get('result') == 'Success':
            self._logged_in(result.get('lgusername', username),
                            username, password)
            return True
        self.error('Login failed: {}'.format(
            result.get('reason', result.get('result'))
            or data.get('error', {}).get('info', '')))
        return False

    def _logged_in(self, shown_name, username, password):
        """Record a successful login."""
        self.username = shown_name
        self._login_username = username
        self._login_password = password
        log.info('Logged in as %s', shown_name)

    def logout(self):
        """Log out and forget the token and credentials."""
        result = self.request_with_token(
            lambda token: self.requester.request(action='logout',
                                                 token=token))
        self._token = ''
        self.username = ''
        self._login_username = ''
        self._login_password = ''
        return result

    def _fetch_csrf_token(self):
        """Ask the wiki for a CSRF token."""
        data = self.requester.request(action='query', meta='tokens')
        return self._read_token(data, 'csrf')

    def get_csrf_token(self):
        """Return a CSRF token, fetching one if none is held.

        An anonymous token means the session is gone; if credentials
        are cached, log in again and retry once. Returns an empty
        string if no token can be had. While another thread refreshes
        the token, waits for that refresh instead of fetching too.
        """
        while self._refreshing and self._refresher != threading.get_ident():
            time.sleep(self.refresh_wait)
        if self._token:
            return self._token
        relogged = False
        while True:
            token = self._fetch_csrf_token()
            if token != ANONYMOUS_TOKEN:
                self._token = token
                return token
            self._token = ''
            if relogged:
                self.error('Could not get a CSRF token even after logging in')
                return ''
            if not self.has_credentials:
                self.error('Could not get a CSRF token: not logged in')
                return ''
            if not self.login(self._login_username, self._login_password):
                self._login_username = ''
                self._login_password = ''
                self.error('Could not get a CSRF token, '
                           'and logging in again failed')
                return ''
            relogged = True

    def _begin_refresh(self):
        """Claim the refresh; return False if someone else has it."""
        with self._guard:
            if self._refreshing:
                return False
            self._refreshing = True
            self._refresher = threading.get_ident()
            return True

    def _refresh(self):
        """Replace the current token with a fresh one."""
        try:
            self._token = ''
            self.get_csrf_token()
        finally:
            self._refresher = None
            self._refreshing = False

    def request_with_token(self, operation):
        """Call ``operation(token)`` with a CSRF token and return its
        result, refreshing the token if the wiki rejects it.

        Without a token, ``operation`` is not called and a
        ``csrf-token-missing`` error result is returned instead. Only
        one refresh runs at a time; a caller that hits ``badtoken``
        during someone else's refresh waits ``refresh_wait`` seconds
        and tries again.

        Raises WikiError.badtoken if the token is rejected more than
        ``max_token_attempts`` times.
        """
        rejected = 0
        while True:
            if self._refreshing:
                time.sleep(self.refresh_wait)
                continue
            token = self.get_csrf_token()
            if not token:
                return error_result('csrf-token-missing',
                                    self.last_error or 'No CSRF token')
            result = operation(token)
            if error_code(result) != 'badtoken':
                return result

            rejected += 1
            if rejected > self.max_token_attempts:
                raise WikiError.badtoken(
                    'CSRF token rejected {} times'.format(rejected))
            if self._begin_refresh():
                log.info('CSRF token rejected, refreshing')
                self._refresh()
            else:
                log.debug('token refresh in progress, waiting')
                time.sleep(self.refresh_wait)
