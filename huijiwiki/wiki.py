"""
See the Wiki docstrings.
"""
#pylint: disable=too-many-arguments
import logging
from urllib.parse import urlparse
from . import API_URL
from .cache import MemoryCache, SqliteCache
from .excs import error_result, raise_for_error, succeeded
from .misc import Batch
from .page import Page
from .requester import Requester
from .session import SessionManager

log = logging.getLogger(__name__)

EDIT_SUMMARY = 'Huiji Bot edit'

def _read_revisions(data):
    """Pull {title, pageid, ns, content} out of a revisions query."""
    pages = []
    for page in data.get('query', {}).get('pages', {}).values():
        if 'missing' in page or 'invalid' in page:
            continue
        revisions = page.get('revisions')
        if not revisions:
            continue
        rev = revisions[0]
        if 'slots' in rev:
            content = rev['slots']['main'].get('*')
        else:
            content = rev.get('*')
        if content is None: # hidden by revision deletion
            continue
        pages.append({
            'title': page['title'],
            'pageid': page.get('pageid'),
            'ns': page.get('ns'),
            'content': content,
        })
    return pages

class Wiki(object):
    """The base class for a wiki. Ties together requests, the login
    session and the page cache.

    ``prefix`` is the HuijiWiki site prefix (``danteng`` for
    danteng.huijiwiki.com); for any other wiki pass ``api_url`` instead.

    If ``sqlite_path`` is given, page content is cached in that SQLite
    file, in a table named after the prefix. Otherwise it is only kept
    in memory. Pass ``cache`` to supply any other CacheStore.

    ``max_retry``, ``retry_delay``, ``refresh_wait``,
    ``max_token_attempts`` and ``session_cookie`` override the module
    defaults of the same names. ``http_session`` replaces the
    ``requests`` session.
    """
    #pylint: disable=too-many-locals
    def __init__(self, prefix=None, user_agent=None, api_url=None,
                 sqlite_path=None, cache=None, max_retry=None,
                 retry_delay=None, refresh_wait=None,
                 max_token_attempts=None, session_cookie=None,
                 http_session=None):
        if api_url is None:
            if not prefix:
                raise ValueError('Either `prefix` or `api_url` is required.')
            api_url = API_URL.format(prefix=prefix)
        self.prefix = prefix
        self.api_url = api_url
        self.requester = Requester(api_url, user_agent, max_retry,
                                   retry_delay, http_session)
        self.session = SessionManager(self.requester,
                                      api_url.rsplit('/', 1)[0],
                                      session_cookie, refresh_wait,
                                      max_token_attempts)
        if cache is not None:
            self.cache = cache
        elif sqlite_path:
            namespace = prefix or urlparse(api_url).hostname.replace('.', '_')
            self.cache = SqliteCache(namespace, sqlite_path)
        else:
            self.cache = MemoryCache()

    def __repr__(self):
        """Represent a Wiki object."""
        return "<Wiki at {addr}>".format(addr=self.api_url)

    def __eq__(self, other):
        """Check if two Wikis are equal."""
        return isinstance(other, Wiki) and self.api_url == other.api_url

    def __hash__(self):
        """Wiki.__hash__() <==> hash(Wiki)"""
        return hash(self.api_url)

    __str__ = __repr__

    @property
    def username(self):
        """The name of the logged-in user, or an empty string."""
        return self.session.username

    @property
    def last_error(self):
        """The message of the last error the client reported."""
        return self.session.last_error

    def set_user_agent(self, user_agent):
        """Use ``user_agent`` for all following requests."""
        self.requester.user_agent = user_agent

    @staticmethod
    def set_log_level(level):
        """Set the level of the ``huijiwiki`` logger."""
        logging.getLogger(__name__.split('.')[0]).setLevel(level)

    def login(self, username, password):
        """Log in; return True on success. See SessionManager.login."""
        return self.session.login(username, password)

    def logout(self):
        """Log out the current user."""
        return self.session.logout()

    def get_csrf_token(self):
        """Return a CSRF token, or an empty string if none can be had."""
        return self.session.get_csrf_token()

    def page(self, title, **evil):
        """Return a Page instance based off of the title of the page."""
        if isinstance(title, Page):
            return title
        return Page(self, title, **evil)

    def _with_token(self, **params):
        """POST ``params`` with a CSRF token attached."""
        return self.session.request_with_token(
            lambda token: self.requester.request(token=token, **params))

    def edit_page(self, title, text, summary=None, bot=True, **evil):
        """Replace the content of ``title`` with ``text``.

        On success the new content is cached.
        """
        params = {
            'action': 'edit',
            'title': title,
            'text': text,
            'summary': summary if summary is not None else EDIT_SUMMARY,
            'bot': 1 if bot else None,
        }
        params.update(evil)
        result = self._with_token(**params)
        if succeeded(result, 'edit'):
            log.debug('edited %s', title)
            self.cache.set(title, text)
        return result

    def delete_page(self, title, reason=None):
        """Delete ``title`` and drop it from the cache."""
        result = self._with_token(action='delete', title=title, reason=reason)
        if succeeded(result, 'delete'):
            log.debug('deleted %s', title)
            self.cache.delete(title)
        return result

    def undelete_page(self, title, reason=None):
        """Restore all deleted revisions of ``title``."""
        return self._with_token(action='undelete', title=title, reason=reason)

    def move_page(self, from_title, to_title, reason=None,
                  movetalk=True, noredirect=False, **evil):
        """Move ``from_title`` to ``to_title``; the cache entry follows.

        ``movetalk`` also moves the talk page. ``noredirect`` suppresses
        the redirect left behind.
        """
        params = {
            'action': 'move',
            'from': from_title,
            'to': to_title,
            'reason': reason,
            'movetalk': 1 if movetalk else None,
            'noredirect': 1 if noredirect else None,
        }
        params.update(evil)
        result = self._with_token(**params)
        if succeeded(result, 'move'):
            log.debug('moved %s to %s', from_title, to_title)
            self.cache.rename(from_title, to_title)
        return result

    def upload(self, data, filename, comment='', text='', **evil):
        """Upload ``data`` (bytes) as File:``filename``.

        ``comment`` is the upload comment and ``text`` the initial
        content of the file description page. Warnings (such as
        duplicates) are ignored. Uploading identical content again is
        reported as ``{'upload': {'result': 'no-change'}}``.
        """
        params = {
            'action': 'upload',
            'filename': filename,
            'ignorewarnings': 1,
            'comment': comment,
            'text': text,
            'file': data,
        }
        params.update(evil)
        return self._with_token(**params)

    def upload_file(self, path, filename, comment='', text='', **evil):
        """Upload the file at ``path`` as File:``filename``.

        Returns a ``readfile-failed`` error result if the file cannot
        be read.
        """
        try:
            with open(path, 'rb') as fileobj:
                data = fileobj.read()
        except OSError as exc:
            self.session.error('Could not read file {}: {}'.format(path, exc))
            return error_result('readfile-failed',
                                'Could not read file: {}'.format(path))
        return self.upload(data, filename, comment, text, **evil)

    upload_image = upload_file

    def _query(self, **params):
        """Run a query; API errors are raised."""
        return raise_for_error(self.requester.request(action='query',
                                                      **params))

    def get_page_list_by_namespace(self, namespace, limit=500, cont=None):
        """Return a Batch of pages (pageid, ns, title) in ``namespace``."""
        data = self._query(list='allpages', apnamespace=namespace,
                           aplimit=limit, apcontinue=cont)
        return Batch(data['query']['allpages'],
                     data.get('continue', {}).get('apcontinue'))

    def get_page_list_by_category(self, category, limit=500, cont=None):
        """Return a Batch of pages (pageid, ns, title) in ``category``.

        The ``Category:`` prefix is added if missing.
        """
        if not category.startswith('Category:'):
            category = 'Category:' + category
        data = self._query(list='categorymembers', cmtitle=category,
                           cmlimit=limit, cmcontinue=cont)
        return Batch(data['query']['categorymembers'],
                     data.get('continue', {}).get('cmcontinue'))

    def get_redirect_list(self, namespace=0, limit=500, cont=None):
        """Return a Batch of redirect pages in ``namespace``."""
        data = self._query(list='allpages', apnamespace=namespace,
                           apfilterredir='redirects', aplimit=limit,
                           apcontinue=cont)
        return Batch(data['query']['allpages'],
                     data.get('continue', {}).get('apcontinue'))

    def get_page_list_by_smw(self, query, limit=500, cont=None):
        """Return a Batch of pages matching a Semantic MediaWiki query,
        such as ``[[Category:Characters]][[Element::Fire]]``.

        Here ``cont`` is the result offset. Pages found this way have
        no known pageid, so it is set to -1.
        """
        conditions = [query, 'limit={}'.format(limit),
                      'offset={}'.format(cont or 0)]
        data = raise_for_error(self.requester.request(
            action='ask', query='|'.join(conditions), api_version=3))
        pages = []
        for result in data['query']['results']:
            for info in result.values():
                pages.append({
                    'pageid': -1,
                    'title': info['fulltext'],
                    'ns': info['namespace'],
                })
        return Batch(pages, data.get('query-continue-offset'))

    def get_pages_content(self, titles, cont=None):
        """Return a Batch of {title, pageid, ns, content} for ``titles``,
        and cache every content fetched.

        Missing pages are left out.
        """
        if isinstance(titles, str):
            titles = [titles]
        params = {
            'prop': 'revisions',
            'titles': '|'.join(titles),
            'rvprop': 'content',
            'rvslots': 'main',
        }
        params.update(cont or {})
        data = self._query(**params)
        return self._warm(data)

    def get_namespace_content(self, namespace, limit=50, cont=None):
        """Return a Batch of {title, pageid, ns, content} for the pages
        of ``namespace``, and cache every content fetched.
        """
        params = {
            'generator': 'allpages',
            'gapnamespace': namespace,
            'gaplimit': limit,
            'prop': 'revisions',
            'rvprop': 'content',
            'rvslots': 'main',
        }
        params.update(cont or {})
        data = self._query(**params)
        return self._warm(data)

    def _warm(self, data):
        """Cache the content of a revisions query and batch it up."""
        pages = _read_revisions(data)
        for page in pages:
            self.cache.set(page['title'], page['content'])
        return Batch(pages, data.get('continue'))

    def get_page_raw_text_by_title(self, title):
        """Return {title, pageid, ns, content} for ``title``, or None if
        the page does not exist.
        """
        pages = self.get_pages_content([title]).pages
        if not pages:
            return None
        return pages[0]

    def generate(self, fetch, *args, **kwargs):
        """Generate every result of a paginated method such as
        ``get_page_list_by_namespace``, fetching batches as needed.
        """
        cont = kwargs.pop('cont', None)
        while True:
            batch = fetch(*args, cont=cont, **kwargs)
            for page in batch.pages:
                yield page
            if batch.cont is None:
                break
            cont = batch.cont
