"""Test various aspects of the Wiki."""
import logging
import os
import shutil
import tempfile
from unittest import TestCase
import huijiwiki as hj
from huijiwiki.tests.fakes import make_wiki, csrf, revisions

BADTOKEN = {'error': {'code': 'badtoken', 'info': 'Invalid CSRF token.'}}
READONLY = {'error': {'code': 'readonly',
                      'info': 'The wiki is currently in read-only mode.'}}

class TestSetup(TestCase):
    """Test constructing a Wiki."""
    def test_prefix(self):
        """Assert that the prefix picks the HuijiWiki endpoint."""
        wiki = hj.Wiki('danteng')
        self.assertEqual(wiki.api_url, 'https://danteng.huijiwiki.com/api.php')
        self.assertEqual(wiki.session.return_url,
                         'https://danteng.huijiwiki.com')

    def test_api_url(self):
        """Assert that any endpoint can be given."""
        wiki = hj.Wiki(api_url='https://en.wikipedia.org/w/api.php')
        self.assertEqual(wiki.requester.api_url,
                         'https://en.wikipedia.org/w/api.php')

    def test_needs_endpoint(self):
        """Assert that a Wiki cannot be made without an endpoint."""
        with self.assertRaises(ValueError):
            hj.Wiki()

    def test_default_cache(self):
        """Assert that the cache is in memory by default."""
        self.assertIsInstance(hj.Wiki('danteng').cache, hj.MemoryCache)

    def test_sqlite_cache(self):
        """Assert that a path selects the SQLite cache, named after the
        prefix.
        """
        wiki = hj.Wiki('danteng', sqlite_path='cache/wiki.sqlite')
        self.assertIsInstance(wiki.cache, hj.SqliteCache)
        self.assertEqual(wiki.cache.namespace, 'danteng')

    def test_given_cache(self):
        """Assert that a supplied cache is used as is."""
        cache = hj.MemoryCache()
        self.assertIs(hj.Wiki('danteng', cache=cache).cache, cache)

    def test_user_agent(self):
        """Assert that the user agent can be changed afterwards."""
        wiki, session = make_wiki({})
        wiki.set_user_agent('Other/2.0')
        wiki.requester.request(action='query')
        self.assertEqual(session.calls[0].headers['User-Agent'], 'Other/2.0')

class TestMutations(TestCase):
    """Test that writes keep the cache in step."""
    def test_edit(self):
        """Assert that a successful edit caches the new content."""
        wiki, session = make_wiki(
            csrf('abc+\\'), {'edit': {'result': 'Success', 'title': 'Page'}})
        result = wiki.edit_page('Page', 'text', summary='Testing')
        self.assertEqual(result['edit']['result'], 'Success')
        self.assertTrue(wiki.cache.compare('Page', 'text'))
        params = session.calls[1].params
        self.assertEqual(params['token'], 'abc+\\')
        self.assertEqual(params['summary'], 'Testing')
        self.assertEqual(params['bot'], 1)

    def test_edit_not_bot(self):
        """Assert that bot=False leaves out the bot flag."""
        wiki, session = make_wiki(csrf('abc+\\'), {'edit': {}})
        wiki.edit_page('Page', 'text', bot=False)
        self.assertNotIn('bot', session.calls[1].params)

    def test_edit_error(self):
        """Assert that a failed edit leaves the cache alone."""
        wiki, _ = make_wiki(
            csrf('abc+\\'),
            {'error': {'code': 'protectedpage', 'info': 'Protected.'}})
        wiki.cache.set('Page', 'old')
        result = wiki.edit_page('Page', 'new')
        self.assertEqual(hj.error_code(result), 'protectedpage')
        self.assertEqual(wiki.cache.get('Page'), 'old')

    def test_edit_failure_result(self):
        """Assert that an edit stopped by a filter is not cached."""
        wiki, _ = make_wiki(
            csrf('abc+\\'), {'edit': {'result': 'Failure', 'captcha': {}}})
        wiki.edit_page('Page', 'spam')
        self.assertIsNone(wiki.cache.get('Page'))

    def test_edit_badtoken(self):
        """Assert that an edit with a stale token is retried once with a
        fresh one.
        """
        wiki, session = make_wiki(
            csrf('old+\\'), BADTOKEN, csrf('new+\\'),
            {'edit': {'result': 'Success'}})
        result = wiki.edit_page('Page', 'text')
        self.assertEqual(result['edit']['result'], 'Success')
        self.assertEqual(session.calls[3].params['token'], 'new+\\')
        self.assertTrue(wiki.cache.compare('Page', 'text'))

    def test_edit_without_login(self):
        """Assert that an edit without a token is not attempted."""
        wiki, session = make_wiki(csrf('+\\'))
        result = wiki.edit_page('Page', 'text')
        self.assertEqual(hj.error_code(result), 'csrf-token-missing')
        self.assertEqual(session.actions(), ['query'])
        self.assertIsNone(wiki.cache.get('Page'))

    def test_edit_token_error(self):
        """Assert that an error answer to the token query gives an error
        result instead of an exception.
        """
        wiki, session = make_wiki(READONLY)
        result = wiki.edit_page('Page', 'text')
        self.assertEqual(hj.error_code(result), 'csrf-token-missing')
        self.assertIn('read-only', wiki.last_error)
        self.assertEqual(session.actions(), ['query'])
        self.assertIsNone(wiki.cache.get('Page'))

    def test_delete(self):
        """Assert that a successful delete drops the cached page."""
        wiki, session = make_wiki(
            csrf('abc+\\'), {'delete': {'title': 'Page', 'reason': 'Test'}})
        wiki.cache.set('Page', 'text')
        wiki.delete_page('Page', 'Test')
        self.assertIsNone(wiki.cache.get('Page'))
        self.assertEqual(session.calls[1].params['reason'], 'Test')

    def test_delete_error(self):
        """Assert that a failed delete keeps the cached page."""
        wiki, _ = make_wiki(
            csrf('abc+\\'),
            {'error': {'code': 'permissiondenied', 'info': 'No.'}})
        wiki.cache.set('Page', 'text')
        wiki.delete_page('Page')
        self.assertEqual(wiki.cache.get('Page'), 'text')

    def test_undelete(self):
        """Assert that undelete sends its title and reason."""
        wiki, session = make_wiki(csrf('abc+\\'), {'undelete': {}})
        wiki.undelete_page('File:Elysia.png', 'test undel')
        params = session.calls[1].params
        self.assertEqual(params['action'], 'undelete')
        self.assertEqual(params['title'], 'File:Elysia.png')

    def test_move(self):
        """Assert that a successful move renames the cached page."""
        wiki, session = make_wiki(
            csrf('abc+\\'), {'move': {'from': 'Old', 'to': 'New'}})
        wiki.cache.set('Old', 'text')
        wiki.move_page('Old', 'New', noredirect=True)
        self.assertEqual(wiki.cache.get('New'), 'text')
        self.assertIsNone(wiki.cache.get('Old'))
        params = session.calls[1].params
        self.assertEqual(params['from'], 'Old')
        self.assertEqual(params['noredirect'], 1)
        self.assertEqual(params['movetalk'], 1)

class TestUpload(TestCase):
    """Test uploading files."""
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_unreadable(self):
        """Assert that an unreadable file gives an error result and no
        request.
        """
        wiki, session = make_wiki()
        result = wiki.upload_image(os.path.join(self.tmpdir, 'nope.jpg'),
                                   'Nope.jpg')
        self.assertEqual(hj.error_code(result), 'readfile-failed')
        self.assertEqual(session.calls, [])
        self.assertIn('nope.jpg', wiki.last_error)

    def test_upload_file(self):
        """Assert that a file is read and uploaded as multipart."""
        path = os.path.join(self.tmpdir, 'elysia.jpg')
        with open(path, 'wb') as fileobj:
            fileobj.write(b'\xff\xd8\xff')
        wiki, session = make_wiki(
            csrf('abc+\\'),
            {'upload': {'result': 'Success', 'filename': 'Elysia.jpg'}})
        result = wiki.upload_file(path, 'Elysia.jpg', comment='test')
        self.assertEqual(result['upload']['result'], 'Success')
        call = session.calls[1]
        self.assertEqual(call.files, {'file': ('Elysia.jpg', b'\xff\xd8\xff')})
        self.assertEqual(call.params['ignorewarnings'], 1)
        self.assertEqual(call.params['comment'], 'test')
        self.assertEqual(call.params['token'], 'abc+\\')

    def test_upload_same_content(self):
        """Assert that uploading the same content again is a success."""
        wiki, _ = make_wiki(
            csrf('abc+\\'),
            {'error': {'code': 'fileexists-no-change', 'info': 'Duplicate'}})
        result = wiki.upload(b'data', 'Same.png')
        self.assertEqual(result, {'upload': {'result': 'no-change'}})

class TestQueries(TestCase):
    """Test paginated queries."""
    def test_namespace_list(self):
        """Assert that listing a namespace returns pages and the
        continuation.
        """
        wiki, session = make_wiki(
            {'continue': {'apcontinue': 'B', 'continue': '-||'},
             'query': {'allpages': [{'pageid': 1, 'ns': 10, 'title': 'A'}]}},
            {'query': {'allpages': [{'pageid': 2, 'ns': 10, 'title': 'B'}]}})
        batch = wiki.get_page_list_by_namespace(10, limit=1)
        self.assertEqual(batch.pages[0]['title'], 'A')
        self.assertEqual(batch.cont, 'B')
        batch = wiki.get_page_list_by_namespace(10, limit=1, cont=batch.cont)
        self.assertIsNone(batch.cont)
        self.assertTrue(batch.exhausted)
        self.assertNotIn('apcontinue', session.calls[0].params)
        self.assertEqual(session.calls[1].params['apcontinue'], 'B')
        self.assertEqual(session.calls[1].method, 'GET')

    def test_category_prefix(self):
        """Assert that the Category: prefix is added once."""
        empty = {'query': {'categorymembers': []}}
        wiki, session = make_wiki(empty, empty)
        wiki.get_page_list_by_category('Characters')
        wiki.get_page_list_by_category('Category:Characters')
        for call in session.calls:
            self.assertEqual(call.params['cmtitle'], 'Category:Characters')

    def test_redirects(self):
        """Assert that redirects are listed through allpages."""
        wiki, session = make_wiki(
            {'query': {'allpages': [{'pageid': 3, 'ns': 0, 'title': 'R'}]}})
        batch = wiki.get_redirect_list()
        self.assertEqual(batch.pages[0]['title'], 'R')
        self.assertEqual(session.calls[0].params['apfilterredir'],
                         'redirects')

    def test_generate(self):
        """Assert that generate follows the continuation to the end."""
        wiki, _ = make_wiki(
            {'continue': {'cmcontinue': 'page|2'},
             'query': {'categorymembers': [{'title': 'A'}]}},
            {'continue': {'cmcontinue': 'page|3'},
             'query': {'categorymembers': [{'title': 'B'}]}},
            {'query': {'categorymembers': [{'title': 'C'}]}})
        titles = [page['title'] for page in
                  wiki.generate(wiki.get_page_list_by_category, 'X', limit=1)]
        self.assertEqual(titles, ['A', 'B', 'C'])

    def test_smw(self):
        """Assert that SMW results are flattened and offset-continued."""
        wiki, session = make_wiki(
            {'query-continue-offset': 2,
             'query': {'results': [
                 {'Elysia': {'fulltext': 'Elysia', 'namespace': 0}},
                 {'Kiana': {'fulltext': 'Kiana', 'namespace': 0}}]}})
        batch = wiki.get_page_list_by_smw('[[Category:Characters]]', limit=2)
        self.assertEqual([p['title'] for p in batch.pages],
                         ['Elysia', 'Kiana'])
        self.assertEqual(batch.pages[0]['pageid'], -1)
        self.assertEqual(batch.cont, 2)
        self.assertEqual(session.calls[0].params['query'],
                         '[[Category:Characters]]|limit=2|offset=0')

    def test_query_error(self):
        """Assert that a failed query raises the matching WikiError."""
        wiki, _ = make_wiki(
            {'error': {'code': 'invalidcategory', 'info': 'Bad title.'}})
        with self.assertRaises(hj.WikiError.invalidcategory):
            wiki.get_page_list_by_category('<>')

class TestContent(TestCase):
    """Test content queries and cache warming."""
    def test_pages_content(self):
        """Assert that fetched content is returned and cached, and that
        missing pages are skipped.
        """
        wiki, session = make_wiki(revisions(('A', 'alpha'), ('Gone', None),
                                            ('B', 'beta')))
        batch = wiki.get_pages_content(['A', 'Gone', 'B'])
        self.assertEqual(sorted(p['title'] for p in batch.pages), ['A', 'B'])
        self.assertIsNone(batch.cont)
        self.assertTrue(wiki.cache.compare('A', 'alpha'))
        self.assertTrue(wiki.cache.compare('B', 'beta'))
        self.assertIsNone(wiki.cache.get('Gone'))
        self.assertEqual(session.calls[0].params['titles'], 'A|Gone|B')

    def test_namespace_content(self):
        """Assert that namespace content continues with the whole
        continue object.
        """
        first = revisions(('A', 'alpha'))
        first['continue'] = {'gapcontinue': 'B', 'continue': 'gapcontinue||'}
        wiki, session = make_wiki(first, revisions(('B', 'beta')))
        pages = list(wiki.generate(wiki.get_namespace_content, 0, limit=1))
        self.assertEqual([p['content'] for p in pages], ['alpha', 'beta'])
        self.assertEqual(session.calls[1].params['gapcontinue'], 'B')
        self.assertEqual(session.calls[1].params['continue'], 'gapcontinue||')
        self.assertTrue(wiki.cache.compare('B', 'beta'))

    def test_raw_text(self):
        """Assert that a single page's content can be fetched."""
        wiki, _ = make_wiki(revisions(('Gadget:WikiImporter.js', 'js')),
                            revisions(('Nowhere', None)))
        page = wiki.get_page_raw_text_by_title('Gadget:WikiImporter.js')
        self.assertEqual(page['content'], 'js')
        self.assertIsNone(wiki.get_page_raw_text_by_title('Nowhere'))

class TestLogin(TestCase):
    """Test that the Wiki hands login to its session."""
    def test_login(self):
        """Assert that login goes through the SessionManager."""
        wiki, _ = make_wiki(
            {'login': {'result': 'NeedToken', 'token': 'lg'}},
            {'login': {'result': 'Success', 'lgusername': 'Bot'}})
        self.assertTrue(wiki.login('Bot@task', 'secret'))
        self.assertEqual(wiki.username, 'Bot')
        self.assertFalse(hasattr(wiki, 'password'))

    def test_login_token_error(self):
        """Assert that a login whose token query fails returns False."""
        wiki, _ = make_wiki(READONLY)
        self.assertFalse(wiki.login('Alice', 'pw'))
        self.assertEqual(wiki.username, '')
        self.assertIn('read-only', wiki.last_error)

    def test_log_level(self):
        """Assert that the package logger level can be set."""
        logger = logging.getLogger('huijiwiki')
        old = logger.level
        try:
            hj.Wiki.set_log_level(logging.ERROR)
            self.assertEqual(logger.level, logging.ERROR)
            self.assertEqual(logging.getLogger('huijiwiki.session')
                             .getEffectiveLevel(), logging.ERROR)
        finally:
            logger.setLevel(old)
