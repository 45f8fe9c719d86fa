"""
A bot client for HuijiWiki and other MediaWiki wikis.

Handles login, CSRF tokens, edits, deletions, moves, uploads and
paginated queries, and keeps a local copy of the page content it has
written or read.

Requires the ``requests`` library.

https://www.huijiwiki.com/

Installation
============

To install the latest development version::

    git clone https://github.com/huijiwiki/huijiwiki-client.git
    cd huijiwiki-client
    pip install -e .

Example Usage
=============

.. code-block:: python

    import huijiwiki as hj

Log in:

.. code-block:: python

    wiki = hj.Wiki("danteng", "MyCoolBot/0.0.1")

    if not wiki.login("MyBot", password):
        print(wiki.last_error)

Edit a page:

.. code-block:: python

    result = wiki.edit_page("Sandbox", "Hello!", summary="Test edit")
    if 'error' in result:
        print(result['error']['code'])

Keep the local cache on disk so that it survives restarts:

.. code-block:: python

    wiki = hj.Wiki("danteng", sqlite_path="cache/danteng.sqlite")

    content = wiki.page("Sandbox").read()
    if not wiki.cache.compare("Sandbox", content + "!"):
        wiki.edit_page("Sandbox", content + "!")

List pages in a category:

.. code-block:: python

    batch = wiki.get_page_list_by_category("Redirects")
    while True:
        for page in batch.pages:
            print(page['title'])
        if batch.cont is None:
            break
        batch = wiki.get_page_list_by_category("Redirects", cont=batch.cont)

Or let the client follow the continuation:

.. code-block:: python

    for page in wiki.generate(wiki.get_page_list_by_namespace, 0):
        print(page['title'])

Upload an image:

.. code-block:: python

    wiki.upload_image("D:\\Pictures\\elysia.jpg", "Elysia.jpg",
                      comment="Uploaded by bot")

MIT Licensed.
"""
import logging

__version__ = '1.0.0'

API_URL = 'https://{prefix}.huijiwiki.com/api.php'
USER_AGENT = 'huijiwiki/' + __version__ + ', python-requests'
SESSION_COOKIE = 'huijiwiki_session'
MAX_RETRY = 3
RETRY_DELAY = 0
REFRESH_WAIT = 1
MAX_TOKEN_ATTEMPTS = 3

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .excs import (WikiError, TransportError, ValidationError, WikiWarning,
                   error_result, error_code, raise_for_error, succeeded)
from .cookies import CookieStore
from .requester import Requester
from .session import SessionManager, TokenState
from .cache import CacheStore, MemoryCache, SqliteCache
from .misc import Batch
from .page import Page
from .wiki import Wiki

WikiClient = Wiki

__all__ = [
    'API_URL',
    'USER_AGENT',
    'SESSION_COOKIE',
    'MAX_RETRY',
    'RETRY_DELAY',
    'REFRESH_WAIT',
    'MAX_TOKEN_ATTEMPTS',
    'WikiError',
    'TransportError',
    'ValidationError',
    'WikiWarning',
    'error_result',
    'error_code',
    'raise_for_error',
    'succeeded',
    'CookieStore',
    'Requester',
    'SessionManager',
    'TokenState',
    'CacheStore',
    'MemoryCache',
    'SqliteCache',
    'Batch',
    'Page',
    'Wiki',
    'WikiClient',
]
