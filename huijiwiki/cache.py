"""
huijiwiki.cache - A local copy of page content.

The client writes to the cache after every successful edit, move and
delete, and whenever it reads page content, so ``compare`` can tell
whether an edit would change anything without asking the wiki.

Two backends are available: ``MemoryCache``, which is lost when the
process exits, and ``SqliteCache``, which keeps its data in an SQLite
file.
"""
import logging
import os
import sqlite3
import threading
from abc import ABCMeta, abstractmethod

__all__ = [
    'CacheStore',
    'MemoryCache',
    'SqliteCache',
]

log = logging.getLogger(__name__)

class CacheStore(metaclass=ABCMeta):
    """What a page content cache must be able to do."""

    @abstractmethod
    def get(self, title):
        """Return the cached content of ``title``, or None."""

    @abstractmethod
    def set(self, title, content):
        """Cache ``content`` as the content of ``title``."""

    @abstractmethod
    def rename(self, old_title, new_title):
        """Move the entry for ``old_title`` to ``new_title``.

        Does nothing if ``old_title`` is not cached.
        """

    @abstractmethod
    def delete(self, title):
        """Forget ``title``."""

    def compare(self, title, content):
        """Return whether ``content`` is exactly what is cached for
        ``title``. Uncached titles never compare equal.
        """
        cached = self.get(title)
        if cached is None:
            return False
        return cached == content

class MemoryCache(CacheStore):
    """A cache that lives in a dict."""
    def __init__(self):
        self._pages = {}

    def __repr__(self):
        return '<MemoryCache of {} pages>'.format(len(self._pages))

    def __len__(self):
        return len(self._pages)

    def get(self, title):
        return self._pages.get(title)

    def set(self, title, content):
        self._pages[title] = content

    def rename(self, old_title, new_title):
        if old_title in self._pages:
            self._pages[new_title] = self._pages.pop(old_title)

    def delete(self, title):
        self._pages.pop(title, None)

class SqliteCache(CacheStore):
    """A cache kept in one table of an SQLite database.

    ``namespace`` names the table, so several wikis can share one
    database file; any name without a double quote will do, hyphens
    included. ``path`` is the database file; its directory is
    created if needed. With an empty ``path`` the database is kept in
    memory.

    Nothing is opened until the cache is first used.
    """
    def __init__(self, namespace, path=''):
        if not namespace or '"' in namespace:
            raise ValueError('Invalid cache namespace: ' + repr(namespace))
        self.namespace = namespace
        self.path = path
        self._conn = None
        self._lock = threading.Lock()

    def __repr__(self):
        return '<SqliteCache {} in {}>'.format(self.namespace,
                                              self.path or ':memory:')

    def _connect(self):
        """Open the database and create the table, once."""
        with self._lock:
            if self._conn is not None:
                return self._conn
            if self.path:
                dirname = os.path.dirname(os.path.abspath(self.path))
                if not os.path.isdir(dirname):
                    os.makedirs(dirname)
                conn = sqlite3.connect(self.path, check_same_thread=False)
            else:
                conn = sqlite3.connect(':memory:', check_same_thread=False)
            with conn:
                conn.execute('CREATE TABLE IF NOT EXISTS "{}" ('
                             'title varbinary(255) NOT NULL, '
                             'content blob NOT NULL, '
                             'PRIMARY KEY (title))'.format(self.namespace))
            log.debug('opened %r', self)
            self._conn = conn
            return conn

    def _execute(self, sql, args):
        """Run one writing statement in its own transaction."""
        conn = self._connect()
        with conn:
            conn.execute(sql.format(table=self.namespace), args)

    def get(self, title):
        row = self._connect().execute(
            'SELECT content FROM "{}" WHERE title = ?'.format(self.namespace),
            (title,)).fetchone()
        if row is None:
            return None
        content = row[0]
        if isinstance(content, bytes):
            content = content.decode('utf-8')
        return content

    def set(self, title, content):
        self._execute('INSERT OR REPLACE INTO "{table}" (title, content) '
                      'VALUES (?, ?)',
                      (title, sqlite3.Binary(content.encode('utf-8'))))

    def rename(self, old_title, new_title):
        self._execute('UPDATE OR REPLACE "{table}" SET title = ? '
                      'WHERE title = ?', (new_title, old_title))

    def delete(self, title):
        self._execute('DELETE FROM "{table}" WHERE title = ?', (title,))

    def close(self):
        """Close the database; it is reopened on next use."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
