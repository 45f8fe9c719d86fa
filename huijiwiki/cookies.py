"""Session cookies, kept by hand so they can be sent as one header."""


class CookieStore(object):
    """Name to value mapping of the cookies the wiki has set.

    A later value for the same name replaces the earlier one but keeps
    its place. Expiry, domain and path are not tracked.
    """
    def __init__(self, raw=None):
        """Initialize the store, optionally ingesting ``raw`` at once."""
        self._cookies = {}
        if raw:
            self.ingest(raw)

    def __repr__(self):
        """Represent the store by its cookie names."""
        return '<CookieStore {}>'.format(list(self._cookies))

    __str__ = __repr__

    def __len__(self):
        return len(self._cookies)

    def __contains__(self, name):
        return name in self._cookies

    def ingest(self, raw):
        """Store the cookies in ``raw``, a sequence of strings shaped
        like ``"name=value; name2=value2"``.
        """
        for header in raw:
            for pair in header.split(';'):
                name, _, value = pair.strip().partition('=')
                if name and value:
                    self._cookies[name] = value

    def serialize(self):
        """Return the stored cookies as a Cookie header value."""
        return '; '.join('{}={}'.format(name, value)
                         for name, value in self._cookies.items())

    def has(self, name):
        """Return whether a cookie called ``name`` has been set."""
        return name in self._cookies
