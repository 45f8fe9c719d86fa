"""
huijiwiki.excs - Exceptions, warnings and result helpers.

Mutating calls do not raise for errors the API reports; they return the
API's own result shape, so branch on it:

..code-block:: python

    result = wiki.edit_page('Sandbox', 'hi')
    if error_code(result) == 'protectedpage':
        print('Page is protected:', result['error']['info'])

To turn such a result into an exception, use ``raise_for_error``:

..code-block:: python

    try:
        raise_for_error(wiki.delete_page('Sandbox'))
    except WikiError.permissiondenied as exc:
        print('Not allowed:', exc.info)

Only an exhausted transport retry budget raises on its own
(``TransportError``).
"""

__all__ = [
    'WikiError',
    'TransportError',
    'ValidationError',
    'WikiWarning',
    'error_result',
    'error_code',
    'raise_for_error',
]

class _MetaGetattr(type):
    """Metaclass to provide __getattr__ on a class."""
    def __getattr__(cls, name):
        if name.startswith('__'):
            raise AttributeError(name)
        setattr(cls, name, type(name, (cls,), {}))
        return getattr(cls, name)

#pylint: disable=too-few-public-methods
class WikiError(Exception, metaclass=_MetaGetattr):
    """An error returned by the wiki's API.

    Every error code gets its own subclass, so ``WikiError.badtoken``
    catches only bad tokens while ``WikiError`` catches them all.
    """
    def __init__(self, info=''):
        super().__init__(info)
        self.info = info

    @property
    def code(self):
        """Return the API error code."""
        return type(self).__name__

    def __str__(self):
        return '{}: {}'.format(self.code, self.info)

class TransportError(Exception):
    """The API endpoint kept failing after all retries.

    ``status`` is the HTTP status of the last attempt, or None if the
    connection itself failed.
    """
    def __init__(self, status, message=None):
        if message is None:
            message = 'Request failed with status code {}'.format(status)
        super().__init__(message)
        self.status = status

class ValidationError(Exception):
    """The response body could not be understood."""
    pass

class WikiWarning(UserWarning, metaclass=_MetaGetattr):
    """The API sent a warning in the response."""
    pass

def error_result(code, info=''):
    """Build a result in the shape of an API error."""
    return {'error': {'code': code, 'info': info}}

def error_code(result):
    """Return the error code of an API result, or None if it succeeded."""
    if isinstance(result, dict) and 'error' in result:
        return result['error'].get('code', '')
    return None

def raise_for_error(result):
    """Raise the matching WikiError if ``result`` is an API error.

    Otherwise return ``result`` unchanged.
    """
    code = error_code(result)
    if code is not None:
        exc_class = getattr(WikiError, code)
        # codes like "code" or "info" collide with real attributes
        if not (isinstance(exc_class, type)
                and issubclass(exc_class, WikiError)):
            exc_class = WikiError
        raise exc_class(result['error'].get('info', ''))
    return result

def succeeded(result, module):
    """Check whether a mutating call did what it was asked to.

    Besides API errors, edits can come back with result "Failure"
    (captchas, abuse filters) and no error.
    """
    if error_code(result) is not None:
        return False
    return result.get(module, {}).get('result') != 'Failure'
