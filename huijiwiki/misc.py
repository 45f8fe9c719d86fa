"""This submodule contains the small classes."""
from collections import namedtuple


class _CachedAttribute(object): # pylint: disable=too-few-public-methods
    '''Computes attribute value and caches it in the instance.
    From the Python Cookbook (Denis Otkidach)
    The first access calls the method; the result then replaces the
    attribute on the instance, so later accesses are plain lookups.
    '''
    def __init__(self, method, name=None):
        """Initialize the cached attribute."""
        self.method = method
        self.name = name or method.__name__
        self.__doc__ = method.__doc__
    def __get__(self, inst, cls):
        """Get the cached attribute."""
        if inst is None:
            # accessed on the class
            return self
        result = self.method(inst)
        setattr(inst, self.name, result)
        return result

class Batch(namedtuple('Batch', 'pages cont')):
    """One page of results from a paginated query.

    ``pages`` is the list of results. ``cont`` is the value to pass back
    as ``cont`` to get the next batch, or None if this was the last.
    """
    __slots__ = ()

    def __repr__(self):
        """Represent a batch."""
        return '<Batch of {} (cont={!r})>'.format(len(self.pages), self.cont)

    __str__ = __repr__

    @property
    def exhausted(self):
        """Whether there are no more batches after this one."""
        return self.cont is None
