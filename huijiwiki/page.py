"""
This submodule contains the Page object.
"""
import re
from .excs import WikiError, succeeded
from .misc import _CachedAttribute

__all__ = [
    'Page',
]

class Page(object):
    """The class for a page on a wiki.

    Must be initialized with a Wiki instance.
    """
    def __init__(self, wiki, title, **data):
        """Initialize a page with its wiki and title.

        Any other keyword arguments (e.g. ``pageid`` or ``ns`` from a
        listing) are stored as attributes.
        """
        self.wiki = wiki
        self.title = title
        self.__dict__.update(data)

    def __repr__(self):
        """Represent a page instance."""
        return "<Page {name}>".format(name=self.title)

    def __eq__(self, other):
        """Check if two pages are the same."""
        return isinstance(other, Page) and self.title == other.title

    def __hash__(self):
        """Page.__hash__() <==> hash(Page)"""
        return hash(self.title)

    __str__ = __repr__

    def read(self):
        """Retrieve the page's content.

        Raises WikiError.notfound if the page does not exist.
        """
        data = self.wiki.get_page_raw_text_by_title(self.title)
        if data is None:
            raise WikiError.notfound('The page does not exist.')
        self.content = data['content']
        return self.content

    @_CachedAttribute
    def content(self):
        """This property replaces itself when contents are fetched.
        To update this property, use ``read``. Always prefer the ``read``
        method over using the property.
        """
        return self.read()

    def edit(self, content, summary=None, **evil):
        """Edit the page with the content content."""
        result = self.wiki.edit_page(self.title, content, summary, **evil)
        if succeeded(result, 'edit'):
            self.content = content
        return result

    def delete(self, reason=None):
        """Delete this page. Note: this is NOT the same thing
        as `del page`! `del` only unsets names, not objects.
        """
        return self.wiki.delete_page(self.title, reason)

    def undelete(self, reason=None):
        """Undelete this page, assuming it's already deleted :-)"""
        return self.wiki.undelete_page(self.title, reason)

    def move(self, newtitle, reason=None, **evil):
        """Move this page to a new title."""
        result = self.wiki.move_page(self.title, newtitle, reason, **evil)
        if succeeded(result, 'move'):
            self.title = newtitle
        return result

    def replace(self, old_text, new_text='', summary=None):
        """Replace each occurence of old_text in the page's source with
        new_text.

        Raises ValueError if both old_text and new_text are empty.
        Returns None without editing if nothing would change.
        """
        if old_text and new_text:
            edit_summary = "Automated edit: Replace {} with {}".format(
                old_text, new_text)
        elif old_text:
            edit_summary = "Automated edit: Remove {}".format(old_text)
        else:
            raise ValueError("old_text and new_text cannot both be empty.")

        if summary is not None:
            edit_summary = summary

        content = self.read().replace(old_text, new_text)
        if self.wiki.cache.compare(self.title, content):
            return None
        return self.edit(content, edit_summary)

    def substitute(self, pattern, repl, flags=0, summary=None):
        """Use a regex to substitute each occurence of pattern in the page's
        source with repl.

        Can raise normal re errors. Returns None without editing if
        nothing would change.
        """
        if not repl:
            edit_summary = "Automated edit: Removed text"
        else:
            edit_summary = "Automated edit: Replaced text"

        if summary is not None:
            edit_summary = summary

        content = re.sub(pattern, repl, self.read(), flags=flags)
        if self.wiki.cache.compare(self.title, content):
            return None
        return self.edit(content, edit_summary)
