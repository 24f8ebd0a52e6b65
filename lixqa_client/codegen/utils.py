import keyword
import re
import unicodedata
from urllib.parse import urlparse

__all__ = (
    'is_url',
    'sanitize_attribute_name',
    'sanitize_identifier',
    'unique_identifier',
)


def is_url(text):
    try:
        result = urlparse(text)
        return result.scheme in ('http', 'https') and bool(result.netloc)
    except ValueError:
        return False


def remove_accents(input_str):
    nfkd_form = unicodedata.normalize('NFKD', input_str)
    return ''.join(c for c in nfkd_form if not unicodedata.combining(c))


def sanitize_name_python_keywords(name: str) -> str:
    if keyword.iskeyword(name) or keyword.issoftkeyword(name):
        return f'{name}_'
    return name


def sanitize_attribute_name(name: str) -> str:
    """Sanitize a path segment or parameter name into a valid Python identifier.

    - Replace spaces, dots and hyphens with underscores
    - Remove other invalid characters
    - Ensure it doesn't start with a digit
    - Append an underscore to keywords
    """
    if not name:
        raise ValueError('Name cannot be empty')

    sanitized = re.sub(r'[-.\s]+', '_', remove_accents(name))
    sanitized = re.sub(r'[^A-Za-z0-9_]', '', sanitized)

    if not sanitized:
        return '_'
    if sanitized[0].isdigit():
        sanitized = '_' + sanitized
    return sanitize_name_python_keywords(sanitized)


def sanitize_identifier(name: str) -> str:
    """Strip characters that cannot appear in a Python class name."""
    sanitized = re.sub(r'[^A-Za-z0-9_]', '', remove_accents(name))
    if sanitized and sanitized[0].isdigit():
        sanitized = '_' + sanitized
    return sanitized or 'UnnamedType'


def unique_identifier(name: str, taken) -> str:
    """Return ``name``, or ``name`` with a counter suffix if it is already taken."""
    if name not in taken:
        return name
    counter = 2
    while f'{name}{counter}' in taken:
        counter += 1
    return f'{name}{counter}'
