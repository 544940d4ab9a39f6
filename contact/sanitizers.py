"""
Contact Form Sanitizers

Pure functions that validate raw contact form input and turn it into the
record that gets stored. Rules run in order and the first failure wins.
"""
import re

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils.html import escape

from .exceptions import ContactValidationError

REQUIRED_FIELDS = ('name', 'email', 'business', 'automation')
ESCAPED_FIELDS = ('name', 'business', 'revenue', 'automation')

NAME_MAX_LENGTH = 100
AUTOMATION_MAX_LENGTH = 1000

MISSING_FIELDS_MESSAGE = 'Please fill in all required fields.'
INVALID_EMAIL_MESSAGE = 'Please enter a valid email address.'
INPUT_TOO_LONG_MESSAGE = 'Input too long. Please keep your message concise.'

GMAIL_DOMAINS = {'gmail.com', 'googlemail.com'}
PLUS_SUBADDRESS_DOMAINS = {
    'outlook.com', 'hotmail.com', 'live.com',
    'icloud.com', 'me.com', 'mac.com',
}
YAHOO_DOMAINS = {'yahoo.com', 'ymail.com', 'rocketmail.com'}

# Addresses carrying markup characters (quoted local parts) are refused.
EMAIL_MARKUP_CHARACTERS = set('<>"')

# "&amp;" produced by escape() in front of an already well-formed reference.
ESCAPED_REFERENCE = re.compile(
    r'&amp;(?=(?:[A-Za-z][A-Za-z0-9]{1,31}|#[0-9]{1,7}|#[xX][0-9A-Fa-f]{1,6});)'
)


def clean_text(value):
    """Trim a raw form value; anything that is not text counts as empty."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return ''
    return str(value).strip()


def escape_text(value):
    """
    HTML-escape trimmed text.

    Ampersands that already start a character reference are left alone, so
    escaping an escaped string returns it unchanged. References are never
    decoded: the text keeps exactly the characters that were typed.
    """
    return ESCAPED_REFERENCE.sub('&', str(escape(clean_text(value))))


def is_valid_email(value):
    if EMAIL_MARKUP_CHARACTERS.intersection(value):
        return False
    try:
        validate_email(value)
    except ValidationError:
        return False
    return True


def normalize_email(value):
    """
    Canonical, comparable form of an email address.

    Lowercases the whole address and strips provider-specific aliases:
    dots and ``+tag`` for Gmail, ``+tag`` for Outlook and iCloud, and the
    ``-tag`` suffix for Yahoo.
    """
    local, _, domain = clean_text(value).lower().rpartition('@')
    if not local:
        return clean_text(value).lower()

    if domain in GMAIL_DOMAINS:
        local = local.split('+', 1)[0].replace('.', '')
        domain = 'gmail.com'
    elif domain in PLUS_SUBADDRESS_DOMAINS:
        local = local.split('+', 1)[0]
    elif domain in YAHOO_DOMAINS:
        local = local.split('-', 1)[0]

    return f'{local}@{domain}'


def sanitize_submission(data):
    """
    Validate and sanitize raw contact form data.

    Args:
        data: mapping with ``name``, ``email``, ``business``, ``revenue``
            and ``automation`` keys; missing keys are treated as empty.

    Returns:
        dict: the sanitized record, ``revenue`` being ``''`` when absent.

    Raises:
        ContactValidationError: with a user-facing message.
    """
    cleaned = {field: clean_text(data.get(field)) for field in REQUIRED_FIELDS}

    if not all(cleaned.values()):
        raise ContactValidationError(MISSING_FIELDS_MESSAGE)

    if not is_valid_email(cleaned['email']):
        raise ContactValidationError(INVALID_EMAIL_MESSAGE)

    if (len(cleaned['name']) > NAME_MAX_LENGTH
            or len(cleaned['automation']) > AUTOMATION_MAX_LENGTH):
        raise ContactValidationError(INPUT_TOO_LONG_MESSAGE)

    record = {field: escape_text(data.get(field)) for field in ESCAPED_FIELDS}
    record['email'] = normalize_email(cleaned['email'])
    return record
