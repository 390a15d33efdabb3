## server definitions, keyed by a short name.
## values come from the environment so credentials stay out of the tree:
##   NNTP_HOST, NNTP_PORT, NNTP_USER, NNTP_PASS,
##   NNTP_SECURE (SSL, STARTTLS or empty for plain text), NNTP_TIMEOUT
import os


def _int_or_none(value):
    return int(value) if value else None


def _float_or_none(value):
    return float(value) if value else None


SERVERS = {
    'default': {
        'HOST': os.environ.get('NNTP_HOST', 'localhost'),
        'PORT': _int_or_none(os.environ.get('NNTP_PORT')),
        'USER': os.environ.get('NNTP_USER') or None,
        'PASS': os.environ.get('NNTP_PASS') or None,
        'SECURE': os.environ.get('NNTP_SECURE') or None,
        'TIMEOUT': _float_or_none(os.environ.get('NNTP_TIMEOUT')),
    },
}
