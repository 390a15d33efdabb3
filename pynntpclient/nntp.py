# helper module for talking to nntp
import io
import logging
import nntplib
import socket
import ssl
import threading
import datetime
from collections import namedtuple

from pynntpclient import response
from pynntpclient.decorators import decorate_all, dont_decorate, synchronized
from pynntpclient.errors import (
    AuthError,
    ConnectionError,
    CurrentArticleNumInvalid,
    EndOfStream,
    MalformedResponse,
    NNTPDataError,
    NNTPError,
    NoArticleWithId,
    NoArticleWithNum,
    NoGroupSelected,
    NoNextArticle,
    NoPrevArticle,
    NoSuchGroup,
    ReadingUnavailable,
    ResponseCodeUnreadable,
    UnexpectedEndOfResponse,
    UnexpectedResponse,
)
from pynntpclient.headers import Headers


log = logging.getLogger(__name__)

NNTP_PORT = 119
NNTP_SSL_PORT = 563

CONF_KEYS = ['HOST', 'PORT', 'USER', 'PASS', 'SECURE', 'TIMEOUT']


GroupSummary = namedtuple('GroupSummary', ['name', 'number', 'low', 'high'])
GroupList = namedtuple('GroupList', ['name', 'number', 'low', 'high', 'article_numbers'])
## one line of LIST ACTIVE / NEWGROUPS (RFC 3977 7.6.3)
ListGroup = namedtuple('ListGroup', ['name', 'low', 'high', 'status'])
## LIST ACTIVE.TIMES (7.6.4)
ListGroupTimes = namedtuple('ListGroupTimes', ['name', 'created', 'creator'])
## LIST DISTRIB.PATS (7.6.5)
ListDistribPattern = namedtuple('ListDistribPattern', ['weight', 'wildmat', 'value'])
## LIST NEWSGROUPS (7.6.6)
ListNewsgroup = namedtuple('ListNewsgroup', ['name', 'description'])


## replies shared by ARTICLE, HEAD, BODY and STAT
ARTICLE_ERRORS = {
    412: NoGroupSelected,
    420: CurrentArticleNumInvalid,
    423: NoArticleWithNum,
    430: NoArticleWithId,
}


def decode_headers(headers):
    """Return a copy of ``headers`` with RFC 2047 encoded words decoded."""
    return Headers((name, nntplib.decode_header(value)) for name, value in headers.items())


def _text_lines(data):
    ## LF only, str.splitlines also breaks on \x0b, \x1c, U+2028 and friends
    result = []
    for line in data.split(b'\n'):
        if line.endswith(b'\r'):
            line = line[:-1]
        text = line.decode(response.ENCODING, response.ERRORS)
        if text.strip():
            result.append(text)
    return result


def _fields(message, count):
    parts = message.split()
    if len(parts) < count:
        raise NNTPDataError('expected %d fields in %r' % (count, message))
    return parts


def _to_int(value):
    try:
        return int(value)
    except ValueError:
        raise NNTPDataError('not a number: %r' % (value,))


def _format_since(since):
    ## aware datetimes are sent as GMT, naive ones in server local time
    if since.tzinfo is not None and since.utcoffset() is not None:
        since = since.astimezone(datetime.timezone.utc)
        return since.strftime('%Y%m%d %H%M%S') + ' GMT'
    return since.strftime('%Y%m%d %H%M%S')


def _parse_list_groups(data):
    groups = {}
    for line in _text_lines(data):
        parts = _fields(line, 4)
        groups[parts[0]] = ListGroup(name=parts[0],
                                     low=_to_int(parts[2]),
                                     high=_to_int(parts[1]),
                                     status=parts[3])
    return groups


class NNTPClient(object, metaclass=decorate_all(synchronized)):
    """Client for one NNTP connection.

    Every method runs under the instance lock, so a full exchange
    (command, status line, header and body blocks) is never interleaved
    with another thread's command on the same connection.
    """

    def __init__(self, config={}):
        self._lock = threading.RLock()
        # connection config
        self._conf = self._getconf(config)
        # socket, plain or tls
        self._sock = None
        # read cursor for the exchange in progress
        self._response = None
        # currently selected group
        self._group = None
        # set from the greeting and MODE READER
        self.can_post = False
        # set once the socket is closed, commands no longer connect lazily
        self._closed = False

    def __del__(self):
        if getattr(self, '_sock', None) is not None:
            self._disconnect()

    def __enter__(self):
        self.conn
        return self

    def __exit__(self, *exc_info):
        self._disconnect()

    @classmethod
    def _getconf(kls, config):
        nc = {}
        for c in CONF_KEYS:
            nc[c] = config.get(c, None)
        if nc['SECURE']:
            nc['SECURE'] = nc['SECURE'].upper()
        return nc

    def connect(self):
        if self._sock is not None:
            return self._sock

        host = self._conf['HOST']
        secure = self._conf['SECURE']
        port = self._conf['PORT']
        if not port:
            port = NNTP_SSL_PORT if secure == 'SSL' else NNTP_PORT

        if secure not in (None, 'SSL', 'STARTTLS'):
            raise ValueError('Unknown SECURE mode: %s' % secure)

        log.info('Connecting to NNTP server %s:%s' % (host, port))
        if self._conf['TIMEOUT'] is not None:
            sock = socket.create_connection((host, port), self._conf['TIMEOUT'])
        else:
            sock = socket.create_connection((host, port))

        self._sock = sock
        try:
            self._handshake(host, secure)
        except BaseException:
            ## a half set up connection must never serve a later command
            self._close_socket()
            raise
        return self._sock

    def _handshake(self, host, secure):
        if secure == 'SSL':
            log.debug('ssl wrap')
            try:
                self._sock = ssl.create_default_context().wrap_socket(self._sock, server_hostname=host)
            except ssl.SSLError as e:
                raise ConnectionError('SSL failed: %s' % e) from e

        self._response = response.Response(self._sock.makefile('rb'))
        code, message = self._read_status()
        log.debug('greeting %d %s' % (code, message))
        if code == 200:
            self.can_post = True
        elif code == 201:
            self.can_post = False
        else:
            raise ConnectionError('connection failure (code %d): %s' % (code, message))

        try:
            if secure == 'STARTTLS':
                log.debug('starttls')
                self.starttls()
            if self._conf['USER']:
                log.debug('login')
                self.authenticate(self._conf['USER'], self._conf['PASS'])
        except (NNTPError, ssl.SSLError) as e:
            log.debug('%s failed: %s' % (secure or 'login', e))
            raise ConnectionError(str(e)) from e

    @property
    def conn(self):
        if self._sock is None:
            if self._closed:
                raise NNTPError('connection closed')
            self.connect()
        return self._sock

    def _close_socket(self):
        if self._response is not None:
            self._response.close()
            self._response = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self._closed = True

    def _disconnect(self):
        if self._sock is None:
            return
        log.info('Disconnecting from NNTP server')
        try:
            self.send_command('QUIT')
        except (OSError, EOFError, NNTPError):
            ## if it's dead, it's dead
            pass
        finally:
            self._close_socket()

    ## framing

    def _read_status(self):
        try:
            line = self._response.read_line()
        except EndOfStream as e:
            raise UnexpectedEndOfResponse(e.partial) from e
        try:
            return response.parse_status_line(line)
        except MalformedResponse as e:
            raise ResponseCodeUnreadable(e.line) from e

    @staticmethod
    def _masked(command):
        if command.upper().startswith('AUTHINFO PASS'):
            return 'AUTHINFO PASS ****'
        return command

    def send_command(self, command):
        """Send one command line and return its StatusReply.

        The code is not interpreted. When it announces a multi-line reply
        the caller has to consume it with read_headers() and/or
        read_body() before sending anything else.
        """
        sock = self.conn
        log.debug('SEND %s' % self._masked(command))
        sock.sendall(('%s\r\n' % command).encode(response.ENCODING, response.ERRORS))

        ## fresh cursor: nothing buffered for a previous reply is reused
        previous = self._response
        self._response = response.Response(sock.makefile('rb'))
        if previous is not None:
            previous.close()

        reply = self._read_status()
        log.debug('RECV %d %s' % reply)
        return reply

    def read_headers(self):
        if self._response is None:
            raise NNTPError('no command in progress')
        headers, consumed = response.read_headers(self._response)
        log.debug('read %d header bytes' % consumed)
        return headers

    def read_body(self, sink):
        if self._response is None:
            raise NNTPError('no command in progress')
        response.read_body(self._response, sink)

    def _read_body_bytes(self):
        body = io.BytesIO()
        self.read_body(body)
        return body.getvalue()

    ## article retrieval

    def _article_command(self, verb, message_spec, expected):
        ## message_spec: None for the current article, an article number,
        ## or a '<message-id>'
        if message_spec is None or message_spec == '':
            cmd = verb
        else:
            cmd = '%s %s' % (verb, message_spec)
        code, message = self.send_command(cmd)
        if code in ARTICLE_ERRORS:
            raise ARTICLE_ERRORS[code](message)
        if code != expected:
            raise UnexpectedResponse(code, message)
        return message

    def article(self, message_spec, sink):
        """Fetch a whole article: body lines go to ``sink``, headers are returned.

        If reading the body fails, whatever arrived so far has already been
        written to the sink and should not be trusted.
        """
        self._article_command('ARTICLE', message_spec, 220)
        headers = self.read_headers()
        self.read_body(sink)
        return headers

    def article_as_bytes(self, message_spec):
        body = io.BytesIO()
        headers = self.article(message_spec, body)
        return headers, body.getvalue()

    def head(self, message_spec):
        self._article_command('HEAD', message_spec, 221)
        return self.read_headers()

    def body(self, message_spec, sink):
        self._article_command('BODY', message_spec, 222)
        self.read_body(sink)

    def body_as_bytes(self, message_spec):
        body = io.BytesIO()
        self.body(message_spec, body)
        return body.getvalue()

    def stat(self, message_spec):
        message = self._article_command('STAT', message_spec, 223)
        parts = _fields(message, 2)
        return _to_int(parts[0]), parts[1]

    def _move(self, verb, no_article_code, no_article_error):
        code, message = self.send_command(verb)
        if code == 412:
            raise NoGroupSelected(message)
        if code == 420:
            raise CurrentArticleNumInvalid(message)
        if code == no_article_code:
            raise no_article_error(message)
        if code != 223:
            raise UnexpectedResponse(code, message)
        parts = _fields(message, 2)
        return _to_int(parts[0]), parts[1]

    def next(self):
        return self._move('NEXT', 421, NoNextArticle)

    def last(self):
        return self._move('LAST', 422, NoPrevArticle)

    ## groups

    def group(self, group_name=None):
        ## if group name provided, select the current group
        ## either way return the current group data
        if group_name is not None:
            code, message = self.send_command('GROUP %s' % group_name)
            if code == 411:
                raise NoSuchGroup(message)
            if code != 211:
                raise UnexpectedResponse(code, message)
            parts = _fields(message, 4)
            self._group = GroupSummary(name=parts[3],
                                       number=_to_int(parts[0]),
                                       low=_to_int(parts[1]),
                                       high=_to_int(parts[2]))
            log.debug('Set group: %s %s %s %s' % tuple(self._group))
        return self._group

    def listgroup(self, group_name=None):
        cmd = 'LISTGROUP' if group_name is None else 'LISTGROUP %s' % group_name
        code, message = self.send_command(cmd)
        if code == 411:
            raise NoSuchGroup(message)
        if code == 412:
            raise NoGroupSelected(message)
        if code != 211:
            raise UnexpectedResponse(code, message)

        parts = _fields(message, 4)
        numbers = [_to_int(line) for line in _text_lines(self._read_body_bytes())]
        self._group = GroupSummary(name=parts[3],
                                   number=_to_int(parts[0]),
                                   low=_to_int(parts[1]),
                                   high=_to_int(parts[2]))
        return GroupList(*self._group, article_numbers=numbers)

    def _list_command(self, keyword, wildmat=None):
        cmd = 'LIST %s' % keyword
        if wildmat:
            cmd = '%s %s' % (cmd, wildmat)
        code, message = self.send_command(cmd)
        if code != 215:
            raise UnexpectedResponse(code, message)
        return self._read_body_bytes()

    def list_active(self, wildmat=None):
        return _parse_list_groups(self._list_command('ACTIVE', wildmat))

    def list_active_times(self, wildmat=None):
        result = {}
        for line in _text_lines(self._list_command('ACTIVE.TIMES', wildmat)):
            parts = _fields(line, 3)
            created = datetime.datetime.fromtimestamp(_to_int(parts[1]),
                                                      datetime.timezone.utc)
            result[parts[0]] = ListGroupTimes(name=parts[0], created=created,
                                              creator=parts[2])
        return result

    def list_distrib_pats(self):
        result = []
        for line in _text_lines(self._list_command('DISTRIB.PATS')):
            parts = line.split(':', 2)
            if len(parts) != 3:
                raise NNTPDataError('bad distribution pattern: %r' % line)
            result.append(ListDistribPattern(weight=_to_int(parts[0]),
                                             wildmat=parts[1],
                                             value=parts[2]))
        return result

    def list_newsgroups(self, wildmat=None):
        result = {}
        for line in _text_lines(self._list_command('NEWSGROUPS', wildmat)):
            parts = line.split(None, 1)
            description = parts[1].strip() if len(parts) > 1 else ''
            result[parts[0]] = ListNewsgroup(name=parts[0], description=description)
        return result

    def newgroups(self, since):
        code, message = self.send_command('NEWGROUPS %s' % _format_since(since))
        if code != 231:
            raise UnexpectedResponse(code, message)
        return _parse_list_groups(self._read_body_bytes())

    def newnews(self, wildmat, since):
        if not wildmat:
            raise ValueError('wildmat cannot be empty')
        code, message = self.send_command('NEWNEWS %s %s' % (wildmat, _format_since(since)))
        if code != 230:
            raise UnexpectedResponse(code, message)
        return _text_lines(self._read_body_bytes())

    ## server information

    def capabilities(self):
        code, message = self.send_command('CAPABILITIES')
        if code != 101:
            raise UnexpectedResponse(code, message)
        caps = {}
        for line in _text_lines(self._read_body_bytes()):
            parts = line.split()
            caps[parts[0]] = parts[1:]
        return caps

    def help(self):
        code, message = self.send_command('HELP')
        if code != 100:
            raise UnexpectedResponse(code, message)
        return self._read_body_bytes().decode(response.ENCODING, response.ERRORS)

    def date(self):
        ## server time, always UTC per RFC 3977 7.1
        code, message = self.send_command('DATE')
        if code != 111:
            raise UnexpectedResponse(code, message)
        try:
            sd = datetime.datetime.strptime(message, '%Y%m%d%H%M%S')
        except ValueError as e:
            raise NNTPDataError('could not parse date (%s): %s' % (message, e)) from e
        return sd.replace(tzinfo=datetime.timezone.utc)

    ## session state

    def mode_reader(self):
        code, message = self.send_command('MODE READER')
        if code == 200:
            self.can_post = True
        elif code == 201:
            self.can_post = False
        elif code == 502:
            raise ReadingUnavailable(message)
        else:
            raise UnexpectedResponse(code, message)
        return self.can_post

    def authenticate(self, user, password):
        """AUTHINFO USER/PASS (RFC 4643). Returns None on success."""
        code, message = self.send_command('AUTHINFO USER %s' % user)
        if code == 281:
            return
        if code != 381:
            raise UnexpectedResponse(code, message)

        code, message = self.send_command('AUTHINFO PASS %s' % password)
        if code != 281:
            raise AuthError(code, message)

    def starttls(self, context=None):
        """Upgrade the connection to TLS (RFC 4642)."""
        if context is None:
            context = ssl.create_default_context()

        code, message = self.send_command('STARTTLS')
        if code != 382:
            raise UnexpectedResponse(code, message)

        self._response.close()
        self._response = None
        self._sock = context.wrap_socket(self._sock, server_hostname=self._conf['HOST'])

        ## a certificate problem shows up on the first exchange
        self.date()

    def quit(self):
        if self._sock is None:
            return
        try:
            self.send_command('QUIT')
        finally:
            self._close_socket()

    @dont_decorate
    def close(self):
        self.quit()
