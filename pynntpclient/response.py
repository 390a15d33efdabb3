"""Framing of NNTP replies (RFC 3977 section 3.1).

A reply is a status line, optionally followed by a header block, a body
block, or both. The functions here only delimit those units; deciding
which blocks follow a given status code is left to the caller.

Nothing in this module logs or retries. Socket errors propagate as they
are raised.
"""
from collections import namedtuple

from pynntpclient.errors import (EndOfStream, MalformedHeaders,
                                 MalformedResponse, UnexpectedEndOfResponse)
from pynntpclient.headers import Headers


LINE_TERMINATOR = b'\n'
CRLF = b'\r\n'
## empty line between a header block and a body block
END_OF_HEADERS = b'\r\n'
## single dot closing a multi-line block
END_OF_RESPONSE = b'.\r\n'

ENCODING = 'utf-8'
ERRORS = 'surrogateescape'


StatusReply = namedtuple('StatusReply', ['code', 'message'])


class Response(object):
    """Read cursor over the reply stream of a single exchange.

    ``stream`` is any binary file-like object with ``readline()``, usually
    the result of ``socket.makefile('rb')``. A new cursor is made for every
    command so that bytes buffered for an earlier reply are never seen by
    a later one.
    """

    def __init__(self, stream):
        self._stream = stream

    def read_line(self):
        """Return the next line, terminator included.

        Raises EndOfStream, carrying any partial bytes, if the stream ends
        before a terminator.
        """
        line = self._stream.readline()
        if not line.endswith(LINE_TERMINATOR):
            raise EndOfStream(line)
        return line

    def close(self):
        self._stream.close()


def _strip_terminator(line):
    if line.endswith(CRLF):
        return line[:-2]
    if line.endswith(LINE_TERMINATOR):
        return line[:-1]
    return line


def _decode(data):
    return data.decode(ENCODING, ERRORS)


def parse_status_line(line):
    """Split a raw status line into a StatusReply(code, message)."""
    if isinstance(line, bytes):
        line = _decode(line)
    digits = line[:3]
    ## str.isdigit also accepts non-ascii digits
    if len(digits) < 3 or not all('0' <= c <= '9' for c in digits):
        raise MalformedResponse(line)
    return StatusReply(int(digits), line[3:].strip())


def read_headers(reader):
    """Parse a header block from ``reader``.

    Stops at an empty line (article headers followed by a body) or at a
    single dot line (HEAD style replies). Returns ``(headers, consumed)``
    where consumed counts every byte read, terminator line included.
    """
    headers = Headers()
    last_name = None
    consumed = 0

    while True:
        try:
            line = reader.read_line()
        except EndOfStream as e:
            raise UnexpectedEndOfResponse(e.partial) from e
        consumed += len(line)

        if line == END_OF_HEADERS or line == END_OF_RESPONSE:
            break

        if line[:1] in (b' ', b'\t'):
            if last_name is None:
                raise MalformedHeaders('found folded value without name', line)
            headers.extend_last(last_name, _decode(_strip_terminator(line)))
            continue

        colon = line.find(b':')
        if colon < 0:
            raise MalformedHeaders('found header line without colon', line)
        if colon == 0:
            raise MalformedHeaders('found header line without name', line)

        name = _decode(line[:colon])
        value = _strip_terminator(line[colon + 1:])
        if value[:1] in (b' ', b'\t'):
            value = value[1:]
        headers.add(name, _decode(value))
        last_name = name

    return headers, consumed


def read_body(reader, sink):
    """Copy body lines from ``reader`` to ``sink`` up to the dot line.

    Lines are written with their terminators and without any dot-stuffing
    removal. When the stream ends early the partial line is still written
    before UnexpectedEndOfResponse is raised, so the sink may hold an
    incomplete body.
    """
    while True:
        try:
            line = reader.read_line()
        except EndOfStream as e:
            if e.partial:
                sink.write(e.partial)
            raise UnexpectedEndOfResponse(e.partial) from e

        if line == END_OF_RESPONSE:
            break

        sink.write(line)
