# exceptions raised while talking to an nntp server
#
# transport faults are not wrapped: anything the socket raises
# (OSError, socket.timeout, ssl.SSLError) reaches the caller as is.


class NNTPError(Exception):
    """Base class for everything raised by pynntpclient."""
    pass


class ConnectionError(NNTPError):
    pass


## framing errors

class EndOfStream(NNTPError):
    """The stream closed before a line terminator was read.

    ``partial`` holds whatever bytes arrived before the close.
    """
    def __init__(self, partial=b''):
        super(EndOfStream, self).__init__('end of stream')
        self.partial = partial


class UnexpectedEndOfResponse(NNTPError):
    def __init__(self, partial=b''):
        super(UnexpectedEndOfResponse, self).__init__('unexpected end of response')
        self.partial = partial


class MalformedResponse(NNTPError):
    def __init__(self, line):
        super(MalformedResponse, self).__init__('malformed response line: %r' % (line,))
        self.line = line


class ResponseCodeUnreadable(MalformedResponse):
    pass


class MalformedHeaders(NNTPError):
    def __init__(self, reason, line=None):
        super(MalformedHeaders, self).__init__('malformed headers, %s' % reason)
        self.line = line


class NNTPDataError(NNTPError):
    """A reply had a valid status line but its data could not be used."""
    pass


## command outcomes

class UnexpectedResponse(NNTPError):
    def __init__(self, code, message):
        super(UnexpectedResponse, self).__init__(
            'unexpected response code: %d (%s)' % (code, message))
        self.code = code
        self.message = message


class AuthError(UnexpectedResponse):
    def __init__(self, code, message):
        NNTPError.__init__(self, 'auth failed with code: %d (%s)' % (code, message))
        self.code = code
        self.message = message


class CurrentArticleNumInvalid(NNTPError):
    pass


class NoArticleWithId(NNTPError):
    pass


class NoArticleWithNum(NNTPError):
    pass


class NoGroupSelected(NNTPError):
    pass


class NoNextArticle(NNTPError):
    pass


class NoPrevArticle(NNTPError):
    pass


class NoSuchGroup(NNTPError):
    pass


class ReadingUnavailable(NNTPError):
    pass
