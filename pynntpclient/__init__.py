from pynntpclient.errors import (
    EndOfStream,
    MalformedHeaders,
    MalformedResponse,
    NNTPError,
    ResponseCodeUnreadable,
    UnexpectedEndOfResponse,
    UnexpectedResponse,
)
from pynntpclient.headers import Headers
from pynntpclient.nntp import NNTPClient, decode_headers
from pynntpclient.response import (
    Response,
    StatusReply,
    parse_status_line,
    read_body,
    read_headers,
)
