"""Shared fixtures: a scripted NNTP server on a socketpair."""

import socket
import threading
import time

import pytest

from pynntpclient import nntp
from pynntpclient.nntp import NNTPClient


def lines(*items):
    """Join reply lines with CRLF, the way a server puts them on the wire."""
    return b''.join(item.encode('utf-8') + b'\r\n' for item in items)


class Drop(object):
    """Reply that is sent as is, after which the server hangs up."""

    def __init__(self, data):
        self.data = data


class ScriptedServer(object):
    """Answers each received command line with a canned reply.

    ``replies`` maps the exact command text (no CRLF) to the reply bytes.
    Unknown commands get a 500 reply, QUIT gets 205 and ends the session.
    """

    def __init__(self, sock, greeting, replies, delay=0):
        self.sock = sock
        self.greeting = greeting
        self.delay = delay
        self.replies = replies
        self.received = []
        self.raw = []
        self.thread = threading.Thread(target=self.serve, daemon=True)

    def serve(self):
        f = self.sock.makefile('rb')
        try:
            if self.delay:
                time.sleep(self.delay)
            self.sock.sendall(self.greeting)
            for raw in f:
                self.raw.append(raw)
                command = raw.decode('utf-8').rstrip('\r\n')
                self.received.append(command)
                if command == 'QUIT' and command not in self.replies:
                    self.sock.sendall(b'205 bye\r\n')
                    break
                reply = self.replies.get(command, b'500 unknown command\r\n')
                if isinstance(reply, Drop):
                    self.sock.sendall(reply.data)
                    break
                self.sock.sendall(reply)
        except OSError:
            pass
        finally:
            f.close()
            self.sock.close()


@pytest.fixture
def nntp_server(monkeypatch):
    """Factory returning (client, server) wired through a socketpair."""
    started = []

    def start(replies=None, greeting=b'200 welcome\r\n', config=None,
              delay=0, timeout=None):
        client_sock, server_sock = socket.socketpair()
        client_sock.settimeout(timeout)
        server = ScriptedServer(server_sock, greeting, replies or {}, delay)
        server.thread.start()
        monkeypatch.setattr(nntp.socket, 'create_connection',
                            lambda *args, **kwargs: client_sock)
        client = NNTPClient(config or {'HOST': 'news.example.com'})
        started.append((client, client_sock, server))
        return client, server

    yield start

    for client, client_sock, server in started:
        client._disconnect()
        client_sock.close()
        server.thread.join(2)


@pytest.fixture
def connected(nntp_server):
    """Factory for a client that has already read the greeting."""
    def start(replies=None, **kwargs):
        client, server = nntp_server(replies, **kwargs)
        client.connect()
        return client, server
    return start
