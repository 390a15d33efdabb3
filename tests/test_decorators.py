"""Tests for decorate_all and synchronized."""

import functools
import threading

from pynntpclient.decorators import decorate_all, dont_decorate, synchronized


calls = []


def record(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        calls.append(f.__name__)
        return f(*args, **kwargs)
    return wrapper


class Base(object):
    def inherited(self):
        return 'base'


class Recorded(Base, metaclass=decorate_all(record)):
    def __init__(self):
        self.value = 1

    def plain(self):
        return self.value

    @dont_decorate
    def skipped(self):
        return 'skipped'

    @staticmethod
    def static():
        return 'static'


class Worker(object, metaclass=decorate_all(synchronized)):
    def __init__(self):
        self._lock = threading.RLock()
        self.events = []

    def work(self, started, release):
        self.events.append('work start')
        started.set()
        release.wait(5)
        self.events.append('work end')

    def quick(self):
        self.events.append('quick')

    def outer(self):
        return self.inner() + 1

    def inner(self):
        return 1


class TestDecorateAll:
    def setup_method(self):
        del calls[:]

    def test_methods_wrapped(self):
        assert Recorded().plain() == 1
        assert calls == ['plain']

    def test_dunder_and_excluded_untouched(self):
        r = Recorded()
        assert r.skipped() == 'skipped'
        assert Recorded.static() == 'static'
        assert calls == []

    def test_only_class_body_wrapped(self):
        assert Recorded().inherited() == 'base'
        assert calls == []

    def test_private_methods_wrapped(self):
        class Private(object, metaclass=decorate_all(record)):
            def _helper(self):
                return 2
        assert Private()._helper() == 2
        assert calls == ['_helper']


class TestSynchronized:
    def test_calls_are_serialized(self):
        w = Worker()
        started = threading.Event()
        release = threading.Event()
        first = threading.Thread(target=w.work, args=(started, release))
        first.start()
        assert started.wait(5)

        second = threading.Thread(target=w.quick)
        second.start()
        second.join(0.2)
        assert second.is_alive()

        release.set()
        first.join(5)
        second.join(5)
        assert w.events == ['work start', 'work end', 'quick']

    def test_reentrant(self):
        assert Worker().outer() == 2

    def test_keeps_name(self):
        assert Worker.quick.__name__ == 'quick'
