import functools
from types import FunctionType


# plain methods from the class body, minus dunders and opted-out helpers
def do_decorate(attr, value):
    return (not attr.startswith('__') and
        isinstance(value, FunctionType) and
        getattr(value, 'decorate', True))


# metaclass factory: wraps the methods of the class body with one decorator
def decorate_all(decorator):
    class DecorateAll(type):
        def __new__(cls, name, bases, namespace):
            for attr, value in list(namespace.items()):
                if do_decorate(attr, value):
                    namespace[attr] = decorator(value)
            return super(DecorateAll, cls).__new__(cls, name, bases, namespace)
    return DecorateAll


# leave a method alone
def dont_decorate(f):
    f.decorate = False
    return f


# hold the instance's re-entrant lock for the whole call, so one
# command/response exchange runs at a time on a connection
def synchronized(f):
    @functools.wraps(f)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return f(self, *args, **kwargs)
    return wrapper
