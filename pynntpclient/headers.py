from collections import OrderedDict


class Headers(object):
    """Ordered multi-value mapping of header name to values.

    Lookups ignore case. The spelling used by the first occurrence of a
    name is kept and returned by ``items()`` and ``as_lines()``. Values
    under one name keep their arrival order; repeated headers are stored
    as separate values, never merged.
    """

    def __init__(self, pairs=()):
        ## lowercased name -> (original name, [values])
        self._fields = OrderedDict()
        for name, value in pairs:
            self.add(name, value)

    def add(self, name, value):
        key = name.lower()
        if key not in self._fields:
            self._fields[key] = (name, [])
        self._fields[key][1].append(value)

    def extend_last(self, name, text):
        ## folded continuation: glue onto the latest value, no separator
        values = self._fields[name.lower()][1]
        values[-1] = values[-1] + text

    def getall(self, name):
        try:
            return list(self._fields[name.lower()][1])
        except KeyError:
            return []

    def get(self, name, default=None):
        values = self.getall(name)
        return values[0] if values else default

    def names(self):
        return [name for name, values in self._fields.values()]

    def items(self):
        for name, values in self._fields.values():
            for value in values:
                yield name, value

    def as_lines(self):
        ## re-serialize without folding, one "Name: value" per value
        return ['%s: %s' % (name, value) for name, value in self.items()]

    def as_dict(self):
        return dict((key, list(values)) for key, (name, values) in self._fields.items())

    def __getitem__(self, name):
        values = self.getall(name)
        if not values:
            raise KeyError(name)
        return values

    def __contains__(self, name):
        return name.lower() in self._fields

    def __iter__(self):
        return iter(self.names())

    def __len__(self):
        return len(self._fields)

    def __eq__(self, other):
        if isinstance(other, Headers):
            return self.as_dict() == other.as_dict()
        if isinstance(other, dict):
            return self.as_dict() == dict((k.lower(), v) for k, v in other.items())
        return NotImplemented

    def __repr__(self):
        return 'Headers(%r)' % list(self.items())
