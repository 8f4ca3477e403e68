from collections import Counter

import pytest

from geofilter.resolvers import CountryResolver, ResolveError


class FakeResolver(CountryResolver):
    name = "fake"

    def __init__(self, mapping=None, failing=()):
        self.mapping = dict(mapping or {})
        self.failing = {str(ip) for ip in failing}
        self.calls = Counter()
        self.closed = False

    def resolve(self, ip):
        key = str(ip)
        self.calls[key] += 1
        if key in self.failing:
            raise ResolveError(f"backend unavailable for {key}")
        return self.mapping.get(key, "Unknown")

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_resolver_cls():
    return FakeResolver


@pytest.fixture
def clock():
    return FakeClock()
