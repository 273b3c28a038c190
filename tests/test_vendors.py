from sqlalchemy.exc import OperationalError

from payment_relay.vendors import VendorResolver


class CountingFactory:
    def __init__(self, factory):
        self.factory = factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.factory()


def test_empty_name_never_queries(session_factory):
    counting = CountingFactory(session_factory)
    resolver = VendorResolver(counting)
    assert resolver.resolve(None) is None
    assert resolver.resolve("") is None
    assert resolver.resolve("   ") is None
    assert counting.calls == 0


def test_case_insensitive_substring_match(session_factory):
    resolver = VendorResolver(session_factory)
    assert resolver.resolve("ocean") == 3
    assert resolver.resolve("MARKET") == 4


def test_exact_match_beats_lower_id(session_factory):
    # "Green Farm Produce" (id 1) also contains "green farm"
    assert VendorResolver(session_factory).resolve("green farm") == 2


def test_multiple_partial_matches_pick_lowest_id(session_factory):
    assert VendorResolver(session_factory).resolve("seafood") == 3
    assert VendorResolver(session_factory).resolve("green") == 1


def test_no_match(session_factory):
    assert VendorResolver(session_factory).resolve("Nonexistent Supplier") is None


def test_wildcards_are_literal(session_factory):
    assert VendorResolver(session_factory).resolve("%") is None
    assert VendorResolver(session_factory).resolve("Green_Farm") is None


def test_lookup_failure_degrades_to_no_match():
    def broken_factory():
        raise OperationalError("SELECT", {}, Exception("server closed the connection"))

    assert VendorResolver(broken_factory).resolve("Green Farm") is None
