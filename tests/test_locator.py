"""Tests for the handler registry and locator dispatch."""

from __future__ import annotations

import pytest

from antipaste.errors import ErrorKind, UnrecognizedLocatorError
from antipaste.handlers import FileHandler, HttpHandler
from antipaste.locator import HandlerRegistry, LocatorDispatcher


@pytest.fixture
def registry(memory_handler, tmp_path) -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(memory_handler)
    registry.register(HttpHandler())
    registry.register(FileHandler(tmp_path / "pastes"))
    return registry


@pytest.fixture
def dispatcher(registry) -> LocatorDispatcher:
    return LocatorDispatcher(registry)


class TestHandlerRegistry:
    """Tests for HandlerRegistry."""

    def test_register_and_get(self, registry, memory_handler):
        assert registry.get("mem") is memory_handler
        assert "mem" in registry
        assert registry.get("gist") is None
        assert len(registry) == 3

    def test_duplicate_prefix(self, registry, memory_handler):
        with pytest.raises(ValueError, match="already registered"):
            registry.register(memory_handler)

    def test_prefixes_sorted(self, registry):
        assert registry.prefixes() == ["file", "http", "mem"]

    def test_iterates_handlers(self, registry):
        assert {h.prefix for h in registry} == {"file", "http", "mem"}


class TestLocatorDispatcher:
    """Tests for classify() and dispatch()."""

    def test_registered_prefix(self, dispatcher):
        assert dispatcher.classify("mem:abc123") == ("mem", "abc123")

    def test_remainder_keeps_colons(self, dispatcher):
        assert dispatcher.classify("mem:a:b") == ("mem", "a:b")

    @pytest.mark.parametrize(
        "url",
        ["http://example.com/paste/1", "https://example.com/p?id=2", "HTTPS://EXAMPLE.COM/x"],
    )
    def test_urls(self, dispatcher, url):
        """URLs keep the whole locator as the remainder."""
        assert dispatcher.classify(url) == ("http", url)

    def test_local_file(self, dispatcher, tmp_path):
        path = tmp_path / "secret.asc"
        path.write_text("armored")
        assert dispatcher.classify(str(path)) == ("file", str(path))

    def test_directory_is_not_a_file(self, dispatcher, tmp_path):
        with pytest.raises(UnrecognizedLocatorError):
            dispatcher.classify(str(tmp_path))

    def test_unknown_prefix(self, dispatcher):
        with pytest.raises(UnrecognizedLocatorError) as exc_info:
            dispatcher.classify("gist:abc123")
        assert exc_info.value.locator == "gist:abc123"
        assert exc_info.value.kind == ErrorKind.UNRECOGNIZED_LOCATOR

    def test_plain_word(self, dispatcher):
        with pytest.raises(UnrecognizedLocatorError):
            dispatcher.classify("no-such-thing")

    def test_overlong_locator(self, dispatcher):
        """A name too long for the filesystem is not a file."""
        locator = "x" * 5000
        with pytest.raises(UnrecognizedLocatorError) as exc_info:
            dispatcher.classify(locator)
        assert exc_info.value.locator == locator

    def test_dispatch_returns_handler(self, dispatcher, memory_handler):
        handler, remainder = dispatcher.dispatch("mem:7")
        assert handler is memory_handler
        assert remainder == "7"

    def test_dispatch_without_http_handler(self, memory_handler):
        """A URL fails when no http handler is registered."""
        registry = HandlerRegistry()
        registry.register(memory_handler)
        with pytest.raises(UnrecognizedLocatorError):
            LocatorDispatcher(registry).dispatch("https://example.com/x")
