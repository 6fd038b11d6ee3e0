"""
Unit tests for Asset compile / cache / invalidate behaviour.
"""

import threading
import time

import pytest

from bundler import (
    Asset,
    ConfigurationError,
    EmptySourceListError,
    FunctionProcessor,
    MemorySourceProvider,
    ProcessingError,
    SourceNotFoundError,
    SourceReader,
    StringCatalog,
)
from bundler.errors import ProcessingErrorKind


@pytest.fixture
def provider():
    return MemorySourceProvider({"a.js": "var a = 1;", "b.js": "var b = 2;"})


@pytest.fixture
def reader(provider):
    reader = SourceReader(provider, max_workers=4)
    yield reader
    reader.close()


def make_asset(reader, *files, content_type="application/javascript"):
    return Asset("/bundle.js", content_type, list(files or ("a.js", "b.js")), reader=reader)


class TestAssetConstruction:
    """Registration-time validation."""

    def test_empty_source_list(self, reader):
        with pytest.raises(EmptySourceListError):
            Asset("/x.js", "application/javascript", [], reader=reader)

    def test_missing_content_type(self, reader):
        with pytest.raises(ConfigurationError):
            Asset("/x.js", "", ["a.js"], reader=reader)

    def test_builder_chains(self, reader):
        asset = make_asset(reader).minify_javascript()

        assert [p.name for p in asset.post_processors] == ["JavaScriptMinifier"]

    def test_frozen_after_first_compile(self, reader):
        asset = make_asset(reader)
        asset.get_output()

        assert asset.is_frozen
        with pytest.raises(ConfigurationError):
            asset.minify_javascript()

    def test_route_is_read_only(self, reader):
        asset = make_asset(reader)

        with pytest.raises(AttributeError):
            asset.route = "/other.js"


class TestGetOutput:
    """The compile/cache lifecycle."""

    def test_concatenates_in_order(self, reader):
        artifact = make_asset(reader).get_output()

        assert artifact.text == "var a = 1;\nvar b = 2;"

    def test_repeated_calls_identical(self, reader):
        asset = make_asset(reader).minify_javascript()

        first = asset.get_output()
        second = asset.get_output()

        assert first.body == second.body
        assert first.content_fingerprint == second.content_fingerprint
        assert asset.cache.compile_count == 1

    def test_source_change_recompiles_once(self, reader, provider):
        asset = make_asset(reader)
        before = asset.get_output()

        provider.set("b.js", "var b = 3;")
        after = asset.get_output()
        again = asset.get_output()

        assert after.content_fingerprint != before.content_fingerprint
        assert after.generation == before.generation + 1
        assert again is after
        assert asset.cache.compile_count == 2

    def test_empty_sources_are_valid(self, provider):
        provider.set("empty1.js", "")
        provider.set("empty2.js", "")
        asset = Asset("/empty.js", "application/javascript", ["empty1.js", "empty2.js"],
                      reader=SourceReader(provider), separator="")

        artifact = asset.get_output()

        assert artifact.body == b""
        assert artifact.content_fingerprint

    def test_missing_source(self, reader):
        asset = make_asset(reader, "a.js", "gone.js")

        with pytest.raises(SourceNotFoundError) as exc_info:
            asset.get_output()

        assert exc_info.value.identifier == "gone.js"

    def test_source_removed_after_compile_keeps_stale(self, reader, provider):
        asset = make_asset(reader)
        good = asset.get_output()

        provider.remove("b.js")
        with pytest.raises(SourceNotFoundError):
            asset.get_output()

        assert asset.current_artifact() is good

    def test_processing_error_keeps_stale_artifact(self, reader, provider):
        asset = make_asset(reader).minify_javascript()
        good = asset.get_output()

        provider.set("b.js", "function broken( {")
        with pytest.raises(ProcessingError) as exc_info:
            asset.get_output()

        assert exc_info.value.kind == ProcessingErrorKind.SYNTAX_ERROR
        assert asset.current_artifact() is good

        provider.set("b.js", "var b = 4;")
        fixed = asset.get_output()
        assert fixed is not good
        assert "var b=4;" in fixed.text

    def test_unencodable_output_is_processing_error(self, reader, provider):
        provider.set("i18n.js", "var s = '{{text}}';")
        asset = Asset("/i18n.js", "application/javascript", ["i18n.js"], reader=reader)
        asset.localize(lambda key, locale: "\ud800")

        with pytest.raises(ProcessingError) as exc_info:
            asset.get_output("en")

        assert exc_info.value.kind == ProcessingErrorKind.TRANSFORM_FAILED
        assert exc_info.value.step == "encode"
        assert isinstance(exc_info.value.cause, UnicodeEncodeError)
        assert asset.current_artifact("en") is None

    def test_versioned_url(self, reader):
        asset = make_asset(reader)

        url = asset.versioned_url()

        assert url == f"/bundle.js?v={asset.current_artifact().content_fingerprint}"


class TestLocalizedAsset:
    """Locale variants."""

    @pytest.fixture
    def asset(self, provider):
        provider.set("i18n.js", "var msg = '{{greeting|Hello}}';")
        asset = Asset("/i18n.js", "application/javascript", ["i18n.js"],
                      reader=SourceReader(provider), default_locale="en")
        return asset.localize(StringCatalog({"fr": {"greeting": "Bonjour"}}))

    def test_locales_compiled_independently(self, asset):
        fr = asset.get_output("fr")
        en = asset.get_output("en")

        assert fr.text == "var msg = 'Bonjour';"
        assert en.text == "var msg = 'Hello';"
        assert fr.content_fingerprint != en.content_fingerprint
        assert asset.cache.variants() == ["en", "fr"]

    def test_unknown_locale_served_as_default(self, asset):
        xx = asset.get_output("xx")

        assert xx is asset.get_output("en")
        assert xx.locale == "en"
        assert asset.cache.variants() == ["en"]

    def test_many_unknown_locales_compile_once(self, asset):
        for i in range(200):
            asset.get_output(f"zz{i}")

        assert asset.cache.variants() == ["en"]
        assert asset.cache.compile_count == 1

    def test_parent_culture_selected(self, asset):
        assert asset.match_locale("fr-CA") == "fr"
        assert asset.get_output("fr-CA") is asset.get_output("fr")

    def test_known_locales(self, asset):
        assert asset.locales == frozenset({"en", "fr"})
        assert asset.match_locale("xx") is None

    def test_declared_locales_for_plain_lookup(self, provider, reader):
        provider.set("i18n.js", "'{{greeting|Hello}}'")
        asset = Asset("/i18n.js", "application/javascript", ["i18n.js"], reader=reader,
                      supported_locales=["de"])
        asset.localize(lambda key, locale: {"nl": "Hallo!", "de": "Hallo"}.get(locale), locales=["nl"])

        assert asset.get_output("nl").text == "'Hallo!'"
        assert asset.get_output("DE").text == "'Hallo'"
        assert asset.get_output("it").locale == "en"

    def test_default_locale_used_when_none(self, asset):
        artifact = asset.get_output()

        assert artifact.locale == "en"
        assert artifact.text == "var msg = 'Hello';"

    def test_locale_case_folded(self, asset):
        assert asset.get_output("FR") is asset.get_output("fr")

    def test_non_localized_ignores_locale(self, reader):
        asset = make_asset(reader)

        assert asset.get_output("fr") is asset.get_output("de")
        assert asset.get_output("fr").locale is None


class TestConcurrentRecompile:
    """Coalescing at the asset level."""

    def test_single_recompile_for_concurrent_requests(self, reader, provider):
        def slow(text, context):
            time.sleep(0.2)
            return text

        asset = make_asset(reader).add_processor(FunctionProcessor(slow))
        asset.get_output()
        provider.set("a.js", "var a = 10;")

        barrier = threading.Barrier(5)
        results = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            artifact = asset.get_output()
            with lock:
                results.append(artifact)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert asset.cache.compile_count == 2
        assert len(results) == 5
        assert all(r is results[0] for r in results)
        assert "var a = 10;" in results[0].text
