from __future__ import annotations

import unittest

from ig_extract.markup import (
    DEFAULT_PAYLOAD_SOURCES,
    MarkerPayload,
    ScriptPayload,
    collect_embedded_payloads,
    extract_json_after_marker,
    extract_json_from_script,
    extract_json_ld_payloads,
    extract_meta_content,
    extract_meta_name,
)


class TestMetaLookup(unittest.TestCase):
    def test_property_either_order(self) -> None:
        html = '<meta property="og:image" content="https://example.com/a.jpg">'
        self.assertEqual(extract_meta_content(html, "og:image"), "https://example.com/a.jpg")

        html = "<meta content='https://example.com/b.jpg' property='og:image' />"
        self.assertEqual(extract_meta_content(html, "og:image"), "https://example.com/b.jpg")

    def test_property_missing(self) -> None:
        html = '<meta property="og:title" content="Title">'
        self.assertIsNone(extract_meta_content(html, "og:image"))

    def test_key_is_matched_literally(self) -> None:
        html = '<meta property="ogXimage" content="nope">'
        self.assertIsNone(extract_meta_content(html, "og.image"))

    def test_name_lookup(self) -> None:
        html = '<META name="twitter:image" content="https://example.com/t.jpg">'
        self.assertEqual(extract_meta_name(html, "twitter:image"), "https://example.com/t.jpg")
        html = '<meta content="This is a description" name="description">'
        self.assertEqual(extract_meta_name(html, "description"), "This is a description")


class TestJsonLd(unittest.TestCase):
    def test_single_and_multiple_blocks(self) -> None:
        html = """
        <script type="application/ld+json">{"@type": "ImageObject", "caption": "Test"}</script>
        <script type="application/ld+json">{"@type": "Person"}</script>
        """
        payloads = extract_json_ld_payloads(html)
        self.assertEqual(len(payloads), 2)
        self.assertEqual(payloads[0], {"@type": "ImageObject", "caption": "Test"})

    def test_arrays_are_flattened(self) -> None:
        html = '<script type="application/ld+json">[{"@type": "A"}, {"@type": "B"}]</script>'
        self.assertEqual(extract_json_ld_payloads(html), [{"@type": "A"}, {"@type": "B"}])

    def test_bad_block_does_not_stop_scan(self) -> None:
        html = """
        <script type="application/ld+json">not valid json</script>
        <script type="application/ld+json">{"@type": "Person"}</script>
        """
        self.assertEqual(extract_json_ld_payloads(html), [{"@type": "Person"}])
        self.assertEqual(extract_json_ld_payloads(""), [])


class TestMarkerExtraction(unittest.TestCase):
    def test_simple_and_nested(self) -> None:
        html = 'window._sharedData = {"a": {"b": {"c": 1}}};</script>'
        self.assertEqual(
            extract_json_after_marker(html, "window._sharedData"), {"a": {"b": {"c": 1}}}
        )

    def test_brace_inside_string(self) -> None:
        html = 'x = {"text": "a } b { c", "n": 1}; {"other": true}'
        self.assertEqual(extract_json_after_marker(html, "x ="), {"text": "a } b { c", "n": 1})

    def test_escaped_quote_inside_string(self) -> None:
        html = r'm({"text": "say \"}\" now", "k": "\\"}) trailing }'
        self.assertEqual(extract_json_after_marker(html, "m("), {"text": 'say "}" now', "k": "\\"})

    def test_absent_cases(self) -> None:
        self.assertIsNone(extract_json_after_marker("some other content", "window._sharedData"))
        self.assertIsNone(extract_json_after_marker("window._sharedData = null;", "window._sharedData"))
        self.assertIsNone(extract_json_after_marker('marker {"a": 1', "marker"))
        self.assertIsNone(extract_json_after_marker("marker {a: 1}", "marker"))


class TestScriptExtraction(unittest.TestCase):
    def test_by_id(self) -> None:
        html = '<script id="__NEXT_DATA__" type="application/json">{"props": {"pageProps": {}}}</script>'
        self.assertEqual(extract_json_from_script(html, "__NEXT_DATA__"), {"props": {"pageProps": {}}})

    def test_missing_or_invalid(self) -> None:
        self.assertIsNone(extract_json_from_script('<script id="other">{"k": 1}</script>', "__NEXT_DATA__"))
        self.assertIsNone(extract_json_from_script('<script id="__NEXT_DATA__">{oops</script>', "__NEXT_DATA__"))


class TestPayloadSources(unittest.TestCase):
    def test_sources_run_in_order(self) -> None:
        html = (
            '<script id="__NEXT_DATA__">{"from": "next"}</script>'
            '<script>window._sharedData = {"from": "shared"};</script>'
        )
        found = collect_embedded_payloads(html, DEFAULT_PAYLOAD_SOURCES)
        self.assertEqual(
            found,
            [
                ("marker:window._sharedData", {"from": "shared"}),
                ("script:__NEXT_DATA__", {"from": "next"}),
            ],
        )

    def test_custom_sources(self) -> None:
        html = 'window.__state = {"x": 1}'
        sources = (ScriptPayload("missing"), MarkerPayload("window.__state"))
        self.assertEqual(collect_embedded_payloads(html, sources), [("marker:window.__state", {"x": 1})])


if __name__ == "__main__":
    unittest.main()
