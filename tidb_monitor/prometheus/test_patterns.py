"""
Tests for relabel regular expressions.
"""

import re

import pytest

from tidb_monitor.prometheus.patterns import DEFAULT_PATTERNS, Regexp, RenderPatterns


class TestRegexp:
    """Prometheus-style anchored matching."""

    def test_match_is_anchored(self):
        regexp = Regexp.compile("basic")

        assert regexp.matches("basic")
        assert not regexp.matches("basic-2")
        assert not regexp.matches("my-basic")

    def test_alternation_is_anchored_as_a_whole(self):
        regexp = Regexp.compile("pd|tikv")

        assert regexp.matches("pd")
        assert regexp.matches("tikv")
        assert not regexp.matches("pd-0")

    def test_serializes_to_source(self):
        assert str(Regexp.compile(r"([^:]+)(?::\d+)?;(\d+)")) == r"([^:]+)(?::\d+)?;(\d+)"

    def test_equality_uses_source(self):
        assert Regexp.compile("a.*") == Regexp.compile("a.*")
        assert Regexp.compile("a.*") != Regexp.compile("b.*")

    def test_invalid_expression_raises(self):
        with pytest.raises(re.error):
            Regexp.compile("(unclosed")

    def test_trailing_newline_does_not_match(self):
        assert not Regexp.compile("true").matches("true\n")
        assert not Regexp.compile(r".*\-tikv\-\d*$").matches("foo-tikv-0\n")

    @pytest.mark.parametrize("source", [
        "(?=basic).*",
        "(?!basic).*",
        "(?<=a)b",
        "(?<!a)b",
        r"(a)\1",
        "(?P<x>a)(?P=x)",
        "(?>ab)c",
        "a++",
        "a{2}+",
        "(?(1)a|b)",
    ])
    def test_rejects_syntax_unsupported_by_re2(self, source):
        with pytest.raises(re.error):
            Regexp.compile(source)

    @pytest.mark.parametrize("source", [
        "(?P<name>basic)-.*",
        "(?i)basic",
        "a+?",
        r"[\]1]+",
        r"\\1",
    ])
    def test_accepts_re2_syntax(self, source):
        assert str(Regexp.compile(source)) == source


class TestRenderPatterns:
    """Fixed patterns used by the renderer."""

    def test_compile_is_repeatable(self):
        assert RenderPatterns.compile() == DEFAULT_PATTERNS

    def test_true_pattern(self):
        assert DEFAULT_PATTERNS.true.matches("true")
        assert not DEFAULT_PATTERNS.true.matches("True")
        assert not DEFAULT_PATTERNS.true.matches("false")

    def test_all_match_requires_a_value(self):
        assert DEFAULT_PATTERNS.all_match.matches("/metrics")
        assert not DEFAULT_PATTERNS.all_match.matches("")

    @pytest.mark.parametrize("source,expected", [
        ("10.0.0.1:20180;20180", "10.0.0.1:20180"),
        ("10.0.0.1;20160", "10.0.0.1:20160"),
        ("basic-tikv-0.basic-tikv-peer:2379;20180", "basic-tikv-0.basic-tikv-peer:20180"),
    ])
    def test_port_pattern_rewrites_address(self, source, expected):
        match = DEFAULT_PATTERNS.port.compiled.fullmatch(source)
        assert match is not None
        assert f"{match.group(1)}:{match.group(2)}" == expected

    def test_port_pattern_requires_annotated_port(self):
        assert not DEFAULT_PATTERNS.port.matches("10.0.0.1:20180;")

    @pytest.mark.parametrize("pod_name", ["foo-tikv-0", "basic-tikv-12", "a-b-tikv-3"])
    def test_tikv_pattern_matches(self, pod_name):
        assert DEFAULT_PATTERNS.tikv.matches(pod_name)

    @pytest.mark.parametrize("pod_name", ["foo-tikv-abc", "foo-pd-0", "foo-tikv-0-x", "tikv-0"])
    def test_tikv_pattern_does_not_match(self, pod_name):
        assert not DEFAULT_PATTERNS.tikv.matches(pod_name)
