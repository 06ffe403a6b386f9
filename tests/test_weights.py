"""Tests for rule-based weight overrides."""

import json
import logging
from pathlib import Path

import pytest

from masque.catalog.seeds import build_builtin_catalog
from masque.catalog.weights import (
    WEIGHTS_FILE_ENV,
    WEIGHTS_JSON_ENV,
    apply_overrides,
    load_override_document,
    matches_major_range,
    parse_override_document,
    resolve_weight,
)
from masque.models import HardwareInfo, ScreenInfo, Template, WebGLInfo, WeightOverrideSpec


def _template(major: int, version: str | None = None, weight: int | float = 5) -> Template:
    return Template(
        id=f"t-{major}",
        os="windows",
        browser="chrome",
        user_agent=f"Chrome/{major}",
        platform="Win32",
        browser_version=version or f"{major}.0.0.0",
        major_version=major,
        weight=weight,
        webgl=WebGLInfo(vendor="Google Inc.", renderer="ANGLE"),
        screen=ScreenInfo(width=1920, height=1080),
        hardware=HardwareInfo(cpu_cores=8, device_memory=8),
    )


def _spec(**raw: object) -> WeightOverrideSpec:
    return WeightOverrideSpec.model_validate(raw)


class TestMajorRangeGrammar:
    def test_inclusive_pair(self) -> None:
        """'100-110' should include both endpoints and nothing outside."""
        assert matches_major_range("100-110", 100)
        assert matches_major_range("100-110", 110)
        assert not matches_major_range("100-110", 99)
        assert not matches_major_range("100-110", 111)

    def test_pair_tolerates_whitespace(self) -> None:
        assert matches_major_range(" 100 - 110 ", 105)

    def test_comparisons(self) -> None:
        """Each comparison operator should behave like its Python counterpart."""
        assert matches_major_range(">=123", 123)
        assert matches_major_range(">=123", 200)
        assert not matches_major_range(">=123", 122)
        assert matches_major_range(">123", 124)
        assert not matches_major_range(">123", 123)
        assert matches_major_range("<=100", 100)
        assert not matches_major_range("<=100", 101)
        assert matches_major_range("<100", 99)
        assert not matches_major_range("<100", 100)
        assert matches_major_range("==121", 121)
        assert not matches_major_range("==121", 120)

    def test_exact(self) -> None:
        """A bare integer should match only itself."""
        assert matches_major_range("123", 123)
        assert not matches_major_range("123", 124)
        assert not matches_major_range("123", 122)

    def test_garbage_never_matches(self) -> None:
        assert not matches_major_range("latest", 123)
        assert not matches_major_range("", 123)
        assert not matches_major_range("=>100", 123)
        assert not matches_major_range("100-", 123)

    def test_non_integer_major_never_matches(self) -> None:
        assert not matches_major_range(">=1", "123")
        assert not matches_major_range(">=1", 12.0)
        assert not matches_major_range(">=0", True)


class TestResolveWeight:
    def test_majors_beat_prefixes_and_ranges_apply_later(self) -> None:
        """majors wins for 121; 123 falls through to the matching range."""
        spec = _spec(
            majors={"121": 50},
            majorRanges=[{"range": ">=123", "weight": 10}],
            versionPrefixes=[{"prefix": "121.", "weight": 5}],
        )
        assert resolve_weight(_template(121), spec) == 50
        assert resolve_weight(_template(123), spec) == 10

    def test_legacy_major_beats_everything(self) -> None:
        spec = _spec(**{"121": 9, "majors": {"121": 50}, "default": 2})
        assert resolve_weight(_template(121), spec) == 9

    def test_legacy_version_beats_majors(self) -> None:
        spec = _spec(**{"121.0.0.0": 8, "majors": {"121": 50}})
        assert resolve_weight(_template(121), spec) == 8

    def test_majors_beat_versions(self) -> None:
        spec = _spec(majors={"121": 4}, versions={"121.0.0.0": 6})
        assert resolve_weight(_template(121), spec) == 4

    def test_versions_beat_ranges(self) -> None:
        spec = _spec(versions={"121.0.0.0": 6}, majorRanges=[{"range": "100-130", "weight": 3}])
        assert resolve_weight(_template(121), spec) == 6

    def test_first_matching_range_wins(self) -> None:
        spec = _spec(
            majorRanges=[
                {"range": "<100", "weight": 1},
                {"range": "120-125", "weight": 7},
                {"range": ">=121", "weight": 9},
            ]
        )
        assert resolve_weight(_template(121), spec) == 7

    def test_first_matching_prefix_wins(self) -> None:
        spec = _spec(
            versionPrefixes=[
                {"prefix": "17.", "weight": 3},
                {"prefix": "17.4", "weight": 11},
            ]
        )
        assert resolve_weight(_template(17, version="17.4"), spec) == 3

    def test_default_applies_when_nothing_matches(self) -> None:
        spec = _spec(majors={"99": 50}, default=2)
        assert resolve_weight(_template(121), spec) == 2

    def test_existing_weight_kept_without_matching_rule(self) -> None:
        assert resolve_weight(_template(121, weight=13), _spec()) == 13

    def test_non_positive_rule_falls_through(self) -> None:
        """A zero or negative rule weight should not count as a match."""
        spec = _spec(majors={"121": 0}, versions={"121.0.0.0": -4}, default=3)
        assert resolve_weight(_template(121), spec) == 3

    def test_scale_rounds_half_up(self) -> None:
        spec = _spec(majors={"121": 5}, scale=2.5)
        assert resolve_weight(_template(121), spec) == 13

    def test_scale_never_drops_below_one(self) -> None:
        spec = _spec(majors={"121": 5}, scale=0.01)
        assert resolve_weight(_template(121), spec) == 1

    def test_non_positive_scale_is_ignored(self) -> None:
        spec = _spec(majors={"121": 5}, scale=0)
        assert resolve_weight(_template(121), spec) == 5

    def test_scale_applies_to_existing_weight(self) -> None:
        spec = _spec(scale=3)
        assert resolve_weight(_template(121, weight=2), spec) == 6


class TestParseOverrideDocument:
    def test_keys_are_lowercased(self) -> None:
        specs = parse_override_document({"Windows": {"Chrome": {"default": 2}}})
        assert ("windows", "chrome") in specs

    def test_malformed_bucket_is_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        """A bad bucket should be logged and skipped, leaving good buckets."""
        with caplog.at_level(logging.WARNING):
            specs = parse_override_document(
                {
                    "windows": {
                        "chrome": {"majorRanges": "not-a-list"},
                        "firefox": {"default": 4},
                    }
                }
            )
        assert ("windows", "chrome") not in specs
        assert specs[("windows", "firefox")].default_weight == 4
        assert "windows/chrome" in caplog.text

    def test_malformed_rule_entries_are_dropped_individually(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """One bad range or prefix entry should not discard the rest of the bucket."""
        with caplog.at_level(logging.WARNING):
            specs = parse_override_document(
                {
                    "windows": {
                        "chrome": {
                            "majors": {"121": 50},
                            "majorRanges": [{"range": ">=123"}, {"range": "<100", "weight": 2}],
                            "versionPrefixes": [{"weight": 3}],
                        }
                    }
                }
            )
        spec = specs[("windows", "chrome")]
        assert spec.majors == {"121": 50}
        assert [rule.expression for rule in spec.major_ranges] == ["<100"]
        assert spec.version_prefixes == []
        assert resolve_weight(_template(121), spec) == 50
        assert "Ignoring malformed majorRanges entry for windows/chrome" in caplog.text
        assert "Ignoring malformed versionPrefixes entry" in caplog.text

    def test_non_mapping_document_yields_nothing(self) -> None:
        assert parse_override_document(["windows"]) == {}
        assert parse_override_document({"windows": 3}) == {}


class TestLoadOverrideDocument:
    def test_inline_json(self) -> None:
        specs = load_override_document(
            weights_json=json.dumps({"linux": {"firefox": {"default": 7}}}), environ={}
        )
        assert specs[("linux", "firefox")].default_weight == 7

    def test_inline_beats_file(self, tmp_path: Path) -> None:
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"linux": {"firefox": {"default": 1}}}))
        specs = load_override_document(
            weights_json=json.dumps({"linux": {"firefox": {"default": 7}}}),
            weights_file=path,
            environ={},
        )
        assert specs[("linux", "firefox")].default_weight == 7

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "weights.yaml"
        path.write_text("macos:\n  safari:\n    versionPrefixes:\n      - prefix: '17.'\n"
                        "        weight: 60\n")
        specs = load_override_document(weights_file=path, environ={})
        assert specs[("macos", "safari")].version_prefixes[0].weight == 60

    def test_yaml_numeric_keys(self, tmp_path: Path) -> None:
        """Bare version keys in YAML load as numbers and should still match."""
        path = tmp_path / "weights.yml"
        path.write_text(
            "windows:\n  chrome:\n    121: 999\n    majors:\n      122: 50\n"
            "    versions:\n      17.4: 8\n"
        )
        spec = load_override_document(weights_file=path, environ={})[("windows", "chrome")]
        assert spec.legacy == {"121": 999}
        assert spec.majors == {"122": 50}
        assert spec.versions == {"17.4": 8}
        assert resolve_weight(_template(121), spec) == 999
        assert resolve_weight(_template(122), spec) == 50
        assert resolve_weight(_template(17, version="17.4"), spec) == 8

    def test_environment_variables(self, tmp_path: Path) -> None:
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"linux": {"chrome": {"default": 3}}}))
        specs = load_override_document(environ={WEIGHTS_FILE_ENV: str(path)})
        assert specs[("linux", "chrome")].default_weight == 3

        specs = load_override_document(
            environ={
                WEIGHTS_JSON_ENV: json.dumps({"linux": {"chrome": {"default": 9}}}),
                WEIGHTS_FILE_ENV: str(path),
            }
        )
        assert specs[("linux", "chrome")].default_weight == 9

    def test_explicit_source_ignores_environment(self, tmp_path: Path) -> None:
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"linux": {"chrome": {"default": 3}}}))
        specs = load_override_document(
            weights_file=path,
            environ={WEIGHTS_JSON_ENV: json.dumps({"linux": {"chrome": {"default": 9}}})},
        )
        assert specs[("linux", "chrome")].default_weight == 3

    def test_bad_json_is_logged_and_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert load_override_document(weights_json="{not json", environ={}) == {}
        assert "Could not parse weight overrides" in caplog.text

    def test_missing_file_is_logged_and_ignored(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            specs = load_override_document(weights_file=tmp_path / "missing.json", environ={})
        assert specs == {}
        assert "Could not read weight overrides file" in caplog.text

    def test_no_source_yields_nothing(self) -> None:
        assert load_override_document(environ={}) == {}


def test_apply_overrides_rewrites_only_matching_buckets() -> None:
    """Only templates in buckets with a spec should change weight."""
    catalog = build_builtin_catalog()
    firefox_before = [t.weight for t in catalog["windows"]["firefox"]]

    changed = apply_overrides(
        catalog,
        {
            ("windows", "chrome"): _spec(majors={"124": 99}),
            ("beos", "netpositive"): _spec(default=5),
        },
    )

    chrome = catalog["windows"]["chrome"]
    assert changed == sum(1 for t in chrome if t.major_version == 124)
    assert all(t.weight == 99 for t in chrome if t.major_version == 124)
    assert all(t.weight != 99 for t in chrome if t.major_version != 124)
    assert [t.weight for t in catalog["windows"]["firefox"]] == firefox_before
