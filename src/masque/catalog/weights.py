"""Rule-based weight overrides for catalog templates.

An override document maps ``os -> browser -> spec``. For every template in a
bucket with a spec, the rules below are tried in order and the first match
sets the weight:

  1. legacy key equal to the major version
  2. legacy key equal to the exact version string
  3. ``majors[str(major)]``
  4. ``versions[version]``
  5. first matching ``majorRanges`` entry
  6. first matching ``versionPrefixes`` entry
  7. ``default``
  8. the template's existing weight

A positive ``scale`` then multiplies the result, rounded and floored at 1.
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from masque.models import MajorRangeRule, Template, VersionPrefixRule, WeightOverrideSpec

logger = logging.getLogger(__name__)

WEIGHTS_JSON_ENV = "FP_WEIGHTS_JSON"
WEIGHTS_FILE_ENV = "FP_WEIGHTS_FILE"

BucketKey = tuple[str, str]
Rule = Callable[[Template, WeightOverrideSpec], float | None]

_RANGE_PATTERN = re.compile(r"^(\d+)\s*-\s*(\d+)$")
_COMPARISON_PATTERN = re.compile(r"^(>=|<=|==|>|<)\s*(\d+)$")
_EXACT_PATTERN = re.compile(r"^\d+$")

_COMPARATORS: dict[str, Callable[[int, int], bool]] = {
    ">=": lambda a, b: a >= b,
    ">": lambda a, b: a > b,
    "<=": lambda a, b: a <= b,
    "<": lambda a, b: a < b,
    "==": lambda a, b: a == b,
}


def _positive(value: Any) -> float | None:
    """Return value unchanged if it is a positive finite number, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def matches_major_range(expression: str, major: Any) -> bool:
    """Check whether a major version satisfies a range expression.

    Supported forms are an exact integer (``"123"``), an inclusive pair
    (``"100-110"``) and the comparisons ``>=n``, ``>n``, ``<=n``, ``<n`` and
    ``==n``. Non-integer majors and unparseable expressions never match.

    Args:
        expression: The range expression.
        major: The template's major version.

    Returns:
        True if the expression matches.
    """
    if isinstance(major, bool) or not isinstance(major, int):
        return False
    if not isinstance(expression, str):
        return False

    expr = expression.strip()

    if _EXACT_PATTERN.match(expr):
        return major == int(expr)

    bounds = _RANGE_PATTERN.match(expr)
    if bounds:
        low, high = int(bounds.group(1)), int(bounds.group(2))
        return low <= major <= high

    comparison = _COMPARISON_PATTERN.match(expr)
    if comparison:
        return _COMPARATORS[comparison.group(1)](major, int(comparison.group(2)))

    return False


def _legacy_major(template: Template, spec: WeightOverrideSpec) -> float | None:
    return _positive(spec.legacy.get(str(template.major_version)))


def _legacy_version(template: Template, spec: WeightOverrideSpec) -> float | None:
    return _positive(spec.legacy.get(template.browser_version))


def _majors(template: Template, spec: WeightOverrideSpec) -> float | None:
    return _positive(spec.majors.get(str(template.major_version)))


def _versions(template: Template, spec: WeightOverrideSpec) -> float | None:
    return _positive(spec.versions.get(template.browser_version))


def _major_ranges(template: Template, spec: WeightOverrideSpec) -> float | None:
    for rule in spec.major_ranges:
        if matches_major_range(rule.expression, template.major_version):
            return _positive(rule.weight)
    return None


def _version_prefixes(template: Template, spec: WeightOverrideSpec) -> float | None:
    for rule in spec.version_prefixes:
        if template.browser_version.startswith(rule.prefix):
            return _positive(rule.weight)
    return None


def _default(template: Template, spec: WeightOverrideSpec) -> float | None:
    return _positive(spec.default_weight)


RULES: tuple[Rule, ...] = (
    _legacy_major,
    _legacy_version,
    _majors,
    _versions,
    _major_ranges,
    _version_prefixes,
    _default,
)


def resolve_weight(template: Template, spec: WeightOverrideSpec) -> int | float:
    """Resolve the effective weight of a template under a bucket spec.

    Args:
        template: The template to weigh.
        spec: The override rules of the template's bucket.

    Returns:
        The resolved weight, scaled when the spec carries a positive scale.
    """
    weight: int | float | None = None
    for rule in RULES:
        weight = rule(template, spec)
        if weight is not None:
            break

    if weight is None:
        weight = _positive(template.weight) or 1

    scale = _positive(spec.scale)
    if scale is not None:
        weight = max(1, math.floor(weight * scale + 0.5))

    return weight


_RULE_LISTS: tuple[tuple[str, str, type[MajorRangeRule] | type[VersionPrefixRule]], ...] = (
    ("majorRanges", "major_ranges", MajorRangeRule),
    ("versionPrefixes", "version_prefixes", VersionPrefixRule),
)


def _drop_invalid_rules(bucket: Mapping[Any, Any], label: str) -> dict[Any, Any]:
    """Remove malformed entries from a bucket's rule lists, keeping the rest."""
    cleaned = dict(bucket)
    for alias, name, model in _RULE_LISTS:
        for key in (alias, name):
            entries = cleaned.get(key)
            if not isinstance(entries, list):
                continue
            kept = []
            for entry in entries:
                try:
                    model.model_validate(entry)
                except ValidationError:
                    logger.warning("Ignoring malformed %s entry for %s: %r", alias, label, entry)
                    continue
                kept.append(entry)
            cleaned[key] = kept
    return cleaned


def parse_override_document(raw: Any) -> dict[BucketKey, WeightOverrideSpec]:
    """Validate an override document bucket by bucket.

    Malformed ``majorRanges`` or ``versionPrefixes`` entries are dropped one
    at a time. Buckets that still have the wrong shape are logged and
    dropped; the remaining buckets are returned.

    Args:
        raw: Decoded document of shape ``{os: {browser: spec}}``.

    Returns:
        Validated specs keyed by lowercase ``(os, browser)``.
    """
    specs: dict[BucketKey, WeightOverrideSpec] = {}
    if not isinstance(raw, Mapping):
        logger.warning("Ignoring weight overrides: expected a mapping, got %s", type(raw).__name__)
        return specs

    for os_key, browsers in raw.items():
        if not isinstance(browsers, Mapping):
            logger.warning("Ignoring weight overrides for OS '%s': not a mapping", os_key)
            continue
        for browser_key, bucket in browsers.items():
            key = (str(os_key).lower(), str(browser_key).lower())
            if isinstance(bucket, Mapping):
                bucket = _drop_invalid_rules(bucket, f"{key[0]}/{key[1]}")
            try:
                specs[key] = WeightOverrideSpec.model_validate(bucket)
            except ValidationError as exc:
                logger.warning(
                    "Ignoring malformed weight overrides for %s/%s: %s",
                    key[0],
                    key[1],
                    exc.error_count(),
                )
    return specs


def _decode(text: str, source: str) -> Any | None:
    try:
        return yaml.safe_load(text) if source.endswith((".yaml", ".yml")) else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        logger.warning("Could not parse weight overrides from %s: %s", source, exc)
        return None


def load_override_document(
    weights_json: str | None = None,
    weights_file: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[BucketKey, WeightOverrideSpec]:
    """Read override rules from the first available source.

    Sources are tried in order: ``weights_json``, ``weights_file``, then the
    ``FP_WEIGHTS_JSON`` and ``FP_WEIGHTS_FILE`` environment variables. Any
    read or parse failure is logged and yields no overrides.

    Args:
        weights_json: Inline JSON document.
        weights_file: Path to a JSON or YAML document.
        environ: Environment mapping, defaults to ``os.environ``.

    Returns:
        Validated specs keyed by ``(os, browser)``; empty when absent.
    """
    inline: str | None = weights_json
    path: str | Path | None = weights_file
    if inline is None and path is None:
        env = os.environ if environ is None else environ
        inline = env.get(WEIGHTS_JSON_ENV)
        path = env.get(WEIGHTS_FILE_ENV)

    raw: Any | None = None
    if inline:
        raw = _decode(inline, "inline document")
    elif path:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read weight overrides file %s: %s", path, exc)
            return {}
        raw = _decode(text, str(path))

    if raw is None:
        return {}
    return parse_override_document(raw)


def apply_overrides(
    catalog: dict[str, dict[str, list[Template]]],
    specs: Mapping[BucketKey, WeightOverrideSpec],
) -> int:
    """Rewrite template weights in place for every bucket with a spec.

    Args:
        catalog: The catalog to update.
        specs: Validated specs keyed by ``(os, browser)``.

    Returns:
        Number of templates whose weight changed.
    """
    changed = 0
    for (os_key, browser_key), spec in specs.items():
        bucket = catalog.get(os_key, {}).get(browser_key)
        if bucket is None:
            logger.debug("Weight overrides for %s/%s match no bucket", os_key, browser_key)
            continue
        for index, template in enumerate(bucket):
            weight = resolve_weight(template, spec)
            if weight != template.weight:
                bucket[index] = template.model_copy(update={"weight": weight})
                changed += 1
    return changed
