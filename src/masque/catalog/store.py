"""Template catalog: built-in seed data, augmentation and weight overrides.

The catalog is assembled lazily on first access and then kept for the
lifetime of the store instance. Augmentation documents and override rules
are optional; if they cannot be read or parsed the problem is logged and the
store carries on with what it has.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from masque.catalog.seeds import build_builtin_catalog
from masque.catalog.weights import BucketKey, apply_overrides, load_override_document
from masque.models import CatalogExport, CatalogStatistics, Template, WeightOverrideSpec
from masque.sampling import make_random, weighted_choice

if TYPE_CHECKING:
    from masque.config import CatalogConfig

logger = logging.getLogger(__name__)

CATALOG_VERSION = "1.0.0"

Catalog = dict[str, dict[str, list[Template]]]


class TemplateStore:
    """Owns the OS -> browser -> template catalog.

    Every store has its own catalog, so several isolated catalogs can live
    side by side in one process.
    """

    def __init__(
        self,
        data_path: str | Path | None = None,
        weights_json: str | None = None,
        weights_file: str | Path | None = None,
        weight_overrides: Mapping[BucketKey, WeightOverrideSpec] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the store without loading anything yet.

        Args:
            data_path: Optional JSON augmentation document of shape
                ``{"fingerprints": {os: {browser: [template, ...]}}}``.
            weights_json: Inline weight override document.
            weights_file: Path to a weight override document.
            weight_overrides: Already validated override specs. When given,
                no other override source is consulted.
            environ: Environment used to look up override sources, defaults
                to ``os.environ``.
        """
        self.version = CATALOG_VERSION
        self.last_updated = datetime.now(UTC)
        self.data_path = Path(data_path) if data_path else None
        self._weights_json = weights_json
        self._weights_file = weights_file
        self._weight_overrides = weight_overrides
        self._environ = environ
        self._catalog: Catalog | None = None

    @classmethod
    def from_config(cls, config: CatalogConfig) -> TemplateStore:
        """Build a store from the ``catalog`` section of the configuration."""
        return cls(
            data_path=config.data_path,
            weights_json=config.weights_json,
            weights_file=config.weights_file,
        )

    def initialize(self) -> TemplateStore:
        """Load the catalog if it has not been loaded yet."""
        if self._catalog is None:
            self._catalog = self._load()
        return self

    @property
    def catalog(self) -> Catalog:
        """The live catalog, loaded on first access."""
        return self.initialize()._catalog  # type: ignore[return-value]

    def _load(self) -> Catalog:
        catalog = build_builtin_catalog()

        augmentation = self._read_augmentation()
        if augmentation is not None:
            added = _merge_templates(catalog, augmentation)
            logger.info("Merged %d templates from %s", added, self.data_path)

        specs = self._weight_overrides
        if specs is None:
            specs = load_override_document(
                weights_json=self._weights_json,
                weights_file=self._weights_file,
                environ=self._environ,
            )
        if specs:
            changed = apply_overrides(catalog, specs)
            logger.info("Applied weight overrides to %d templates", changed)

        return catalog

    def _read_augmentation(self) -> Mapping[str, Any] | None:
        """Read the augmentation document, or None if absent or unusable."""
        if self.data_path is None:
            return None

        try:
            with open(self.data_path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Could not load external fingerprint database: %s", exc)
            return None

        fingerprints = raw.get("fingerprints") if isinstance(raw, Mapping) else None
        if not isinstance(fingerprints, Mapping):
            logger.warning("External fingerprint database %s has no fingerprints", self.data_path)
            return None
        return fingerprints

    def get_all_templates(self) -> Catalog:
        """Return a copy of the whole catalog."""
        return {
            os_key: {browser: list(templates) for browser, templates in browsers.items()}
            for os_key, browsers in self.catalog.items()
        }

    def get_template_count(self) -> int:
        """Return the number of templates across all buckets."""
        return sum(len(t) for browsers in self.catalog.values() for t in browsers.values())

    def get_by_os(self, os: str) -> dict[str, list[Template]]:
        """Return templates for an OS, keyed by browser; empty when unknown."""
        browsers = self.catalog.get(os.lower(), {})
        return {browser: list(templates) for browser, templates in browsers.items()}

    def get_by_browser(self, browser: str) -> list[Template]:
        """Return every template of a browser across all OSes."""
        key = browser.lower()
        results: list[Template] = []
        for browsers in self.catalog.values():
            results.extend(browsers.get(key, []))
        return results

    def get_by_os_and_browser(self, os: str, browser: str) -> list[Template]:
        """Return the templates of one OS/browser bucket; empty when unknown."""
        return list(self.catalog.get(os.lower(), {}).get(browser.lower(), []))

    def get_available_os_types(self) -> list[str]:
        """Return the OS keys present in the catalog."""
        return list(self.catalog)

    def get_available_browsers_for_os(self, os: str) -> list[str]:
        """Return the browser keys recorded for an OS."""
        return list(self.catalog.get(os.lower(), {}))

    def get_os_pool(self, os: str) -> list[Template]:
        """Return every template of an OS across all of its browsers."""
        return [t for templates in self.get_by_os(os).values() for t in templates]

    def _pool(self, os: str | None = None, browser: str | None = None) -> list[Template]:
        if os and browser:
            return self.get_by_os_and_browser(os, browser)
        if os:
            return self.get_os_pool(os)
        if browser:
            return self.get_by_browser(browser)
        return [
            t for browsers in self.catalog.values() for templates in browsers.values()
            for t in templates
        ]

    def get_random_template(
        self,
        os: str | None = None,
        browser: str | None = None,
        seed: int | None = None,
    ) -> Template | None:
        """Draw one template by weight from the optionally filtered pool.

        Args:
            os: Restrict the pool to this OS.
            browser: Restrict the pool to this browser.
            seed: Seed for a reproducible draw. Unseeded draws use the
                ambient random source.

        Returns:
            The selected template, or None when the pool is empty.
        """
        return weighted_choice(self._pool(os, browser), make_random(seed))

    def search(
        self,
        os: str | None = None,
        browser: str | None = None,
        min_major_version: int | None = None,
        max_major_version: int | None = None,
        gpu_vendor: str | None = None,
    ) -> list[Template]:
        """Filter templates by bucket, major version bounds and GPU vendor.

        Args:
            os: Restrict to this OS.
            browser: Restrict to this browser.
            min_major_version: Inclusive lower bound on the major version.
            max_major_version: Inclusive upper bound on the major version.
            gpu_vendor: Case-insensitive substring of the WebGL vendor or
                unmasked vendor.

        Returns:
            Matching templates in catalog order.
        """
        results = self._pool(os, browser)

        if min_major_version is not None:
            results = [t for t in results if t.major_version >= min_major_version]

        if max_major_version is not None:
            results = [t for t in results if t.major_version <= max_major_version]

        if gpu_vendor:
            needle = gpu_vendor.lower()
            results = [
                t
                for t in results
                if needle in t.webgl.vendor.lower() or needle in t.webgl.unmasked_vendor.lower()
            ]

        return results

    def import_data(self, data: Mapping[str, Any]) -> int:
        """Merge an external document into the live catalog.

        Templates whose id already exists in their bucket are skipped, so
        importing the same document twice only adds templates once.

        Args:
            data: Document of shape ``{"fingerprints": {os: {browser: [...]}}}``.

        Returns:
            The number of newly added templates.

        Raises:
            ValueError: If the document has no ``fingerprints`` mapping.
        """
        fingerprints = data.get("fingerprints") if isinstance(data, Mapping) else None
        if not isinstance(fingerprints, Mapping):
            raise ValueError("Invalid import data: missing fingerprints property")

        added = _merge_templates(self.catalog, fingerprints)
        if added:
            self.last_updated = datetime.now(UTC)
        logger.info("Imported %d templates", added)
        return added

    def export_data(self) -> CatalogExport:
        """Return a snapshot of the catalog that ``import_data`` accepts."""
        return CatalogExport(
            version=self.version,
            last_updated=self.last_updated,
            fingerprints=self.get_all_templates(),
        )

    def get_statistics(self) -> CatalogStatistics:
        """Aggregate template counts in total, per OS and per browser."""
        by_os: dict[str, int] = {}
        by_browser: dict[str, int] = {}
        for os_key, browsers in self.catalog.items():
            by_os[os_key] = 0
            for browser, templates in browsers.items():
                by_os[os_key] += len(templates)
                by_browser[browser] = by_browser.get(browser, 0) + len(templates)

        return CatalogStatistics(
            version=self.version,
            last_updated=self.last_updated,
            total_templates=sum(by_os.values()),
            by_os=by_os,
            by_browser=by_browser,
        )


def _merge_templates(catalog: Catalog, fingerprints: Mapping[str, Any]) -> int:
    """Append templates to their buckets, skipping ids already present.

    Args:
        catalog: The catalog to extend in place.
        fingerprints: Mapping of OS to browser to a list of raw templates.

    Returns:
        The number of templates added.
    """
    added = 0
    for os_key, browsers in fingerprints.items():
        if not isinstance(browsers, Mapping):
            logger.warning("Skipping OS '%s': expected a mapping of browsers", os_key)
            continue
        os_norm = str(os_key).lower()
        for browser_key, raw_templates in browsers.items():
            if not isinstance(raw_templates, list):
                logger.warning("Skipping %s/%s: expected a list of templates", os_key, browser_key)
                continue
            browser_norm = str(browser_key).lower()
            bucket = catalog.setdefault(os_norm, {}).setdefault(browser_norm, [])
            existing = {t.id for t in bucket}
            for raw in raw_templates:
                try:
                    template = Template.model_validate(raw)
                except ValidationError as exc:
                    logger.warning(
                        "Skipping invalid template in %s/%s: %s",
                        os_norm,
                        browser_norm,
                        exc.error_count(),
                    )
                    continue
                if template.id in existing:
                    continue
                bucket.append(template.model_copy(update={"os": os_norm, "browser": browser_norm}))
                existing.add(template.id)
                added += 1
    return added
