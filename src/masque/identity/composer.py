"""Synthetic identity composition.

A synthetic identity takes its identity, version, GPU and font attributes from
a base template of the requested OS/browser, its screen group from a second
template and its hardware group from a third. The second and third templates
are drawn from every browser of the same OS, so the screen/hardware pairings
reach beyond what any single recorded browser offers.
"""

from __future__ import annotations

import logging
import random

from masque.catalog.store import TemplateStore
from masque.exceptions import (
    CombinationsExhaustedError,
    NoBrowsersAvailableError,
    NoTemplatesAvailableError,
)
from masque.models import SyntheticIdentity, Template
from masque.sampling import RandomSource, make_random, weighted_choice

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100

CombinationKey = tuple[str, str, str]


class SyntheticIdentityComposer:
    """Mixes templates into identities, never emitting the same triple twice.

    The used-combination set lives for as long as the composer does, or until
    :meth:`clear_used_combinations` is called.
    """

    def __init__(self, store: TemplateStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self.store = store
        self.max_attempts = max_attempts
        self._used_combinations: set[CombinationKey] = set()

    @property
    def used_combination_count(self) -> int:
        """Number of combinations emitted since the last clear."""
        return len(self._used_combinations)

    def clear_used_combinations(self) -> None:
        """Forget emitted combinations so they may be produced again."""
        self._used_combinations.clear()

    def generate(
        self,
        os: str | None = None,
        browser: str | None = None,
        seed: int | None = None,
    ) -> SyntheticIdentity:
        """Compose a synthetic identity that has not been emitted before.

        Args:
            os: Target OS. Chosen uniformly from the catalog when omitted.
            browser: Target browser. Chosen uniformly from the OS's browsers
                when omitted.
            seed: Seed for a reproducible draw. On a repeated combination the
                next attempt uses ``seed + 1``.

        Returns:
            The new synthetic identity.

        Raises:
            NoBrowsersAvailableError: A random browser was requested for an
                OS without browsers.
            NoTemplatesAvailableError: The OS/browser pool is empty.
            CombinationsExhaustedError: Every attempt hit a used combination.
        """
        os = (os or self._random_os()).lower()
        browser = (browser or self._random_browser(os)).lower()

        templates = self.store.get_by_os_and_browser(os, browser)
        if not templates:
            raise NoTemplatesAvailableError(os, browser)
        os_templates = self.store.get_os_pool(os)

        attempt_seed = seed
        for attempt in range(1, self.max_attempts + 1):
            rng = make_random(attempt_seed)
            base, screen, hardware = self._draw(templates, os_templates, rng)
            key = (base.id, screen.id, hardware.id)

            if key not in self._used_combinations:
                self._used_combinations.add(key)
                return _compose(base, screen, hardware, os, browser, key)

            logger.debug("Combination %s already used (attempt %d)", key, attempt)
            if attempt_seed is not None:
                attempt_seed += 1

        logger.warning(
            "Gave up on %s/%s after %d attempts", os, browser, self.max_attempts
        )
        raise CombinationsExhaustedError(os, browser, self.max_attempts)

    def _random_os(self) -> str:
        os_types = self.store.get_available_os_types()
        if not os_types:
            raise NoTemplatesAvailableError("<any>", "<any>")
        return random.choice(os_types)

    def _random_browser(self, os: str) -> str:
        browsers = self.store.get_available_browsers_for_os(os)
        if not browsers:
            raise NoBrowsersAvailableError(os)
        return random.choice(browsers)

    @staticmethod
    def _draw(
        templates: list[Template],
        os_templates: list[Template],
        rng: RandomSource,
    ) -> tuple[Template, Template, Template]:
        base = weighted_choice(templates, rng)
        screen = weighted_choice(os_templates, rng)
        hardware = weighted_choice(os_templates, rng)
        if base is None or screen is None or hardware is None:
            raise NoTemplatesAvailableError(templates[0].os, templates[0].browser)
        return base, screen, hardware


def _compose(
    base: Template,
    screen: Template,
    hardware: Template,
    os: str,
    browser: str,
    key: CombinationKey,
) -> SyntheticIdentity:
    return SyntheticIdentity(
        os=os,
        browser=browser,
        user_agent=base.user_agent,
        platform=base.platform,
        vendor=base.vendor,
        browser_version=base.browser_version,
        major_version=base.major_version,
        os_version=base.os_version,
        webgl=base.webgl,
        screen=screen.screen,
        hardware=hardware.hardware,
        fonts=list(base.fonts),
        combination_key=key,
    )
