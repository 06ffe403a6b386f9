"""Core data models for Masque."""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PositiveFloat,
    PositiveInt,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class OSType(enum.StrEnum):
    """Operating systems covered by the built-in catalog."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


class BrowserType(enum.StrEnum):
    """Browsers covered by the built-in catalog."""

    CHROME = "chrome"
    FIREFOX = "firefox"
    EDGE = "edge"
    SAFARI = "safari"


class NoiseLevel(enum.StrEnum):
    """Noise intensity levels, ordered from none to strongest."""

    OFF = "off"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NoiseDistribution(enum.StrEnum):
    """Shape of the raw noise distribution."""

    UNIFORM = "uniform"
    GAUSSIAN = "gaussian"


class _WireModel(BaseModel):
    """Base for records exchanged with consumers using camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class WebGLInfo(_WireModel):
    """GPU strings reported through the WebGL debug renderer extension."""

    vendor: str
    renderer: str
    unmasked_vendor: str = ""
    unmasked_renderer: str = ""


class ScreenInfo(_WireModel):
    """Screen geometry group."""

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    color_depth: int = 24
    pixel_ratio: float = 1.0


class HardwareInfo(_WireModel):
    """Hardware capability group."""

    cpu_cores: int = Field(gt=0)
    device_memory: PositiveInt | PositiveFloat
    max_touch_points: int = Field(default=0, ge=0)


class Template(_WireModel):
    """One recorded browser identity profile.

    Templates are immutable once loaded. The only field that ever changes is
    ``weight``, and only by replacing the template with an updated copy while
    weight overrides are applied at load time.
    """

    id: str = Field(description="Identifier, unique within its OS/browser bucket")
    os: str = Field(default="", description="Lowercase OS key of the owning bucket")
    browser: str = Field(default="", description="Lowercase browser key of the owning bucket")
    user_agent: str
    platform: str
    vendor: str = ""
    browser_version: str
    major_version: int
    weight: int | float = Field(default=1, description="Relative selection likelihood")
    os_version: str = ""
    webgl: WebGLInfo
    screen: ScreenInfo
    hardware: HardwareInfo
    fonts: list[str] = Field(default_factory=list)

    @field_validator("weight", mode="before")
    @classmethod
    def _missing_weight_is_one(cls, value: Any) -> Any:
        return 1 if value is None else value


class SyntheticIdentity(_WireModel):
    """An identity assembled from three independently sampled templates.

    Identity, version, GPU and font attributes come from the base template,
    the screen group from a second template and the hardware group from a
    third. ``combination_key`` holds the three source ids in that order.
    """

    id: str = Field(default_factory=lambda: f"synthetic-{uuid.uuid4().hex[:16]}")
    os: str
    browser: str
    user_agent: str
    platform: str
    vendor: str
    browser_version: str
    major_version: int
    os_version: str
    webgl: WebGLInfo
    screen: ScreenInfo
    hardware: HardwareInfo
    fonts: list[str]
    synthetic: bool = True
    combination_key: tuple[str, str, str]


class MajorRangeRule(BaseModel):
    """Weight applied to templates whose major version matches ``expression``."""

    model_config = ConfigDict(populate_by_name=True)

    expression: str = Field(alias="range")
    weight: int | float


class VersionPrefixRule(BaseModel):
    """Weight applied to templates whose version string starts with ``prefix``."""

    prefix: str
    weight: int | float


class WeightOverrideSpec(BaseModel):
    """Weight override rules for a single OS/browser bucket.

    Unknown top-level keys are kept as legacy exact-value rules, keyed
    directly by a major version (``"121"``) or a full version string
    (``"121.0.0.0"``).
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    majors: dict[str, int | float] = Field(default_factory=dict)
    versions: dict[str, int | float] = Field(default_factory=dict)
    major_ranges: list[MajorRangeRule] = Field(default_factory=list, alias="majorRanges")
    version_prefixes: list[VersionPrefixRule] = Field(
        default_factory=list, alias="versionPrefixes"
    )
    default_weight: int | float | None = Field(default=None, alias="default")
    scale: int | float | None = None

    @model_validator(mode="before")
    @classmethod
    def _stringify_version_keys(cls, data: Any) -> Any:
        """Accept bare numeric keys, which YAML reads as ``121`` rather than ``"121"``."""
        if not isinstance(data, dict):
            return data
        cleaned = {str(key): value for key, value in data.items()}
        for name in ("majors", "versions"):
            table = cleaned.get(name)
            if isinstance(table, dict):
                cleaned[name] = {str(key): value for key, value in table.items()}
        return cleaned

    @property
    def legacy(self) -> dict[str, Any]:
        """Legacy exact-value keys present on the spec itself."""
        return dict(self.model_extra or {})


class CatalogStatistics(_WireModel):
    """Template counts across the whole catalog."""

    version: str
    last_updated: datetime
    total_templates: int = 0
    by_os: dict[str, int] = Field(default_factory=dict, alias="byOS")
    by_browser: dict[str, int] = Field(default_factory=dict)


class CatalogExport(_WireModel):
    """A JSON-serializable snapshot of the catalog, importable elsewhere."""

    version: str
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    description: str = "Browser identity template catalog"
    sources: list[str] = Field(
        default_factory=lambda: ["public-test-datasets", "synthetic-combinations"]
    )
    fingerprints: dict[str, dict[str, list[Template]]] = Field(default_factory=dict)


class NoiseSettings(BaseModel):
    """Serializable configuration of a NoiseEngine."""

    seed: int = Field(ge=0, le=0xFFFFFFFF)
    level: NoiseLevel = NoiseLevel.MEDIUM
    distribution: NoiseDistribution = NoiseDistribution.UNIFORM
