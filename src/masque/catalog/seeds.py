"""Built-in browser identity templates.

Each OS/browser bucket is described by a ``SeedTable``: the observed
browser versions with their market weight, the GPU strings seen on that
platform, and the screen/hardware/font sets. Templates are the cross product
of versions and GPUs, with screen and hardware groups assigned round-robin.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from masque.models import HardwareInfo, ScreenInfo, Template, WebGLInfo

WINDOWS_FONTS = [
    "Arial",
    "Arial Black",
    "Calibri",
    "Cambria",
    "Comic Sans MS",
    "Consolas",
    "Courier New",
    "Georgia",
    "Impact",
    "Lucida Console",
    "Segoe UI",
    "Tahoma",
    "Times New Roman",
    "Trebuchet MS",
    "Verdana",
]

MACOS_FONTS = [
    "Arial",
    "Arial Black",
    "Comic Sans MS",
    "Courier New",
    "Georgia",
    "Helvetica",
    "Helvetica Neue",
    "Impact",
    "Lucida Grande",
    "Monaco",
    "Palatino",
    "Tahoma",
    "Times New Roman",
    "Trebuchet MS",
    "Verdana",
]

MACOS_SYSTEM_FONTS = [*MACOS_FONTS, "SF Pro Display", "SF Pro Text"]

LINUX_FONTS = [
    "Arial",
    "Bitstream Vera Sans",
    "Courier New",
    "DejaVu Sans",
    "DejaVu Sans Mono",
    "DejaVu Serif",
    "Droid Sans",
    "FreeMono",
    "FreeSans",
    "FreeSerif",
    "Georgia",
    "Liberation Mono",
    "Liberation Sans",
    "Liberation Serif",
    "Noto Sans",
    "Times New Roman",
    "Ubuntu",
    "Verdana",
]

WEBKIT_VERSION = "605.1.15"


def _gpu(vendor: str, renderer: str, unmasked_vendor: str, unmasked_renderer: str) -> WebGLInfo:
    return WebGLInfo(
        vendor=vendor,
        renderer=renderer,
        unmasked_vendor=unmasked_vendor,
        unmasked_renderer=unmasked_renderer,
    )


def _passthrough_gpu(
    vendor: str, renderer: str, unmasked_renderer: str | None = None
) -> WebGLInfo:
    """GPU entry for browsers that report the driver strings unmasked."""
    return _gpu(vendor, renderer, vendor, unmasked_renderer or renderer)


def _screens(*sizes: tuple[int, int, float]) -> list[ScreenInfo]:
    return [ScreenInfo(width=w, height=h, color_depth=24, pixel_ratio=r) for w, h, r in sizes]


def _hardware(*specs: tuple[int, int, int]) -> list[HardwareInfo]:
    return [
        HardwareInfo(cpu_cores=cores, device_memory=memory, max_touch_points=touch)
        for cores, memory, touch in specs
    ]


def _chromium_versions(*pairs: tuple[int, int]) -> list[tuple[str, int, int]]:
    return [(f"{major}.0.0.0", major, weight) for major, weight in pairs]


def _gecko_versions(*pairs: tuple[int, int]) -> list[tuple[str, int, int]]:
    return [(f"{major}.0", major, weight) for major, weight in pairs]


@dataclass(frozen=True)
class SeedTable:
    """Static description of one OS/browser bucket."""

    os: str
    browser: str
    id_prefix: str
    user_agent: str
    platform: str
    vendor: str
    os_version: str
    versions: list[tuple[str, int, int]]
    gpus: list[WebGLInfo]
    screens: list[ScreenInfo]
    hardware: list[HardwareInfo]
    fonts: list[str] = field(default_factory=list)

    def build(self) -> list[Template]:
        """Expand the table into its ordered template list."""
        templates: list[Template] = []
        for version, major, weight in self.versions:
            for gpu in self.gpus:
                index = len(templates)
                template_id = f"{self.id_prefix}-{index + 1:03d}"
                templates.append(
                    Template(
                        id=template_id,
                        os=self.os,
                        browser=self.browser,
                        user_agent=self.user_agent.format(
                            version=version, major=major, webkit=WEBKIT_VERSION
                        ),
                        platform=self.platform,
                        vendor=self.vendor,
                        browser_version=version,
                        major_version=major,
                        weight=weight or 1,
                        os_version=self.os_version,
                        webgl=gpu,
                        screen=self.screens[index % len(self.screens)],
                        hardware=self.hardware[index % len(self.hardware)],
                        fonts=list(self.fonts),
                    )
                )
        return templates


_WINDOWS_ANGLE_GPUS = [
    _gpu(
        "Google Inc. (Intel)",
        "ANGLE (Intel, Intel(R) UHD Graphics 630 Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "Intel Inc.",
        "Intel(R) UHD Graphics 630",
    ),
    _gpu(
        "Google Inc. (Intel)",
        "ANGLE (Intel, Intel(R) UHD Graphics 620 Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "Intel Inc.",
        "Intel(R) UHD Graphics 620",
    ),
    _gpu(
        "Google Inc. (Intel)",
        "ANGLE (Intel, Intel(R) Iris Xe Graphics Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "Intel Inc.",
        "Intel(R) Iris Xe Graphics",
    ),
    _gpu(
        "Google Inc. (NVIDIA)",
        "ANGLE (NVIDIA, NVIDIA GeForce GTX 1660 SUPER Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "NVIDIA Corporation",
        "NVIDIA GeForce GTX 1660 SUPER",
    ),
    _gpu(
        "Google Inc. (NVIDIA)",
        "ANGLE (NVIDIA, NVIDIA GeForce RTX 3060 Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "NVIDIA Corporation",
        "NVIDIA GeForce RTX 3060",
    ),
    _gpu(
        "Google Inc. (NVIDIA)",
        "ANGLE (NVIDIA, NVIDIA GeForce GTX 1080 Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "NVIDIA Corporation",
        "NVIDIA GeForce GTX 1080",
    ),
    _gpu(
        "Google Inc. (NVIDIA)",
        "ANGLE (NVIDIA, NVIDIA GeForce RTX 2070 Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "NVIDIA Corporation",
        "NVIDIA GeForce RTX 2070",
    ),
    _gpu(
        "Google Inc. (AMD)",
        "ANGLE (AMD, AMD Radeon RX 580 Series Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "AMD",
        "AMD Radeon RX 580 Series",
    ),
    _gpu(
        "Google Inc. (AMD)",
        "ANGLE (AMD, AMD Radeon RX 5700 XT Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "AMD",
        "AMD Radeon RX 5700 XT",
    ),
    _gpu(
        "Google Inc. (AMD)",
        "ANGLE (AMD, AMD Radeon RX 6800 XT Direct3D11 vs_5_0 ps_5_0, D3D11)",
        "AMD",
        "AMD Radeon RX 6800 XT",
    ),
]

_MACOS_APPLE_GPUS = [
    _passthrough_gpu("Apple Inc.", "Apple M1"),
    _passthrough_gpu("Apple Inc.", "Apple M2"),
    _passthrough_gpu("Apple Inc.", "Apple M1 Pro"),
    _passthrough_gpu("Intel Inc.", "Intel(R) Iris Plus Graphics 640"),
]

_MACOS_SCREENS = _screens(
    (1440, 900, 2),
    (1680, 1050, 2),
    (1920, 1080, 2),
    (2560, 1600, 2),
    (2880, 1800, 2),
)

_LINUX_RX580 = "AMD Radeon RX 580 Series (polaris10, LLVM 15.0.7, DRM 3.49, 6.1.0-13-amd64)"

SEED_TABLES: list[SeedTable] = [
    SeedTable(
        os="windows",
        browser="chrome",
        id_prefix="win-chrome",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/{version} Safari/537.36"
        ),
        platform="Win32",
        vendor="Google Inc.",
        os_version="10.0",
        versions=_chromium_versions(
            (114, 5), (115, 6), (116, 7), (117, 8), (118, 10), (119, 15),
            (120, 20), (121, 25), (122, 30), (123, 35), (124, 40),
        ),
        gpus=_WINDOWS_ANGLE_GPUS,
        screens=_screens(
            (1920, 1080, 1),
            (2560, 1440, 1),
            (1366, 768, 1),
            (1536, 864, 1.25),
            (3840, 2160, 1.5),
            (1680, 1050, 1),
            (1440, 900, 1),
        ),
        hardware=_hardware(
            (4, 4, 0), (6, 8, 0), (8, 8, 0), (8, 16, 0), (12, 16, 0), (16, 32, 0), (4, 8, 10)
        ),
        fonts=WINDOWS_FONTS,
    ),
    SeedTable(
        os="windows",
        browser="firefox",
        id_prefix="win-firefox",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:{major}.0) "
            "Gecko/20100101 Firefox/{version}"
        ),
        platform="Win32",
        vendor="",
        os_version="10.0",
        versions=_gecko_versions(
            (114, 8), (115, 9), (116, 10), (117, 10), (118, 15), (119, 20),
            (120, 25), (121, 30), (122, 35), (123, 38), (124, 40),
        ),
        gpus=[
            _passthrough_gpu("Intel Inc.", "Intel(R) UHD Graphics 630"),
            _passthrough_gpu("Intel Inc.", "Intel(R) UHD Graphics 620"),
            _passthrough_gpu("NVIDIA Corporation", "GeForce GTX 1660 SUPER/PCIe/SSE2"),
            _passthrough_gpu("NVIDIA Corporation", "GeForce RTX 3060/PCIe/SSE2"),
            _passthrough_gpu("ATI Technologies Inc.", "AMD Radeon RX 580 Series"),
        ],
        screens=_screens((1920, 1080, 1), (2560, 1440, 1), (1366, 768, 1)),
        hardware=_hardware((4, 8, 0), (8, 8, 0), (8, 16, 0)),
        fonts=WINDOWS_FONTS,
    ),
    SeedTable(
        os="windows",
        browser="edge",
        id_prefix="win-edge",
        user_agent=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/{version} Safari/537.36 Edg/{version}"
        ),
        platform="Win32",
        vendor="Google Inc.",
        os_version="10.0",
        versions=_chromium_versions(
            (118, 20), (119, 25), (120, 35), (121, 40), (122, 45), (123, 48), (124, 50)
        ),
        gpus=[_WINDOWS_ANGLE_GPUS[0], _WINDOWS_ANGLE_GPUS[3], _WINDOWS_ANGLE_GPUS[7]],
        screens=_screens((1920, 1080, 1), (2560, 1440, 1)),
        hardware=_hardware((8, 8, 0), (8, 16, 0)),
        fonts=WINDOWS_FONTS,
    ),
    SeedTable(
        os="macos",
        browser="chrome",
        id_prefix="mac-chrome",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/{version} Safari/537.36"
        ),
        platform="MacIntel",
        vendor="Google Inc.",
        os_version="10.15.7",
        versions=_chromium_versions(
            (110, 2), (111, 3), (112, 4), (113, 5), (114, 5), (115, 7), (116, 9), (117, 10),
            (118, 12), (119, 15), (120, 20), (121, 25), (122, 30), (123, 35), (124, 40),
        ),
        gpus=[
            _gpu(
                "Google Inc. (Apple)",
                "ANGLE (Apple, Apple M1, OpenGL 4.1)",
                "Apple Inc.",
                "Apple M1",
            ),
            _gpu(
                "Google Inc. (Apple)",
                "ANGLE (Apple, Apple M2, OpenGL 4.1)",
                "Apple Inc.",
                "Apple M2",
            ),
            _gpu(
                "Google Inc. (Apple)",
                "ANGLE (Apple, Apple M1 Pro, OpenGL 4.1)",
                "Apple Inc.",
                "Apple M1 Pro",
            ),
            _gpu(
                "Google Inc. (Intel)",
                "ANGLE (Intel Inc., Intel(R) Iris Plus Graphics 640, OpenGL 4.1)",
                "Intel Inc.",
                "Intel(R) Iris Plus Graphics 640",
            ),
            _gpu(
                "Google Inc. (AMD)",
                "ANGLE (AMD, AMD Radeon Pro 5500M, OpenGL 4.1)",
                "AMD",
                "AMD Radeon Pro 5500M",
            ),
        ],
        screens=_MACOS_SCREENS,
        hardware=_hardware((8, 8, 0), (8, 16, 0), (10, 16, 0), (10, 32, 0)),
        fonts=MACOS_SYSTEM_FONTS,
    ),
    SeedTable(
        os="macos",
        browser="firefox",
        id_prefix="mac-firefox",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:{major}.0) "
            "Gecko/20100101 Firefox/{version}"
        ),
        platform="MacIntel",
        vendor="",
        os_version="10.15",
        versions=_gecko_versions(
            (110, 8), (111, 10), (112, 12), (113, 15), (119, 20), (120, 30), (121, 35)
        ),
        gpus=[_MACOS_APPLE_GPUS[0], _MACOS_APPLE_GPUS[1], _MACOS_APPLE_GPUS[3]],
        screens=_MACOS_SCREENS[:2],
        hardware=_hardware((8, 8, 0), (8, 16, 0)),
        fonts=MACOS_FONTS,
    ),
    SeedTable(
        os="macos",
        browser="safari",
        id_prefix="mac-safari",
        user_agent=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/{webkit} "
            "(KHTML, like Gecko) Version/{version} Safari/{webkit}"
        ),
        platform="MacIntel",
        vendor="Apple Inc.",
        os_version="10.15.7",
        versions=[
            ("16.5", 16, 22),
            ("16.6", 16, 25),
            ("17.0", 17, 32),
            ("17.1", 17, 35),
            ("17.2", 17, 40),
            ("17.3", 17, 42),
            ("17.4", 17, 45),
        ],
        gpus=_MACOS_APPLE_GPUS,
        screens=[_MACOS_SCREENS[0], _MACOS_SCREENS[1], _MACOS_SCREENS[3]],
        hardware=_hardware((8, 8, 0), (8, 16, 0), (10, 16, 0)),
        fonts=MACOS_SYSTEM_FONTS,
    ),
    SeedTable(
        os="linux",
        browser="chrome",
        id_prefix="linux-chrome",
        user_agent=(
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/{version} Safari/537.36"
        ),
        platform="Linux x86_64",
        vendor="Google Inc.",
        os_version="6.1.0",
        versions=_chromium_versions(
            (110, 8), (111, 9), (112, 10), (113, 11), (114, 12), (115, 14), (116, 16),
            (117, 17), (118, 18), (119, 20), (120, 30), (121, 35), (122, 36), (123, 38),
        ),
        gpus=[
            _gpu(
                "Google Inc. (Intel)",
                "ANGLE (Intel, Mesa Intel(R) UHD Graphics 630 (CFL GT2), OpenGL 4.6)",
                "Intel",
                "Mesa Intel(R) UHD Graphics 630 (CFL GT2)",
            ),
            _gpu(
                "Google Inc. (NVIDIA)",
                "ANGLE (NVIDIA, NVIDIA GeForce GTX 1660 SUPER/PCIe/SSE2, OpenGL 4.6)",
                "NVIDIA Corporation",
                "NVIDIA GeForce GTX 1660 SUPER/PCIe/SSE2",
            ),
            _gpu(
                "Google Inc. (AMD)",
                f"ANGLE (AMD, {_LINUX_RX580}, OpenGL 4.6)",
                "AMD",
                "AMD Radeon RX 580 Series",
            ),
        ],
        screens=_screens((1920, 1080, 1), (2560, 1440, 1), (1366, 768, 1)),
        hardware=_hardware((4, 8, 0), (8, 16, 0), (12, 32, 0)),
        fonts=LINUX_FONTS,
    ),
    SeedTable(
        os="linux",
        browser="firefox",
        id_prefix="linux-firefox",
        user_agent=(
            "Mozilla/5.0 (X11; Linux x86_64; rv:{major}.0) Gecko/20100101 Firefox/{version}"
        ),
        platform="Linux x86_64",
        vendor="",
        os_version="6.1.0",
        versions=_gecko_versions(
            (110, 8), (111, 9), (112, 10), (113, 11), (114, 12), (115, 15), (116, 17),
            (117, 18), (119, 20), (120, 30), (121, 35), (122, 36), (123, 38),
        ),
        gpus=[
            _passthrough_gpu("Intel", "Mesa Intel(R) UHD Graphics 630 (CFL GT2)"),
            _passthrough_gpu("NVIDIA Corporation", "GeForce GTX 1660 SUPER/PCIe/SSE2"),
            _passthrough_gpu("AMD", _LINUX_RX580, "AMD Radeon RX 580 Series"),
        ],
        screens=_screens((1920, 1080, 1), (2560, 1440, 1)),
        hardware=_hardware((4, 8, 0), (8, 16, 0)),
        fonts=LINUX_FONTS,
    ),
]


def build_builtin_catalog() -> dict[str, dict[str, list[Template]]]:
    """Build a fresh copy of the built-in catalog.

    Returns:
        A mapping of OS key to browser key to the ordered template list.
    """
    catalog: dict[str, dict[str, list[Template]]] = {}
    for table in SEED_TABLES:
        catalog.setdefault(table.os, {})[table.browser] = table.build()
    return catalog
