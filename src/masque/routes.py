"""HTTP routers for the catalog, identity and noise operations.

Each factory closes over the objects it serves, so one application can hold
any number of isolated catalogs.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from masque.catalog.store import TemplateStore
from masque.config import NoiseConfig
from masque.identity.composer import SyntheticIdentityComposer
from masque.models import NoiseDistribution, NoiseLevel, Template
from masque.noise import NoiseEngine

MAX_NOISE_VALUES = 10_000


class IdentityRequest(BaseModel):
    """Body of ``POST /identities``."""

    os: str | None = None
    browser: str | None = None
    seed: int | None = None


class NoiseRequest(BaseModel):
    """Body of ``POST /noise``."""

    seed: int | None = Field(default=None, ge=0, le=0xFFFFFFFF)
    level: NoiseLevel | None = None
    distribution: NoiseDistribution | None = None
    count: int = Field(default=1, ge=1, le=MAX_NOISE_VALUES)


class AudioNoiseRequest(BaseModel):
    """Body of ``POST /noise/audio``."""

    seed: int | None = Field(default=None, ge=0, le=0xFFFFFFFF)
    level: NoiseLevel | None = None
    distribution: NoiseDistribution | None = None
    samples: list[float] = Field(default_factory=list, max_length=MAX_NOISE_VALUES)


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _dump_all(templates: list[Template]) -> list[dict[str, Any]]:
    return [_dump(t) for t in templates]


def create_catalog_router(store: TemplateStore) -> APIRouter:
    """Create a router exposing template lookup, search and catalog transfer.

    Args:
        store: The catalog to serve.

    Returns:
        A configured FastAPI APIRouter.
    """
    router = APIRouter(tags=["catalog"])

    @router.get("/templates")
    async def list_templates(
        os: str | None = Query(default=None),
        browser: str | None = Query(default=None),
    ) -> JSONResponse:
        """List templates, optionally restricted to an OS and/or browser."""
        templates = store.search(os=os, browser=browser)
        return JSONResponse({"count": len(templates), "templates": _dump_all(templates)})

    @router.get("/templates/random")
    async def random_template(
        os: str | None = Query(default=None),
        browser: str | None = Query(default=None),
        seed: int | None = Query(default=None),
    ) -> JSONResponse:
        """Draw one template by weight."""
        template = store.get_random_template(os=os, browser=browser, seed=seed)
        if template is None:
            return JSONResponse(
                {"error": "not_found", "message": "No templates match the filter"},
                status_code=404,
            )
        return JSONResponse(_dump(template))

    @router.get("/templates/search")
    async def search_templates(
        os: str | None = Query(default=None),
        browser: str | None = Query(default=None),
        min_major: int | None = Query(default=None),
        max_major: int | None = Query(default=None),
        gpu_vendor: str | None = Query(default=None),
    ) -> JSONResponse:
        """Filter templates by major version bounds and GPU vendor."""
        templates = store.search(
            os=os,
            browser=browser,
            min_major_version=min_major,
            max_major_version=max_major,
            gpu_vendor=gpu_vendor,
        )
        return JSONResponse({"count": len(templates), "templates": _dump_all(templates)})

    @router.get("/catalog/statistics")
    async def statistics() -> JSONResponse:
        return JSONResponse(_dump(store.get_statistics()))

    @router.get("/catalog/export")
    async def export_catalog() -> JSONResponse:
        return JSONResponse(_dump(store.export_data()))

    @router.post("/catalog/import")
    async def import_catalog(document: dict[str, Any] = Body(...)) -> JSONResponse:
        """Merge templates from an exported document into the catalog."""
        added = store.import_data(document)
        return JSONResponse({"imported": added, "total": store.get_template_count()})

    return router


def create_identity_router(composer: SyntheticIdentityComposer) -> APIRouter:
    """Create a router for synthetic identity generation.

    Args:
        composer: The composer whose used-combination set the routes share.

    Returns:
        A configured FastAPI APIRouter.
    """
    router = APIRouter(tags=["identities"])

    @router.post("/identities")
    async def create_identity(request: IdentityRequest) -> JSONResponse:
        identity = composer.generate(os=request.os, browser=request.browser, seed=request.seed)
        return JSONResponse(_dump(identity), status_code=201)

    @router.delete("/identities/combinations")
    async def clear_combinations() -> JSONResponse:
        cleared = composer.used_combination_count
        composer.clear_used_combinations()
        return JSONResponse({"cleared": cleared})

    return router


def create_noise_router(defaults: NoiseConfig) -> APIRouter:
    """Create a router returning deterministic noise.

    Requests without a seed get a freshly generated secure seed, which is
    echoed back so the caller can replay the sequence.

    Args:
        defaults: Level and distribution used when a request omits them.

    Returns:
        A configured FastAPI APIRouter.
    """
    router = APIRouter(tags=["noise"])

    def _engine(
        seed: int | None,
        level: NoiseLevel | None,
        distribution: NoiseDistribution | None,
    ) -> NoiseEngine:
        return NoiseEngine(
            seed,
            level=level or defaults.level,
            distribution=distribution or defaults.distribution,
        )

    @router.post("/noise")
    async def noise_values(request: NoiseRequest) -> JSONResponse:
        engine = _engine(request.seed, request.level, request.distribution)
        values = [engine.get_noise(i) for i in range(request.count)]
        body = engine.to_settings().model_dump(mode="json")
        body["values"] = values
        return JSONResponse(body)

    @router.post("/noise/audio")
    async def noise_audio(request: AudioNoiseRequest) -> JSONResponse:
        engine = _engine(request.seed, request.level, request.distribution)
        samples = engine.apply_to_audio_data(list(request.samples))
        body = engine.to_settings().model_dump(mode="json")
        body["samples"] = samples
        return JSONResponse(body)

    return router
