"""API routes for SheetSync."""

from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ..entities import ENTITY_TYPES
from ..mapping import (
    FieldMapping,
    MappingInitializationError,
    MappingNotFoundError,
    StoreIOError,
)
from ..source.base import extract_records

router = APIRouter()


def get_service():
    """Get the global sync service instance."""
    from .app import get_service as _get_service

    return _get_service()


class HeaderUpdateRequest(BaseModel):
    """Request to rename a column."""

    header: str


class MappingView(BaseModel):
    """One field mapping as shown to users."""

    api_field_path: str
    auto_transformed_header: str
    user_defined_header: str
    effective_header: str
    has_override: bool

    @classmethod
    def from_mapping(cls, mapping: FieldMapping) -> "MappingView":
        return cls(
            api_field_path=mapping.api_field_path,
            auto_transformed_header=mapping.auto_transformed_header,
            user_defined_header=mapping.user_defined_header,
            effective_header=mapping.effective_header,
            has_override=mapping.has_override,
        )


def _resource_or_404(resource_id: str) -> str:
    rid = resource_id.upper()
    if rid not in ENTITY_TYPES:
        raise HTTPException(status_code=404, detail=f"Unknown resource: {resource_id}")
    return rid


async def _reload_headers(rid: str):
    """Re-adopt stored mappings so the sheet's header row shows the change."""
    service = get_service()
    try:
        await service.repository(rid).coordinator.initialize_from_store()
    except RuntimeError as e:
        raise HTTPException(status_code=502, detail=f"Header saved but sheet not updated: {e}")


@router.get("/health")
async def health_check():
    """Health check endpoint with non-secret diagnostics."""
    from ..config import settings

    return {
        "status": "ok",
        "service": "sheetsync",
        "config": {
            "mapping_backend": settings.mapping_backend,
            "spreadsheet_configured": bool(settings.spreadsheet_id),
            "api_key_present": bool(settings.api_key),
            "google_credentials_configured": settings.google_credentials_path.exists(),
        },
    }


@router.get("/resources")
async def list_resources():
    """List known resources and how many fields each has mapped."""
    service = get_service()
    await service.initialize()

    stored = await service.store.list_resources()
    resources = []
    for rid in list(ENTITY_TYPES) + [r for r in stored if r not in ENTITY_TYPES]:
        entity = ENTITY_TYPES.get(rid)
        resources.append(
            {
                "resource_id": rid,
                "sheet_name": entity.sheet_name if entity else None,
                "mapped_fields": len(await service.store.get_all(rid)),
            }
        )
    return {"resources": resources}


@router.get("/resources/{resource_id}/mappings")
async def get_mappings(resource_id: str):
    """Field mappings of a resource in column order."""
    rid = _resource_or_404(resource_id)
    service = get_service()
    await service.initialize()

    mappings = await service.store.get_all(rid)
    return {
        "resource_id": rid,
        "mappings": [MappingView.from_mapping(m) for m in mappings],
    }


@router.put("/resources/{resource_id}/mappings/{path}")
async def set_header(resource_id: str, path: str, request: HeaderUpdateRequest):
    """Rename the column of one field. A blank header clears the override."""
    rid = _resource_or_404(resource_id)
    service = get_service()
    await service.initialize()

    try:
        mapping = await service.store.set_user_header(rid, path, request.header)
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreIOError as e:
        raise HTTPException(status_code=503, detail=str(e))

    await _reload_headers(rid)
    return {"success": True, "mapping": MappingView.from_mapping(mapping)}


@router.delete("/resources/{resource_id}/mappings/{path}/override")
async def reset_header(resource_id: str, path: str):
    """Drop a user-defined header so the generated one applies again."""
    rid = _resource_or_404(resource_id)
    service = get_service()
    await service.initialize()

    try:
        mapping = await service.store.reset_user_header(rid, path)
    except MappingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreIOError as e:
        raise HTTPException(status_code=503, detail=str(e))

    await _reload_headers(rid)
    return {"success": True, "mapping": MappingView.from_mapping(mapping)}


@router.post("/resources/{resource_id}/refresh")
async def refresh_schema(resource_id: str):
    """
    Fetch a live sample and merge its fields into the resource's mappings.

    Returns the added and removed paths plus the updated mappings. Removed
    paths are reported only; their mappings are kept.
    """
    rid = _resource_or_404(resource_id)
    service = get_service()
    await service.initialize()

    repository = service.repository(rid)
    records, _ = repository.reshape(extract_records(await service.data_source.fetch(rid)))
    try:
        changes = await repository.coordinator.refresh(records)
    except MappingInitializationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "resource_id": rid,
        "sampled_records": len(records),
        "changes": {"added": changes.added, "removed": changes.removed},
        "mappings": [MappingView.from_mapping(m) for m in repository.coordinator.header_set],
    }
