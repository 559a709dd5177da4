"""
GET /data-sources, GET /data-sources/{key} -- catalog metadata endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from src.api.deps import get_catalog
from src.catalog.loader import Catalog
from src.reports.definition import ReportField

router = APIRouter()


class DataSourceItem(BaseModel):
    key: str
    name: str
    description: str
    field_count: int


class DataSourceDetail(BaseModel):
    key: str
    name: str
    description: str
    fields: list[ReportField]


@router.get("/data-sources", response_model=list[DataSourceItem])
def list_data_sources(catalog: Catalog = Depends(get_catalog)) -> list[DataSourceItem]:
    """Return every data source a report can target."""
    return [
        DataSourceItem(key=s.key, name=s.name, description=s.description, field_count=len(s.fields))
        for s in catalog.sources.values()
    ]


@router.get("/data-sources/{key}", response_model=DataSourceDetail)
def get_data_source(key: str, catalog: Catalog = Depends(get_catalog)) -> DataSourceDetail:
    """Return one data source with its typed fields."""
    source = catalog.data_source(key)
    if source is None:
        raise HTTPException(status_code=404, detail=f"Unknown data source '{key}'")
    return DataSourceDetail(key=source.key, name=source.name, description=source.description, fields=list(source.fields))
