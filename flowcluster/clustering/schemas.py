"""Pydantic models for externally supplied cluster hierarchies."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field


class ClusterNodeModel(BaseModel):
    """
    One node listed on a hierarchy level.

    Nodes with children are clusters; childless nodes reference a location
    by id and stand for that location unmerged.
    """

    id: str
    name: Optional[str] = None
    centroid: Optional[Tuple[float, float]] = Field(
        default=None, description="(lng, lat) in degrees; derived from the leaves when omitted"
    )
    children: List[str] = Field(default_factory=list)


class ClusterLevelModel(BaseModel):
    zoom: int = Field(..., ge=0)
    clusters: List[ClusterNodeModel] = Field(
        default_factory=list,
        validation_alias=AliasChoices("clusters", "nodes"),
    )

    model_config = {"populate_by_name": True}


class ClusterHierarchyModel(BaseModel):
    levels: List[ClusterLevelModel]
