from __future__ import annotations

from typing import List, Union

from pydantic import BaseModel, Field


class RowPermissionsQuery(BaseModel):
    row_ids: List[Union[int, str]] = Field(
        default_factory=list,
        alias="rowIds",
        description="Row or cell identities; storage ids are positive integers, anything else is unsaved",
    )

    class Config:
        populate_by_name = True
