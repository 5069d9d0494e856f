"""
Pydantic models for Azure Table Storage requests and responses.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class TableItem(BaseModel):
    """One table returned by the Query Tables operation."""
    model_config = ConfigDict(extra='ignore')

    TableName: str


class QueryTablesResponse(BaseModel):
    """
    Query Tables response returned with no OData metadata.

    Example body: {"value": [{"TableName": "mytable"}]}
    """
    model_config = ConfigDict(extra='ignore')

    value: List[TableItem] = Field(default_factory=list)

    @property
    def table_names(self) -> List[str]:
        return [item.TableName for item in self.value]


class CreateTableParameters(BaseModel):
    """Body of the Create Table operation."""
    model_config = ConfigDict(extra='forbid')

    TableName: str = Field(..., min_length=1)
