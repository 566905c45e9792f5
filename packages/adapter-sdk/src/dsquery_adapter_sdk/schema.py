from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TableRef(BaseModel):
    schema_name: str
    table_name: str

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def full_name(self) -> str:
        return f"{self.schema_name}.{self.table_name}"


class ColumnContract(BaseModel):
    name: str
    data_type: str
    is_nullable: bool = True

    model_config = ConfigDict(extra="ignore", frozen=True)


class TableContract(BaseModel):
    table: TableRef
    columns: Dict[str, ColumnContract] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def full_name(self) -> str:
        return self.table.full_name


class ColumnMetadata(BaseModel):
    description: Optional[str] = None
    is_time_index: bool = False


class TableMetadata(BaseModel):
    table: TableRef
    columns: Dict[str, ColumnMetadata] = Field(default_factory=dict)
    description: Optional[str] = None

    @property
    def full_name(self) -> str:
        return self.table.full_name


class SchemaContract(BaseModel):
    datasource_id: str
    engine_type: str
    tables: Dict[str, TableContract] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", frozen=True)


class SchemaMetadata(BaseModel):
    datasource_id: str
    engine_type: str
    description: Optional[str] = None
    tables: Dict[str, TableMetadata] = Field(default_factory=dict)


class SchemaSnapshot(BaseModel):
    contract: SchemaContract
    metadata: SchemaMetadata
