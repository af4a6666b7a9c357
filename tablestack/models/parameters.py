"""
Validated parameters for a stacking run.

Example JSON (``--params stack.json``):

    {
      "folder": "data/NEON_count-landbird",
      "table_types_yaml": "reference/table_types.yml",
      "workers": 4,
      "force_parallel": false
    }
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from tablestack.core.stack_utils import (
    DEFAULT_POLARS_THREADS,
    DEFAULT_TABLE_TYPES_YAML,
    DEFAULT_WORKERS,
    PARALLEL_THRESHOLD_BYTES,
    STACKED_DIRNAME,
)


class StackingParameters(BaseModel):
    """Inputs of run_stacking_pipeline."""

    folder: Path = Field(description="Folder of unzipped data files")
    table_types_yaml: Path = Field(
        default=DEFAULT_TABLE_TYPES_YAML,
        description="YAML table-type dictionary (defaults to the one shipped with the package)",
    )
    workers: int = Field(
        default=DEFAULT_WORKERS,
        ge=1,
        description="Requested worker processes",
    )
    force_parallel: bool = Field(
        default=False,
        description="Use the requested workers even below the size threshold",
    )
    parallel_threshold_bytes: int = Field(
        default=PARALLEL_THRESHOLD_BYTES,
        ge=0,
        description="Input volume at which all cores are used automatically",
    )
    polars_threads: int = Field(
        default=DEFAULT_POLARS_THREADS,
        ge=1,
        description="POLARS_MAX_THREADS per worker process",
    )
    join_positions: bool = Field(
        default=False,
        description="Attach sensor placement columns to instrument tables",
    )

    model_config = {"frozen": True}

    @field_validator("folder", "table_types_yaml", mode="before")
    @classmethod
    def expand_path(cls, v):
        return Path(v).expanduser() if v is not None else v

    @property
    def output_dir(self) -> Path:
        return self.folder / STACKED_DIRNAME
