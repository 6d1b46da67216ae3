"""Per-run reporting models."""

from __future__ import annotations

from pydantic import BaseModel, Field

STATUS_OK = "OK"
STATUS_UP_TO_DATE = "UP_TO_DATE"
STATUS_FAILED = "FAILED"


class FileError(BaseModel):
    """A source file that was skipped because it could not be read."""
    filename: str
    message: str


class EntityRunResult(BaseModel):
    """Outcome of aggregating one entity."""
    entity: str
    name: str = ""
    status: str = STATUS_OK
    files_processed: int = Field(default=0, alias="filesProcessed")
    files_skipped: int = Field(default=0, alias="filesSkipped")
    records: int = 0
    dropped_rows: int = Field(default=0, alias="droppedRows")
    periods: list[str] = Field(default_factory=list)
    errors: list[FileError] = Field(default_factory=list)
    error: str | None = None

    model_config = {"populate_by_name": True}

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    def summary(self) -> dict[str, object]:
        """Flat dict for table/CSV output."""
        return {
            "entity": self.entity,
            "name": self.name,
            "status": self.status,
            "filesProcessed": self.files_processed,
            "filesSkipped": self.files_skipped,
            "records": self.records,
            "droppedRows": self.dropped_rows,
            "periods": ", ".join(self.periods),
            "error": self.error or "",
        }
