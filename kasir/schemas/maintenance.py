from pydantic import BaseModel


class MaintenanceResult(BaseModel):
    operation: str
    affected: int
    dry_run: bool = False
