"""
API request models using Pydantic.
"""
from typing import List
from pydantic import BaseModel, Field

from app.domain.models import ImportCandidate


class ImportRequest(BaseModel):
    """Batch of tabular records to import into a project."""
    records: List[ImportCandidate] = Field(
        description="Records with project_code, location_name, x, y and remarks"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "records": [
                    {"project_code": "P-001", "location_name": "BH-01",
                     "x": 500000.0, "y": 2000000.0, "remarks": None},
                    {"project_code": "P-001", "location_name": "BH-02",
                     "x": 500105.2, "y": 2000098.7, "remarks": "offset"},
                ]
            }
        }
