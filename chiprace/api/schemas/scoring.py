from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field

from chiprace.db.models.scoring import CriterionDataType, CriterionOperation, CriterionType


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


class ScoringCriterion(BaseModel):
    id: str = Field(default_factory=lambda: new_id("crit"))
    type: CriterionType
    label: str = ""
    data_type: CriterionDataType = CriterionDataType.INTEGER
    operation: CriterionOperation | None = None
    value: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class ScoringSchemaDetail(BaseModel):
    id: str
    name: str
    criteria: list[ScoringCriterion] = Field(default_factory=list)
    position_points: dict[int, Decimal] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class ScoringSchemaCreate(BaseModel):
    id: str | None = Field(None, min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    criteria: list[ScoringCriterion] = Field(default_factory=list)
    position_points: dict[int, Decimal] = Field(default_factory=dict)


class ScoringSchemaUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    criteria: list[ScoringCriterion] | None = None
    position_points: dict[int, Decimal] | None = None


class PositionPointsUpdate(BaseModel):
    position: int = Field(..., ge=1)
    points: Decimal = Field(..., ge=0)
