from enum import Enum

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from chiprace.db.models.base import Base, JSONType, TimestampMixin


class CriterionType(str, Enum):
    PARTICIPANTS = "participants"
    BUYIN = "buyin"
    ITM = "itm"
    WINNINGS = "winnings"
    SPENT = "spent"
    RAKE = "rake"
    PROFIT_LOSS = "profit_loss"
    IS_FT = "isFt"
    IS_VIP = "isVip"


class CriterionDataType(str, Enum):
    INTEGER = "integer"
    BOOLEAN = "boolean"


class CriterionOperation(str, Enum):
    MULTIPLY = "multiply"
    DIVIDE = "divide"
    SUM = "sum"


class RankingFormula(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    SPECIAL = "special"
    CASH_ONLINE = "cash_online"
    MTT_ONLINE = "mtt_online"
    SIT_N_GO = "sit_n_go"
    SATELLITE = "satellite"
    LEGACY_WEEKLY = "legacy_weekly"
    LEGACY_MONTHLY = "legacy_monthly"
    LEGACY_SPECIAL = "legacy_special"


class ScoringSchema(Base, TimestampMixin):
    __tablename__ = "scoring_schemas"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    criteria: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # JSON object keys are strings; pydantic coerces them back to int positions
    position_points: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<ScoringSchema {self.id} name={self.name!r}>"
