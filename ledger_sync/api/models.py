"""Request and Response models (wire format of the ledger's RPC actions)"""

from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticUndefined

from ledger_sync.core.exceptions import InvalidRequestError, InvalidSubmissionError
from ledger_sync.core.models import GameRecord, PlayerStats, ServerParams


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- REQUEST MODELS ---
class LoginRequest(WireModel):
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not value or "@" not in value:
            raise InvalidRequestError(f"Not a valid email address: {value!r}.")
        return value


class SubmitRequest(WireModel):
    landlord: str
    farmer1: str
    farmer2: str
    landlord_score: Optional[int]
    client_timestamp: str

    @field_validator("landlord", "farmer1", "farmer2")
    @classmethod
    def validate_player(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise InvalidSubmissionError("All three players must be selected.")
        return value

    @field_validator("landlord_score")
    @classmethod
    def validate_score(cls, value: Optional[int]) -> int:
        if value is None:
            raise InvalidSubmissionError("A score must be selected.")
        return value

    @model_validator(mode="after")
    def validate_distinct_players(self) -> "SubmitRequest":
        if len({self.landlord, self.farmer1, self.farmer2}) != 3:
            raise InvalidSubmissionError(
                f"Players must be distinct, got {self.landlord!r}, {self.farmer1!r}, {self.farmer2!r}."
            )
        return self


class DeleteLastGameRequest(WireModel):
    timestamp: str
    client_timestamp: str

    @classmethod
    def for_timestamp(cls, timestamp: str) -> "DeleteLastGameRequest":
        """The ledger matches the row on either field, so both carry the server timestamp."""
        return cls(timestamp=timestamp, client_timestamp=timestamp)


# --- RESPONSE MODELS ---
class PayloadModel(WireModel):
    """Response bodies. A `null` field from the ledger is read as the field default."""

    @field_validator("*", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            default = cls.model_fields[info.field_name].get_default(
                call_default_factory=True
            )
            if default is not None and default is not PydanticUndefined:
                return default
        return value


class CheckAccessResponse(PayloadModel):
    has_access: bool = False
    role: Optional[str] = None

    @field_validator("has_access", mode="before")
    @classmethod
    def only_literal_true(cls, value: Any) -> bool:
        return value is True


class ParamsResponse(PayloadModel):
    players: list[str] = []
    score_options: list[int] = []
    version: str = ""

    def to_model(self) -> ServerParams:
        return ServerParams(
            players=list(self.players),
            score_options=list(self.score_options),
            version=self.version,
        )


class GameRecordPayload(PayloadModel):
    timestamp: str
    scores: dict[str, int | float] = {}

    def to_model(self) -> GameRecord:
        return GameRecord(timestamp=self.timestamp, scores=dict(self.scores))


class HistoryResponse(PayloadModel):
    players: list[str] = []
    data: list[GameRecordPayload] = []
    total: int = 0
    has_more: bool = False

    @field_validator("has_more", mode="before")
    @classmethod
    def only_literal_true(cls, value: Any) -> bool:
        return value is True


class StatsRowPayload(PayloadModel):
    name: str
    total_score: float = 0
    avg_score: float = 0
    games_played: int = 0
    win_rate: float = 0

    def to_model(self) -> PlayerStats:
        return PlayerStats(
            name=self.name,
            total_score=self.total_score,
            avg_score=self.avg_score,
            games_played=self.games_played,
            win_rate=self.win_rate,
        )


class StatsResponse(PayloadModel):
    stats: list[StatsRowPayload] = []


class SubmitResponse(PayloadModel):
    timestamp: Optional[str] = None


class VersionResponse(PayloadModel):
    version: str = ""
