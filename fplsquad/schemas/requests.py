"""Pydantic validators for inbound requests.

Everything here runs before any roster, chip or history state is read,
so a malformed request never touches storage.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import BaseModel, Field, field_validator

from fplsquad.config import recommendation_cfg
from fplsquad.errors import ValidationError
from fplsquad.schemas.fpl_rules import CHIP_WINDOWS, TOTAL_GAMEWEEKS, ChipType
from fplsquad.schemas.squad import SnapshotType

_PARTICIPANT_PATTERN = r"^[A-Za-z0-9_\-]{1,64}$"

Gameweek = Annotated[int, Field(ge=1, le=TOTAL_GAMEWEEKS)]
PlayerId = Annotated[int, Field(gt=0, le=100_000)]


class ParticipantRequest(BaseModel):
    participant_id: str = Field(..., pattern=_PARTICIPANT_PATTERN)


class InitializeRequest(ParticipantRequest):
    entry_id: int = Field(..., gt=0, le=100_000_000)
    gameweek: Gameweek


class AdvanceRequest(ParticipantRequest):
    gameweek: Gameweek
    points_scored: int | None = None
    overall_rank: int | None = Field(None, gt=0)


class HistoryRequest(ParticipantRequest):
    gameweek: Gameweek
    snapshot_type: SnapshotType = SnapshotType.REGULAR


class TransferRequest(ParticipantRequest):
    player_out_id: PlayerId
    player_in_id: PlayerId
    gameweek: Gameweek


class TransferHistoryRequest(ParticipantRequest):
    gameweek: int | None = Field(None, ge=1, le=TOTAL_GAMEWEEKS)
    limit: int | None = Field(None, gt=0, le=500)


class ChipListRequest(ParticipantRequest):
    gameweek: Gameweek


class ChipActivationRequest(ParticipantRequest):
    chip: str
    gameweek: Gameweek

    @field_validator("chip")
    @classmethod
    def known_chip(cls, value: str) -> str:
        normalized = value.lower().strip()
        kinds = {c.value for c in ChipType}
        if normalized not in CHIP_WINDOWS and normalized not in kinds:
            allowed = ", ".join(sorted(kinds | set(CHIP_WINDOWS)))
            raise ValueError(f"Invalid chip name '{value}'. Must be one of: {allowed}")
        return normalized


class PurchasePriceRequest(ParticipantRequest):
    player_id: PlayerId
    gameweek: Gameweek
    entry_id: int | None = Field(None, gt=0, le=100_000_000)


class RecommendationRequest(ParticipantRequest):
    gameweeks_ahead: int = Field(1, ge=1, le=recommendation_cfg.max_gameweeks_ahead)


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------

def _extract_errors(exc: Exception) -> list[str]:
    """Extract human-readable error messages from a Pydantic ValidationError."""
    from pydantic import ValidationError as PydanticValidationError

    if isinstance(exc, PydanticValidationError):
        errors = []
        for err in exc.errors():
            msg = err.get("msg", "")
            # Pydantic prefixes with "Value error, "
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            loc = ".".join(str(part) for part in err.get("loc", ()))
            errors.append(f"{loc}: {msg}" if loc else msg)
        return errors
    return [str(exc)]


M = TypeVar("M", bound=BaseModel)


def parse_request(model: type[M], data: dict[str, Any] | None) -> M:
    """Validate *data* into *model* or raise :class:`ValidationError`."""
    from pydantic import ValidationError as PydanticValidationError

    try:
        return model.model_validate(data or {})
    except PydanticValidationError as exc:
        errors = _extract_errors(exc)
        raise ValidationError("; ".join(errors), errors=errors) from exc
