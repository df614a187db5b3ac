"""Typed inbound Socket.IO messages.

Every client event that carries a payload is parsed into one of the models
below before it reaches the match service. Fields are normalized instead of
rejected: out-of-range numbers are clamped, unknown dive directions become
``center`` and anything that is not the expected type falls back to the
field default. Parsing a payload therefore never raises.
"""
import math
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .models import DIRECTIONS

ANGLE_LIMIT_DEG = 60.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _as_number(value: Any) -> float:
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return 0.0
    try:
        value = float(value)
    except (ValueError, OverflowError):
        return 0.0
    if math.isnan(value):
        return 0.0
    return value


def _as_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore', frozen=True)


class HelloMessage(InboundMessage):
    uid: Optional[str] = None
    nick: Optional[str] = None

    @field_validator('uid', 'nick', mode='before')
    @classmethod
    def _text_or_none(cls, v):
        return _as_text(v)


class JoinByCodeMessage(InboundMessage):
    code: str = ''

    @field_validator('code', mode='before')
    @classmethod
    def _code_text(cls, v):
        return v if isinstance(v, str) else ''


class SpectateJoinMessage(InboundMessage):
    match_id: str = Field('', alias='matchId')

    @field_validator('match_id', mode='before')
    @classmethod
    def _match_id_text(cls, v):
        return v if isinstance(v, str) else ''


class KickMessage(InboundMessage):
    angle_deg: float = Field(0.0, alias='angleDeg')
    power: float = Field(0.0, alias='power01')

    @field_validator('angle_deg', mode='before')
    @classmethod
    def _clamp_angle(cls, v):
        return clamp(_as_number(v), -ANGLE_LIMIT_DEG, ANGLE_LIMIT_DEG)

    @field_validator('power', mode='before')
    @classmethod
    def _clamp_power(cls, v):
        return clamp(_as_number(v), 0.0, 1.0)


class DiveMessage(InboundMessage):
    direction: str = Field('center', alias='dir')

    @field_validator('direction', mode='before')
    @classmethod
    def _normalize_direction(cls, v):
        return v if v in DIRECTIONS else 'center'


MESSAGE_TYPES: Dict[str, Type[InboundMessage]] = {
    'hello': HelloMessage,
    'join_by_code': JoinByCodeMessage,
    'spectate_join': SpectateJoinMessage,
    'kick': KickMessage,
    'dive': DiveMessage,
}


def parse_message(event: str, payload: Any) -> InboundMessage:
    """Build the typed message for ``event`` from a raw Socket.IO payload."""
    model = MESSAGE_TYPES[event]
    data = dict(payload) if isinstance(payload, dict) else {}
    try:
        return model.model_validate(data)
    except ValidationError:
        return model()
