# motion_backend/schemas.py
import math
from pydantic import BaseModel, ValidationError, field_validator
from typing import Any, Callable, Dict, Optional

from services.errors import InvalidMotionData, InvalidToken, MotionBridgeError


def _to_dict(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump()


class MotionUpdateIn(BaseModel):
    token: str
    x: float
    y: float

    @field_validator("x", "y", mode="before")
    @classmethod
    def _not_bool(cls, v: Any) -> Any:
        # JSON true/false would otherwise coerce to 1.0/0.0
        if isinstance(v, bool):
            raise ValueError("must be a number, not a boolean")
        return v

    @field_validator("x", "y")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("must be a finite number")
        return v

    @staticmethod
    def parse(payload: Optional[Dict[str, Any]],
              known: Optional[Callable[[str], bool]] = None) -> "MotionUpdateIn":
        """
        Validate an /update body; raises InvalidToken or InvalidMotionData.
        When `known` is given the token is checked against it before x/y.
        """
        payload = dict(payload or {})
        token = payload.get("token")
        if not isinstance(token, str) or not token:
            raise InvalidToken()
        if known is not None and not known(token):
            raise InvalidToken()
        try:
            return MotionUpdateIn(token=token, x=payload.get("x"), y=payload.get("y"))
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise InvalidMotionData(f"Invalid motion data: {', '.join(fields) or 'x, y'}") from e


class StartOut(BaseModel):
    token: str
    success: bool = True

    @staticmethod
    def of(token: str):
        return _to_dict(StartOut(token=token))


class UpdateOut(BaseModel):
    ok: bool = True
    throttled: bool = False

    @staticmethod
    def of(throttled: bool):
        return _to_dict(UpdateOut(throttled=throttled))


class LatestOut(BaseModel):
    x: float
    y: float
    raw_x: float
    raw_y: float
    age_s: float
    update_count: int


class ErrorOut(BaseModel):
    success: bool = False
    error: str
    code: str

    @staticmethod
    def of(err: MotionBridgeError):
        return _to_dict(ErrorOut(error=err.message, code=err.code))
