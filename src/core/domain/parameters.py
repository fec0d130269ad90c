"""
TreasuryParameters — Модель конфигурации treasury

Immutable Pydantic модели:
- TreasuryParameters: доли (ppm) и длина epoch, с границами на каждом write
- TreasuryConfig: адреса участников + параметры, задаются один раз при init

Изменение параметров никогда не мутирует модель: update_parameters()
валидирует новый экземпляр и возвращает его. Pydantic ValidationError
транслируется в типизированную ParameterOutOfBounds.
"""

from typing import Any, Final

from pydantic import BaseModel, Field, ValidationError, model_validator

from src.core.errors import ParameterOutOfBounds
from src.core.math.fixed_point import PPM_DENOMINATOR


# =============================================================================
# DEFAULTS
# =============================================================================

# Минимальный buffer target: 1% от total supply
DEFAULT_MIN_BUFFER_TARGET_FRACTION: Final[int] = 10_000

# Минимальная доля прибыли на пополнение buffer: 10%
DEFAULT_MIN_BUFFER_RENEWAL_FRACTION: Final[int] = 100_000

DEFAULT_FEE_FRACTION: Final[int] = 50_000
DEFAULT_LEVERAGE_FRACTION: Final[int] = 100_000
DEFAULT_BUFFER_TARGET_FRACTION: Final[int] = 50_000
DEFAULT_BUFFER_RENEWAL_FRACTION: Final[int] = 500_000

# Длина epoch линейного распределения прибыли (блоки, ~1 сутки при 12s)
DEFAULT_EPOCH_LENGTH_BLOCKS: Final[int] = 7_200


# =============================================================================
# PARAMETERS MODEL
# =============================================================================


class TreasuryParameters(BaseModel):
    """
    Параметры treasury (все доли в parts-per-million).

    Границы:
    - fee_fraction, leverage_fraction: [0, PPM_DENOMINATOR]
    - buffer_target_fraction: [min_buffer_target_fraction, PPM_DENOMINATOR]
    - buffer_renewal_fraction: [min_buffer_renewal_fraction, PPM_DENOMINATOR]
    - epoch_length_blocks: >= 1
    """

    fee_fraction: int = Field(
        DEFAULT_FEE_FRACTION, ge=0, le=PPM_DENOMINATOR, description="Fee с прибыли (ppm)"
    )
    leverage_fraction: int = Field(
        DEFAULT_LEVERAGE_FRACTION,
        ge=0,
        le=PPM_DENOMINATOR,
        description="Доля principal holdings vault, доступная custodian (ppm)",
    )
    buffer_target_fraction: int = Field(
        DEFAULT_BUFFER_TARGET_FRACTION,
        ge=0,
        le=PPM_DENOMINATOR,
        description="Целевой размер buffer от total supply (ppm)",
    )
    buffer_renewal_fraction: int = Field(
        DEFAULT_BUFFER_RENEWAL_FRACTION,
        ge=0,
        le=PPM_DENOMINATOR,
        description="Доля net profit на пополнение buffer (ppm)",
    )
    epoch_length_blocks: int = Field(
        DEFAULT_EPOCH_LENGTH_BLOCKS, ge=1, description="Длина epoch распределения (блоки)"
    )

    # Floors ("buffer must be materially sized")
    min_buffer_target_fraction: int = Field(
        DEFAULT_MIN_BUFFER_TARGET_FRACTION, ge=0, le=PPM_DENOMINATOR
    )
    min_buffer_renewal_fraction: int = Field(
        DEFAULT_MIN_BUFFER_RENEWAL_FRACTION, ge=0, le=PPM_DENOMINATOR
    )

    model_config = {"frozen": True, "strict": True}

    @model_validator(mode="after")
    def _check_buffer_floors(self) -> "TreasuryParameters":
        if self.buffer_target_fraction < self.min_buffer_target_fraction:
            raise ValueError(
                f"buffer_target_fraction below floor {self.min_buffer_target_fraction}"
            )
        if self.buffer_renewal_fraction < self.min_buffer_renewal_fraction:
            raise ValueError(
                f"buffer_renewal_fraction below floor {self.min_buffer_renewal_fraction}"
            )
        return self


def update_parameters(
    parameters: TreasuryParameters, name: str, value: Any
) -> TreasuryParameters:
    """
    Валидированное обновление одного параметра.

    Args:
        parameters: Текущие параметры
        name: Имя поля TreasuryParameters
        value: Новое значение

    Returns:
        Новый экземпляр TreasuryParameters

    Raises:
        ParameterOutOfBounds: Если значение нарушает границы или floors
    """
    if name not in TreasuryParameters.model_fields:
        raise ParameterOutOfBounds(name, value, "unknown parameter")

    data = parameters.model_dump()
    data[name] = value
    try:
        return TreasuryParameters.model_validate(data)
    except ValidationError as e:
        reason = "; ".join(err["msg"] for err in e.errors())
        raise ParameterOutOfBounds(name, value, reason) from e


# =============================================================================
# CONFIG MODEL
# =============================================================================


class TreasuryConfig(BaseModel):
    """
    Конфигурация инициализации treasury.

    Адреса collaborators неизменяемы после init; authority и custodian
    меняются только через authority-gated операции модулей.
    """

    treasury: str = Field(..., min_length=1, description="Собственный адрес treasury")
    authority: str = Field(..., min_length=1, description="Единственный authority")
    warchest: str = Field(..., min_length=1, description="Получатель fee")
    custodian: str = Field(..., min_length=1, description="Внешний custodian")
    reserve_asset: str = Field(..., min_length=1, description="Адрес reserve asset")
    principal_token: str = Field(..., min_length=1, description="Адрес principal token")
    vault: str = Field(..., min_length=1, description="Адрес staking vault")
    parameters: TreasuryParameters = Field(default_factory=TreasuryParameters)

    model_config = {"frozen": True}
