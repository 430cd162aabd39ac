"""Borsh layouts for the reserve configuration record.

Field order in every ``layout`` is the wire order the program deserializes;
it must not be rearranged. All records are frozen and round-trip through
``to_encodable``/``from_decoded``.
"""
from __future__ import annotations

import typing
from dataclasses import dataclass, field

import borsh_construct as borsh
from construct import Bytes, Container
from solders.pubkey import Pubkey

from ...errors import EncodingError
from .constants import (
    CURVE_POINTS_LEN,
    ELEVATION_GROUPS_LEN,
    TOKEN_NAME_LEN,
    VALUE_BYTE_ARRAY_LEN_RESERVE,
)

MAX_UTILIZATION_RATE_BPS = 10_000

PubkeyLayout = Bytes(32)


def _zero_tuple(n: int) -> typing.Callable[[], tuple[int, ...]]:
    return lambda: (0,) * n


@dataclass(frozen=True)
class CurvePoint:
    layout: typing.ClassVar = borsh.CStruct(
        "utilization_rate_bps" / borsh.U32,
        "borrow_rate_bps" / borsh.U32,
    )
    utilization_rate_bps: int
    borrow_rate_bps: int

    @classmethod
    def from_decoded(cls, obj: Container) -> "CurvePoint":
        return cls(
            utilization_rate_bps=obj.utilization_rate_bps,
            borrow_rate_bps=obj.borrow_rate_bps,
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "utilization_rate_bps": self.utilization_rate_bps,
            "borrow_rate_bps": self.borrow_rate_bps,
        }


@dataclass(frozen=True)
class BorrowRateCurve:
    """Piecewise-linear borrow rate over utilization, fixed at 11 points."""

    layout: typing.ClassVar = borsh.CStruct(
        "points" / CurvePoint.layout[CURVE_POINTS_LEN],
    )
    points: tuple[CurvePoint, ...]

    def __post_init__(self) -> None:
        if len(self.points) != CURVE_POINTS_LEN:
            raise EncodingError(
                f"Borrow rate curve needs {CURVE_POINTS_LEN} points, got {len(self.points)}"
            )
        if self.points[0].utilization_rate_bps != 0:
            raise EncodingError("Borrow rate curve must start at 0% utilization")
        if self.points[-1].utilization_rate_bps != MAX_UTILIZATION_RATE_BPS:
            raise EncodingError("Borrow rate curve must end at 100% utilization")
        for prev, cur in zip(self.points, self.points[1:]):
            if cur.utilization_rate_bps < prev.utilization_rate_bps:
                raise EncodingError(
                    "Borrow rate curve utilization must be non-decreasing: "
                    f"{prev.utilization_rate_bps} -> {cur.utilization_rate_bps}"
                )

    @classmethod
    def from_points(cls, points: typing.Sequence[CurvePoint]) -> "BorrowRateCurve":
        """Pad ``points`` to the fixed slot count by repeating the last one."""
        if not points:
            raise EncodingError("Borrow rate curve needs at least one point")
        if len(points) > CURVE_POINTS_LEN:
            raise EncodingError(
                f"Borrow rate curve has {len(points)} points (max {CURVE_POINTS_LEN})"
            )
        padded = list(points) + [points[-1]] * (CURVE_POINTS_LEN - len(points))
        return cls(points=tuple(padded))

    @classmethod
    def from_decoded(cls, obj: Container) -> "BorrowRateCurve":
        return cls(points=tuple(CurvePoint.from_decoded(p) for p in obj.points))

    def to_encodable(self) -> dict[str, typing.Any]:
        return {"points": [p.to_encodable() for p in self.points]}


@dataclass(frozen=True)
class ReserveFees:
    """Fees as scaled fractions (``_sf``: value * 2^60)."""

    layout: typing.ClassVar = borsh.CStruct(
        "borrow_fee_sf" / borsh.U64,
        "flash_loan_fee_sf" / borsh.U64,
        "padding" / borsh.U8[8],
    )
    borrow_fee_sf: int = 0
    flash_loan_fee_sf: int = 0
    padding: tuple[int, ...] = field(default_factory=_zero_tuple(8))

    @classmethod
    def from_decoded(cls, obj: Container) -> "ReserveFees":
        return cls(
            borrow_fee_sf=obj.borrow_fee_sf,
            flash_loan_fee_sf=obj.flash_loan_fee_sf,
            padding=tuple(obj.padding),
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "borrow_fee_sf": self.borrow_fee_sf,
            "flash_loan_fee_sf": self.flash_loan_fee_sf,
            "padding": list(self.padding),
        }


@dataclass(frozen=True)
class PriceHeuristic:
    layout: typing.ClassVar = borsh.CStruct(
        "lower" / borsh.U64,
        "upper" / borsh.U64,
        "exp" / borsh.U64,
    )
    lower: int = 0
    upper: int = 0
    exp: int = 0

    @classmethod
    def from_decoded(cls, obj: Container) -> "PriceHeuristic":
        return cls(lower=obj.lower, upper=obj.upper, exp=obj.exp)

    def to_encodable(self) -> dict[str, typing.Any]:
        return {"lower": self.lower, "upper": self.upper, "exp": self.exp}


@dataclass(frozen=True)
class ScopeConfiguration:
    layout: typing.ClassVar = borsh.CStruct(
        "price_feed" / PubkeyLayout,
        "price_chain" / borsh.U16[4],
        "twap_chain" / borsh.U16[4],
    )
    price_feed: Pubkey = field(default_factory=Pubkey.default)
    price_chain: tuple[int, ...] = field(default_factory=_zero_tuple(4))
    twap_chain: tuple[int, ...] = field(default_factory=_zero_tuple(4))

    @classmethod
    def from_decoded(cls, obj: Container) -> "ScopeConfiguration":
        return cls(
            price_feed=Pubkey(obj.price_feed),
            price_chain=tuple(obj.price_chain),
            twap_chain=tuple(obj.twap_chain),
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "price_feed": bytes(self.price_feed),
            "price_chain": list(self.price_chain),
            "twap_chain": list(self.twap_chain),
        }


@dataclass(frozen=True)
class SwitchboardConfiguration:
    layout: typing.ClassVar = borsh.CStruct(
        "price_aggregator" / PubkeyLayout,
        "twap_aggregator" / PubkeyLayout,
    )
    price_aggregator: Pubkey = field(default_factory=Pubkey.default)
    twap_aggregator: Pubkey = field(default_factory=Pubkey.default)

    @classmethod
    def from_decoded(cls, obj: Container) -> "SwitchboardConfiguration":
        return cls(
            price_aggregator=Pubkey(obj.price_aggregator),
            twap_aggregator=Pubkey(obj.twap_aggregator),
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "price_aggregator": bytes(self.price_aggregator),
            "twap_aggregator": bytes(self.twap_aggregator),
        }


@dataclass(frozen=True)
class PythConfiguration:
    layout: typing.ClassVar = borsh.CStruct("price" / PubkeyLayout)
    price: Pubkey = field(default_factory=Pubkey.default)

    @classmethod
    def from_decoded(cls, obj: Container) -> "PythConfiguration":
        return cls(price=Pubkey(obj.price))

    def to_encodable(self) -> dict[str, typing.Any]:
        return {"price": bytes(self.price)}


@dataclass(frozen=True)
class TokenInfo:
    layout: typing.ClassVar = borsh.CStruct(
        "name" / Bytes(TOKEN_NAME_LEN),
        "heuristic" / PriceHeuristic.layout,
        "max_twap_divergence_bps" / borsh.U64,
        "max_age_price_seconds" / borsh.U64,
        "max_age_twap_seconds" / borsh.U64,
        "scope_configuration" / ScopeConfiguration.layout,
        "switchboard_configuration" / SwitchboardConfiguration.layout,
        "pyth_configuration" / PythConfiguration.layout,
        "padding" / borsh.U64[20],
    )
    name: bytes
    heuristic: PriceHeuristic = field(default_factory=PriceHeuristic)
    max_twap_divergence_bps: int = 0
    max_age_price_seconds: int = 0
    max_age_twap_seconds: int = 0
    scope_configuration: ScopeConfiguration = field(default_factory=ScopeConfiguration)
    switchboard_configuration: SwitchboardConfiguration = field(
        default_factory=SwitchboardConfiguration
    )
    pyth_configuration: PythConfiguration = field(default_factory=PythConfiguration)
    padding: tuple[int, ...] = field(default_factory=_zero_tuple(20))

    def __post_init__(self) -> None:
        if len(self.name) != TOKEN_NAME_LEN:
            raise EncodingError(
                f"Token name must be exactly {TOKEN_NAME_LEN} bytes, got {len(self.name)}"
            )

    @classmethod
    def from_decoded(cls, obj: Container) -> "TokenInfo":
        return cls(
            name=bytes(obj.name),
            heuristic=PriceHeuristic.from_decoded(obj.heuristic),
            max_twap_divergence_bps=obj.max_twap_divergence_bps,
            max_age_price_seconds=obj.max_age_price_seconds,
            max_age_twap_seconds=obj.max_age_twap_seconds,
            scope_configuration=ScopeConfiguration.from_decoded(obj.scope_configuration),
            switchboard_configuration=SwitchboardConfiguration.from_decoded(
                obj.switchboard_configuration
            ),
            pyth_configuration=PythConfiguration.from_decoded(obj.pyth_configuration),
            padding=tuple(obj.padding),
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "name": self.name,
            "heuristic": self.heuristic.to_encodable(),
            "max_twap_divergence_bps": self.max_twap_divergence_bps,
            "max_age_price_seconds": self.max_age_price_seconds,
            "max_age_twap_seconds": self.max_age_twap_seconds,
            "scope_configuration": self.scope_configuration.to_encodable(),
            "switchboard_configuration": self.switchboard_configuration.to_encodable(),
            "pyth_configuration": self.pyth_configuration.to_encodable(),
            "padding": list(self.padding),
        }


@dataclass(frozen=True)
class WithdrawalCaps:
    layout: typing.ClassVar = borsh.CStruct(
        "config_capacity" / borsh.I64,
        "current_total" / borsh.I64,
        "last_interval_start_timestamp" / borsh.U64,
        "config_interval_length_seconds" / borsh.U64,
    )
    config_capacity: int = 0
    current_total: int = 0
    last_interval_start_timestamp: int = 0
    config_interval_length_seconds: int = 0

    @classmethod
    def from_decoded(cls, obj: Container) -> "WithdrawalCaps":
        return cls(
            config_capacity=obj.config_capacity,
            current_total=obj.current_total,
            last_interval_start_timestamp=obj.last_interval_start_timestamp,
            config_interval_length_seconds=obj.config_interval_length_seconds,
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "config_capacity": self.config_capacity,
            "current_total": self.current_total,
            "last_interval_start_timestamp": self.last_interval_start_timestamp,
            "config_interval_length_seconds": self.config_interval_length_seconds,
        }


@dataclass(frozen=True)
class ReserveConfig:
    layout: typing.ClassVar = borsh.CStruct(
        "status" / borsh.U8,
        "asset_tier" / borsh.U8,
        "reserved0" / borsh.U8[2],
        "multiplier_side_boost" / borsh.U8[2],
        "multiplier_tag_boost" / borsh.U8[8],
        "protocol_take_rate_pct" / borsh.U8,
        "protocol_liquidation_fee_pct" / borsh.U8,
        "loan_to_value_pct" / borsh.U8,
        "liquidation_threshold_pct" / borsh.U8,
        "min_liquidation_bonus_bps" / borsh.U16,
        "max_liquidation_bonus_bps" / borsh.U16,
        "bad_debt_liquidation_bonus_bps" / borsh.U16,
        "deleveraging_margin_call_period_secs" / borsh.U64,
        "deleveraging_threshold_slots_per_bps" / borsh.U64,
        "fees" / ReserveFees.layout,
        "borrow_rate_curve" / BorrowRateCurve.layout,
        "borrow_factor_pct" / borsh.U64,
        "deposit_limit" / borsh.U64,
        "borrow_limit" / borsh.U64,
        "token_info" / TokenInfo.layout,
        "deposit_withdrawal_cap" / WithdrawalCaps.layout,
        "debt_withdrawal_cap" / WithdrawalCaps.layout,
        "elevation_groups" / borsh.U8[ELEVATION_GROUPS_LEN],
        "reserved1" / borsh.U8[4],
    )
    status: int
    asset_tier: int
    reserved0: tuple[int, ...]
    multiplier_side_boost: tuple[int, ...]
    multiplier_tag_boost: tuple[int, ...]
    protocol_take_rate_pct: int
    protocol_liquidation_fee_pct: int
    loan_to_value_pct: int
    liquidation_threshold_pct: int
    min_liquidation_bonus_bps: int
    max_liquidation_bonus_bps: int
    bad_debt_liquidation_bonus_bps: int
    deleveraging_margin_call_period_secs: int
    deleveraging_threshold_slots_per_bps: int
    fees: ReserveFees
    borrow_rate_curve: BorrowRateCurve
    borrow_factor_pct: int
    deposit_limit: int
    borrow_limit: int
    token_info: TokenInfo
    deposit_withdrawal_cap: WithdrawalCaps
    debt_withdrawal_cap: WithdrawalCaps
    elevation_groups: tuple[int, ...]
    reserved1: tuple[int, ...]

    @classmethod
    def from_decoded(cls, obj: Container) -> "ReserveConfig":
        return cls(
            status=obj.status,
            asset_tier=obj.asset_tier,
            reserved0=tuple(obj.reserved0),
            multiplier_side_boost=tuple(obj.multiplier_side_boost),
            multiplier_tag_boost=tuple(obj.multiplier_tag_boost),
            protocol_take_rate_pct=obj.protocol_take_rate_pct,
            protocol_liquidation_fee_pct=obj.protocol_liquidation_fee_pct,
            loan_to_value_pct=obj.loan_to_value_pct,
            liquidation_threshold_pct=obj.liquidation_threshold_pct,
            min_liquidation_bonus_bps=obj.min_liquidation_bonus_bps,
            max_liquidation_bonus_bps=obj.max_liquidation_bonus_bps,
            bad_debt_liquidation_bonus_bps=obj.bad_debt_liquidation_bonus_bps,
            deleveraging_margin_call_period_secs=obj.deleveraging_margin_call_period_secs,
            deleveraging_threshold_slots_per_bps=obj.deleveraging_threshold_slots_per_bps,
            fees=ReserveFees.from_decoded(obj.fees),
            borrow_rate_curve=BorrowRateCurve.from_decoded(obj.borrow_rate_curve),
            borrow_factor_pct=obj.borrow_factor_pct,
            deposit_limit=obj.deposit_limit,
            borrow_limit=obj.borrow_limit,
            token_info=TokenInfo.from_decoded(obj.token_info),
            deposit_withdrawal_cap=WithdrawalCaps.from_decoded(obj.deposit_withdrawal_cap),
            debt_withdrawal_cap=WithdrawalCaps.from_decoded(obj.debt_withdrawal_cap),
            elevation_groups=tuple(obj.elevation_groups),
            reserved1=tuple(obj.reserved1),
        )

    def to_encodable(self) -> dict[str, typing.Any]:
        return {
            "status": self.status,
            "asset_tier": self.asset_tier,
            "reserved0": list(self.reserved0),
            "multiplier_side_boost": list(self.multiplier_side_boost),
            "multiplier_tag_boost": list(self.multiplier_tag_boost),
            "protocol_take_rate_pct": self.protocol_take_rate_pct,
            "protocol_liquidation_fee_pct": self.protocol_liquidation_fee_pct,
            "loan_to_value_pct": self.loan_to_value_pct,
            "liquidation_threshold_pct": self.liquidation_threshold_pct,
            "min_liquidation_bonus_bps": self.min_liquidation_bonus_bps,
            "max_liquidation_bonus_bps": self.max_liquidation_bonus_bps,
            "bad_debt_liquidation_bonus_bps": self.bad_debt_liquidation_bonus_bps,
            "deleveraging_margin_call_period_secs": self.deleveraging_margin_call_period_secs,
            "deleveraging_threshold_slots_per_bps": self.deleveraging_threshold_slots_per_bps,
            "fees": self.fees.to_encodable(),
            "borrow_rate_curve": self.borrow_rate_curve.to_encodable(),
            "borrow_factor_pct": self.borrow_factor_pct,
            "deposit_limit": self.deposit_limit,
            "borrow_limit": self.borrow_limit,
            "token_info": self.token_info.to_encodable(),
            "deposit_withdrawal_cap": self.deposit_withdrawal_cap.to_encodable(),
            "debt_withdrawal_cap": self.debt_withdrawal_cap.to_encodable(),
            "elevation_groups": list(self.elevation_groups),
            "reserved1": list(self.reserved1),
        }

    def to_bytes(self) -> bytes:
        try:
            return self.layout.build(self.to_encodable())
        except Exception as e:
            # construct raises on out-of-range integers
            raise EncodingError(f"Cannot encode reserve config: {e}") from e

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReserveConfig":
        if len(data) != VALUE_BYTE_ARRAY_LEN_RESERVE:
            raise EncodingError(
                f"Reserve config must be {VALUE_BYTE_ARRAY_LEN_RESERVE} bytes, got {len(data)}"
            )
        return cls.from_decoded(cls.layout.parse(data))
