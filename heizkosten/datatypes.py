from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from datetime import date

Money = Decimal       # always quantized to cents when written to an output field


class MeterKind(str, Enum):
    HKV = 'hkv'                                   # Heizkostenverteiler
    WAERMEMENGENZAEHLER = 'waermemengenzaehler'   # calibrated heat meter


class RestCentRule(str, Enum):
    ASSIGN_TO_LARGEST_SHARE = 'assign_to_largest_share'
    ASSIGN_TO_SMALLEST_SHARE = 'assign_to_smallest_share'


class RoundingMethod(str, Enum):
    KAUFMAENNISCH = 'kaufmaennisch'     # half away from zero, 2 decimals


class ComplianceStatus(str, Enum):
    OK = 'ok'
    WARNING = 'warnung'
    ERROR = 'fehler'


class MeterStatusKind(str, Enum):
    VALID = 'valid'
    MISSING = 'missing'             # no meter object at all
    ZERO_READING = 'zero_reading'   # meter present, value <= 0


@dataclass(frozen=True)
class BillingPeriod:
    start: date
    end: date

    def months(self) -> int:
        """Whole calendar months between start and end (day of month ignored)."""
        return (self.end.year - self.start.year) * 12 + (self.end.month - self.start.month)


@dataclass(frozen=True)
class CostTotals:
    heating_supply: Money
    hot_water_supply: Money
    maintenance: Money
    meter_reading: Money

    @property
    def total(self) -> Money:
        return self.heating_supply + self.hot_water_supply + self.maintenance + self.meter_reading


@dataclass(frozen=True)
class AllocationConfig:
    heating_consumption_pct: Decimal
    heating_area_pct: Decimal
    hot_water_consumption_pct: Decimal
    hot_water_area_pct: Decimal
    rest_cent_rule: RestCentRule = RestCentRule.ASSIGN_TO_LARGEST_SHARE
    rounding_method: RoundingMethod = RoundingMethod.KAUFMAENNISCH


@dataclass(frozen=True)
class HeatingMeter:
    kind: MeterKind
    value: Decimal


@dataclass(frozen=True)
class HotWaterMeter:
    value: Decimal


@dataclass(frozen=True)
class UnitInput:
    unit_id: str
    area_m2: Decimal
    prepayment: Money = Money(0)
    mea: Optional[Decimal] = None                 # co-ownership weight, echoed only
    occupancy: int = 1                            # informational, no effect on allocation
    heating_meter: Optional[HeatingMeter] = None
    hot_water_meter: Optional[HotWaterMeter] = None
    tenant_name: Optional[str] = None


@dataclass(frozen=True)
class HeatBillingInput:
    run_id: int
    property_id: str
    period: BillingPeriod
    costs: CostTotals
    config: AllocationConfig
    units: List[UnitInput]


@dataclass(frozen=True)
class MeterStatus:
    """Outcome of classifying one meter of one unit.

    VALID carries the reading used for consumption apportionment. MISSING and
    ZERO_READING both route the unit into the area substitute distribution
    (Ersatzverteilung, §12 HeizKG); they are kept apart so the reason text can
    say which one happened.
    """
    kind: MeterStatusKind
    reading: Optional[Decimal] = None

    @classmethod
    def classify(cls, meter) -> 'MeterStatus':
        if meter is None:
            return cls(MeterStatusKind.MISSING)
        if meter.value <= 0:
            return cls(MeterStatusKind.ZERO_READING)
        return cls(MeterStatusKind.VALID, meter.value)

    @property
    def is_valid(self) -> bool:
        return self.kind is MeterStatusKind.VALID

    @property
    def uses_fallback(self) -> bool:
        return not self.is_valid


@dataclass(frozen=True)
class PlausibilityFlag:
    unit_id: str                 # "" for building-level flags
    kind: str                    # "heizung_hoch", "aufteilung_heizung", ...
    message: str


@dataclass
class ApportionedLine:
    unit_id: str
    area_m2: Decimal
    occupancy: int
    prepayment: Money
    heating_status: MeterStatus
    hot_water_status: MeterStatus
    mea: Optional[Decimal] = None
    tenant_name: Optional[str] = None
    heating_meter_kind: Optional[MeterKind] = None
    heating_meter_value: Optional[Decimal] = None
    hot_water_meter_value: Optional[Decimal] = None
    heating_consumption_share: Money = Money(0)
    heating_area_share: Money = Money(0)
    heating_total: Money = Money(0)
    hot_water_consumption_share: Money = Money(0)
    hot_water_area_share: Money = Money(0)
    hot_water_total: Money = Money(0)
    maintenance_share: Money = Money(0)
    meter_reading_share: Money = Money(0)
    total_cost: Money = Money(0)
    balance: Money = Money(0)    # positive = Nachzahlung, negative = Guthaben
    is_estimated: bool = False
    estimation_reason: Optional[str] = None
    plausibility_flags: List[PlausibilityFlag] = field(default_factory=list)

    @property
    def heating_meter_missing(self) -> bool:
        return self.heating_status.uses_fallback

    @property
    def hot_water_meter_missing(self) -> bool:
        return self.hot_water_status.uses_fallback


@dataclass(frozen=True)
class ComplianceCheck:
    paragraph: str
    requirement: str
    status: ComplianceStatus
    details: str


@dataclass(frozen=True)
class ComplianceCheckResult:
    checks: List[ComplianceCheck]

    @property
    def passed(self) -> bool:
        return all(c.status is not ComplianceStatus.ERROR for c in self.checks)


@dataclass(frozen=True)
class PlausibilityReport:
    flags: List[PlausibilityFlag]

    @property
    def passed(self) -> bool:
        return len(self.flags) == 0


@dataclass
class Summary:
    total_heating_distributed: Money
    total_hot_water_distributed: Money
    total_maintenance_distributed: Money
    total_meter_reading_distributed: Money
    total_distributed: Money
    total_costs: Money
    trial_balance_diff: Money = Money(0)

    @property
    def trial_balance_ok(self) -> bool:
        return abs(self.trial_balance_diff) <= Decimal('0.01')


@dataclass
class HeatBillingResult:
    lines: List[ApportionedLine]
    summary: Summary
    warnings: List[str]
    compliance_check: ComplianceCheckResult
    plausibility_report: PlausibilityReport
