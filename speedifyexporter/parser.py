"""
Parser functions to decode the JSON documents printed by speedify_cli into typed records
"""
import json
import logging
import math
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Numeric codes exported for the enumerated fields. Values missing from a table map to the
# matching UNKNOWN code, so a newer speedify_cli reporting a new value never breaks a scrape.
STATE_CODES: Dict[str, int] = {"LOGGED_OUT": 0, "LOGGED_IN": 1, "CONNECTED": 2}
UNKNOWN_STATE_CODE = 3

PRIORITY_CODES: Dict[str, int] = {"never": 0, "always": 1, "secondary": 2, "backup": 3}
UNKNOWN_PRIORITY_CODE = 4

ADAPTER_STATE_CODES: Dict[str, int] = {"disconnected": 0, "connected": 1}
UNKNOWN_ADAPTER_STATE_CODE = 2


def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")


def decode_json(raw: bytes) -> Any:
    """
    Decode raw speedify_cli output. Returns None when the output is empty, is not UTF-8 or is
    not valid JSON. NaN and Infinity count as invalid, as does nesting too deep to
    decode.
    """
    if not raw:
        return None
    try:
        return json.loads(raw.decode("utf-8"), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        logger.debug(f"Could not decode speedify_cli output {raw[:200]!r}: {e}")
        return None


def _field(obj: Dict[str, Any], name: str) -> Any:
    """
    Look up a JSON object key the way speedify_cli consumers have always matched them: an exact
    match wins, otherwise the first key equal to name ignoring case.
    """
    if name in obj:
        return obj[name]
    folded = name.casefold()
    for key, value in obj.items():
        if key.casefold() == folded:
            return value
    return None


def _str_field(obj: Dict[str, Any], name: str) -> str:
    value = _field(obj, name)
    if isinstance(value, str):
        return value
    if value is not None:
        logger.debug(f"Ignoring non-string value {value!r} for field {name}")
    return ""


def _float_field(obj: Dict[str, Any], name: str) -> float:
    value = _field(obj, name)
    # bool is a subclass of int, but true/false are not usage numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf
        if math.isfinite(number):
            return number
        logger.debug(f"Ignoring out of range value for field {name}")
        return 0.0
    if value is not None:
        logger.debug(f"Ignoring non-numeric value {value!r} for field {name}")
    return 0.0


class SpeedifyState:
    """Connection state as printed by `speedify_cli state`"""

    def __init__(self, state: str = ""):
        self.state: str = state  # LOGGED_OUT, LOGGED_IN, CONNECTED or anything newer

    @classmethod
    def from_json(cls, raw: bytes) -> "SpeedifyState":
        doc = decode_json(raw)
        if not isinstance(doc, dict):
            return cls()
        return cls(state=_str_field(doc, "State"))

    @property
    def state_code(self) -> int:
        return STATE_CODES.get(self.state, UNKNOWN_STATE_CODE)

    def __repr__(self):
        return f"SpeedifyState(state={self.state!r})"


class DataUsage:
    """Data usage counters and limits of a single adapter, passed through as reported"""

    def __init__(self,
                 overlimit_rate_limit: float = 0.0,
                 usage_daily: float = 0.0,
                 usage_daily_boost: float = 0.0,
                 usage_daily_limit: float = 0.0,
                 usage_monthly: float = 0.0,
                 usage_monthly_limit: float = 0.0):
        self.overlimit_rate_limit: float = overlimit_rate_limit
        self.usage_daily: float = usage_daily
        self.usage_daily_boost: float = usage_daily_boost
        self.usage_daily_limit: float = usage_daily_limit
        self.usage_monthly: float = usage_monthly
        self.usage_monthly_limit: float = usage_monthly_limit

    @classmethod
    def from_dict(cls, doc: Optional[Dict[str, Any]]) -> "DataUsage":
        if not isinstance(doc, dict):
            return cls()
        return cls(
            overlimit_rate_limit=_float_field(doc, "OverlimitRateLimit"),
            usage_daily=_float_field(doc, "UsageDaily"),
            usage_daily_boost=_float_field(doc, "UsageDailyBoost"),
            usage_daily_limit=_float_field(doc, "UsageDailyLimit"),
            usage_monthly=_float_field(doc, "UsageMonthly"),
            usage_monthly_limit=_float_field(doc, "UsageMonthlyLimit"),
        )

    def __repr__(self):
        return f"DataUsage({self.__dict__!r})"


class Adapter:
    """One network adapter as printed by `speedify_cli show adapters`"""

    def __init__(self,
                 adapter_id: str = "",
                 type: str = "",
                 priority: str = "",
                 state: str = "",
                 data_usage: DataUsage = None):
        self.adapter_id: str = adapter_id  # opaque id, e.g. "eth0" or "wlan0"
        self.type: str = type  # "Wired", "Wi-Fi", "Cellular", ...
        self.priority: str = priority
        self.state: str = state
        self.data_usage: DataUsage = data_usage or DataUsage()

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "Adapter":
        return cls(
            adapter_id=_str_field(doc, "AdapterID"),
            type=_str_field(doc, "Type"),
            priority=_str_field(doc, "Priority"),
            state=_str_field(doc, "State"),
            data_usage=DataUsage.from_dict(_field(doc, "DataUsage")),
        )

    @property
    def priority_code(self) -> int:
        return PRIORITY_CODES.get(self.priority, UNKNOWN_PRIORITY_CODE)

    @property
    def state_code(self) -> int:
        return ADAPTER_STATE_CODES.get(self.state, UNKNOWN_ADAPTER_STATE_CODE)

    def __repr__(self):
        return (f"Adapter(adapter_id={self.adapter_id!r}, type={self.type!r}, "
                f"priority={self.priority!r}, state={self.state!r}, "
                f"data_usage={self.data_usage!r})")


def parse_adapters(raw: bytes) -> List[Adapter]:
    """
    Parse the output of `speedify_cli show adapters` into a list of Adapter objects.

    :param raw: stdout of speedify_cli
    :return: adapters in the order reported, empty if the output is not a JSON array
    """
    doc = decode_json(raw)
    if not isinstance(doc, list):
        return []
    adapters = []
    for entry in doc:
        if not isinstance(entry, dict):
            logger.debug(f"Skipping adapter entry that is not an object: {entry!r}")
            continue
        adapters.append(Adapter.from_dict(entry))
    return adapters
