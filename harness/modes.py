"""Script mode classification.

A script's optional ``mode`` attribute decides how the harness runs it:
performance (the default) drives load, acceptance and monitoring run
sampled traffic and judge the results.
"""

from typing import Any, Mapping, Optional

from .errors import InvalidScriptMode

PERF = "perf"
PERFORMANCE = "performance"
ACC = "acc"
ACCEPTANCE = "acceptance"
MON = "mon"
MONITORING = "monitoring"

MODE_NAMES = {
    "PERF": PERF,
    "PERFORMANCE": PERFORMANCE,
    "ACC": ACC,
    "ACCEPTANCE": ACCEPTANCE,
    "MON": MON,
    "MONITORING": MONITORING,
}


def _mode(script: Mapping[str, Any]) -> Optional[str]:
    mode = script.get("mode")
    if mode is None:
        return None
    return str(mode).lower()


def is_acceptance_script(script: Mapping[str, Any]) -> bool:
    return _mode(script) in (ACC, ACCEPTANCE)


def is_monitoring_script(script: Mapping[str, Any]) -> bool:
    return _mode(script) in (MON, MONITORING)


def is_performance_script(script: Mapping[str, Any]) -> bool:
    mode = _mode(script)
    return not mode or mode in (PERF, PERFORMANCE)


def is_sampling_script(script: Mapping[str, Any]) -> bool:
    return is_acceptance_script(script) or is_monitoring_script(script)


def validate_script_mode(script: Mapping[str, Any]) -> None:
    """
    Reject scripts whose ``mode`` is not a known mode name.

    Raises:
        InvalidScriptMode: If ``mode`` is present and unknown
    """
    valid_modes = list(MODE_NAMES.values())
    if "mode" not in script or script["mode"] is None:
        return
    if _mode(script) not in valid_modes:
        listed = ", ".join(f'"{mode}"' for mode in valid_modes)
        raise InvalidScriptMode(f"If specified, the mode attribute must be one of: {listed}.")


def get_mode_for_display(script: Mapping[str, Any]) -> str:
    if is_acceptance_script(script):
        return ACCEPTANCE
    if is_monitoring_script(script):
        return MONITORING
    return PERFORMANCE
