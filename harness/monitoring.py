"""
Monitoring-mode stage pipeline.

A monitoring pass samples the script, plans when the samples run, executes
them, analyzes the results and raises an alert if the analysis reports an
error. The sampling, planning, execution and analysis stages belong to the
load engine and are supplied as collaborators.
"""

import logging
from typing import Any, Mapping, Optional, Protocol

from .alert import Alerter
from .metrics import get_metrics_emitter
from .tracing import stage_span

logger = logging.getLogger(__name__)

Script = Mapping[str, Any]
Settings = Mapping[str, Any]


class Sampler(Protocol):
    def apply_monitoring_sampling_to_script(self, script: Script, settings: Settings) -> Script: ...


class Planner(Protocol):
    def plan_samples(self, time_now: float, script: Script, settings: Settings) -> list[Any]: ...


class Executor(Protocol):
    def execute_all(self, script: Script, settings: Settings, plans: list[Any], time_now: float) -> Any: ...


class Analyzer(Protocol):
    def analyze_monitoring(self, time_now: float, script: Script, settings: Settings, results: Any) -> dict[str, Any]: ...


class AlertSender(Protocol):
    def send(self, script: Script, analysis: Mapping[str, Any]) -> Any: ...


class MonitoringPipeline:
    """Runs one monitoring pass and alerts on failure."""

    def __init__(
        self,
        executor: Executor,
        sampler: Sampler,
        planner: Planner,
        analyzer: Analyzer,
        alerter: Optional[AlertSender] = None,
    ):
        self.executor = executor
        self.sampler = sampler
        self.planner = planner
        self.analyzer = analyzer
        self.alerter = alerter if alerter is not None else Alerter()

    def execute(self, time_now: float, script: Script, settings: Settings) -> dict[str, Any]:
        """
        Run sampling, planning, execution and analysis in order.

        The alert is sent before the results are returned; a failure to
        publish propagates to the caller.

        Returns:
            The analysis produced for this pass
        """
        with stage_span("sample"):
            monitor_script = self.sampler.apply_monitoring_sampling_to_script(script, settings)

        with stage_span("plan"):
            plans = self.planner.plan_samples(time_now, monitor_script, settings)

        with stage_span("execute", plans=len(plans)):
            results = self.executor.execute_all(monitor_script, settings, plans, time_now)

        with stage_span("analyze"):
            analysis = self.analyzer.analyze_monitoring(time_now, script, settings, results)

        error_message = analysis.get("errorMessage")
        get_metrics_emitter().record_monitoring_run(failed=bool(error_message), error_message=error_message)

        if error_message:
            logger.warning("Monitoring run failed: %s", error_message)
            with stage_span("alert"):
                self.alerter.send(script, analysis)

        return analysis
