"""Tests for the monitoring stage pipeline."""

from unittest.mock import MagicMock, call

import pytest

from harness.monitoring import MonitoringPipeline


@pytest.fixture
def stages():
    """Stage collaborators that record the order they are called in."""
    recorder = MagicMock()
    recorder.sampler.apply_monitoring_sampling_to_script.return_value = {"sampled": True}
    recorder.planner.plan_samples.return_value = [{"at": 0}, {"at": 1}]
    recorder.executor.execute_all.return_value = ["r1", "r2"]
    recorder.analyzer.analyze_monitoring.return_value = {"errors": 0}
    return recorder


def _pipeline(stages) -> MonitoringPipeline:
    return MonitoringPipeline(
        executor=stages.executor,
        sampler=stages.sampler,
        planner=stages.planner,
        analyzer=stages.analyzer,
        alerter=stages.alerter,
    )


class TestMonitoringPipeline:
    """Tests for MonitoringPipeline.execute()."""

    def test_stages_run_in_order(self, stages):
        script, settings = {"mode": "mon"}, {"task": {}}

        result = _pipeline(stages).execute(1000, script, settings)

        assert result == {"errors": 0}
        assert stages.mock_calls[:4] == [
            call.sampler.apply_monitoring_sampling_to_script(script, settings),
            call.planner.plan_samples(1000, {"sampled": True}, settings),
            call.executor.execute_all({"sampled": True}, settings, [{"at": 0}, {"at": 1}], 1000),
            call.analyzer.analyze_monitoring(1000, script, settings, ["r1", "r2"]),
        ]
        stages.alerter.send.assert_not_called()

    def test_alerts_on_error_message(self, stages, capsys):
        analysis = {"errorMessage": "latency above threshold"}
        stages.analyzer.analyze_monitoring.return_value = analysis
        script = {"mode": "mon"}

        result = _pipeline(stages).execute(1000, script, {})

        assert result is analysis
        stages.alerter.send.assert_called_once_with(script, analysis)
        assert '"MonitoringRunFailed": 1' in capsys.readouterr().out

    def test_alert_failure_propagates(self, stages):
        stages.analyzer.analyze_monitoring.return_value = {"errorMessage": "down"}
        stages.alerter.send.side_effect = RuntimeError("sns unavailable")

        with pytest.raises(RuntimeError, match="sns unavailable"):
            _pipeline(stages).execute(1000, {}, {})

    def test_falsy_alerter_is_kept(self, stages):
        """Test that an injected alerter is used even when it is falsy."""
        stages.alerter.__bool__.return_value = False
        stages.analyzer.analyze_monitoring.return_value = {"errorMessage": "down"}

        pipeline = _pipeline(stages)
        pipeline.execute(1000, {}, {})

        assert pipeline.alerter is stages.alerter
        stages.alerter.send.assert_called_once()
        stages.alerter.__bool__.assert_not_called()
