from datetime import timedelta
from unittest.mock import Mock

from flight_checker.tasks import build_scheduler


class StubOrchestrator:
    def __init__(self):
        self.cycles = 0

    def run_cycle(self):
        self.cycles += 1


def test_scheduler_runs_cycle_every_interval():
    orchestrator = StubOrchestrator()
    settings = Mock(poll_interval_h=6)

    sched = build_scheduler(orchestrator, settings)
    job = sched.get_job("flight_search_cycle")

    assert job.func == orchestrator.run_cycle
    assert job.trigger.interval == timedelta(hours=6)
    assert job.max_instances == 1
    assert job.coalesce

    job.func()
    assert orchestrator.cycles == 1
