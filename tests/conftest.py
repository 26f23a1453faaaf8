"""
Shared fixtures: scripted prediction backends and a fake clock.
"""

from typing import Any, Dict, List, Optional, Union

import pytest

from avatarbooth.schemas.prediction import Prediction


def make_prediction(prediction_id: str = "abc", status: str = "starting", **fields) -> Prediction:
    return Prediction(id=prediction_id, status=status, **fields)


class FakeTime:
    """Clock that only moves when something sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedBackend:
    """
    Prediction backend that replays canned responses.

    ``polls`` items are returned (or raised, if exceptions) in order.
    """

    def __init__(
        self,
        created: Union[Prediction, Exception],
        polls: Optional[List[Union[Prediction, Exception]]] = None,
        fake_time: Optional[FakeTime] = None,
    ):
        self.created = created
        self.polls = list(polls or [])
        self.fake_time = fake_time
        self.create_calls: List[Dict[str, Any]] = []
        self.get_calls: List[str] = []
        self.get_times: List[float] = []
        self.cancel_calls: List[str] = []

    async def create_prediction(self, input: Dict[str, Any]) -> Prediction:
        self.create_calls.append(input)
        if isinstance(self.created, Exception):
            raise self.created
        return self.created

    async def get_prediction(self, prediction_id: str) -> Prediction:
        self.get_calls.append(prediction_id)
        if self.fake_time is not None:
            self.get_times.append(self.fake_time.now)
        if not self.polls:
            raise AssertionError("status queried after the script ran out")
        item = self.polls.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def cancel_prediction(self, prediction_id: str) -> Prediction:
        self.cancel_calls.append(prediction_id)
        return make_prediction(prediction_id, "canceled")


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def prediction():
    """Factory for upstream prediction bodies."""
    return make_prediction


@pytest.fixture
def scripted_backend(fake_time):
    """Factory for scripted backends bound to the fake clock."""
    def factory(created, polls=None):
        return ScriptedBackend(created, polls, fake_time=fake_time)
    return factory
