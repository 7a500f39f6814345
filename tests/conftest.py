import pytest

from container_trust_plugin.decision import Collaborators

from tests.helpers import FakeEngine, FakeEvaluator


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


@pytest.fixture
def make_collaborators(engine, evaluator):
    def _make(auto_pull: bool = False, **overrides) -> Collaborators:
        values = dict(
            registries=engine.registries,
            evaluator=evaluator,
            engine=engine,
            auto_pull=auto_pull,
        )
        values.update(overrides)
        return Collaborators(**values)

    return _make
