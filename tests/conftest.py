import pytest

from fakes import ScriptedChain


@pytest.fixture
def chain() -> ScriptedChain:
    return ScriptedChain()
